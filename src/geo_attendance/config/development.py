import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FORMAT = os.getenv("LOG_FORMAT", "standard")

# Device class -> (check-in radius, check-out radius), meters.
DEVICE_RADII = {
    "mobile": (400, 400),
    "tablet": (400, 400),
    "laptop": (700, 700),
    "desktop": (2000, 1000),
}

# Browser family -> meters; only consulted for device classes without a radius.
CLIENT_TOLERANCES = {
    "chrome": 300,
    "edge": 300,
    "firefox": 500,
    "safari": 300,
    "opera": 1500,
    "other": 500,
}
CLIENT_TOLERANCE_ENABLED = bool(int(os.getenv("CLIENT_TOLERANCE_ENABLED", "0")))
GLOBAL_TOLERANCE_M = float(os.getenv("GLOBAL_TOLERANCE_M", "100"))

LATENESS_CUTOFF = os.getenv("LATENESS_CUTOFF", "09:00")
CHECK_IN_DEADLINE = os.getenv("CHECK_IN_DEADLINE", "15:00")
CHECK_OUT_DEADLINE = os.getenv("CHECK_OUT_DEADLINE", "")
STANDARD_END_TIME = os.getenv("STANDARD_END_TIME", "17:00")
MIN_DWELL_MINUTES = int(os.getenv("MIN_DWELL_MINUTES", "120"))
MIN_REASON_LENGTH = int(os.getenv("MIN_REASON_LENGTH", "20"))

TIME_EXEMPT_DEPARTMENTS = ["operations", "operational", "security"]
TIME_EXEMPT_ROLES = ["admin", "department_head", "regional_manager"]
LATENESS_EXEMPT_DEPARTMENTS = ["security", "research"]
REASON_EXEMPT_ROLES = ["department_head", "regional_manager"]

OFF_PREMISES_ENABLED = True
FACILITY_CODE_RADIUS_M = 40
FACILITY_REFRESH_SECONDS = 300
SAMPLED_CLIENTS = ["opera"]
