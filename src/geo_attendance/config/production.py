import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "standard")

DEVICE_RADII = {
    "mobile": (400, 400),
    "tablet": (400, 400),
    "laptop": (700, 700),
    "desktop": (2000, 1000),
}
CLIENT_TOLERANCES = {}
CLIENT_TOLERANCE_ENABLED = False
GLOBAL_TOLERANCE_M = float(os.getenv("GLOBAL_TOLERANCE_M", "100"))

LATENESS_CUTOFF = os.getenv("LATENESS_CUTOFF", "09:00")
CHECK_IN_DEADLINE = os.getenv("CHECK_IN_DEADLINE", "15:00")
CHECK_OUT_DEADLINE = os.getenv("CHECK_OUT_DEADLINE", "")
STANDARD_END_TIME = os.getenv("STANDARD_END_TIME", "17:00")
MIN_DWELL_MINUTES = int(os.getenv("MIN_DWELL_MINUTES", "120"))
MIN_REASON_LENGTH = int(os.getenv("MIN_REASON_LENGTH", "20"))

OFF_PREMISES_ENABLED = bool(int(os.getenv("OFF_PREMISES_ENABLED", "1")))
FACILITY_CODE_RADIUS_M = float(os.getenv("FACILITY_CODE_RADIUS_M", "40"))
FACILITY_REFRESH_SECONDS = int(os.getenv("FACILITY_REFRESH_SECONDS", "300"))
