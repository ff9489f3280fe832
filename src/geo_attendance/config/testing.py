import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
LOG_FORMAT = "standard"

DEVICE_RADII = {
    "mobile": (400, 400),
    "tablet": (400, 400),
    "laptop": (700, 700),
    "desktop": (2000, 1000),
}
CLIENT_TOLERANCES = {}
CLIENT_TOLERANCE_ENABLED = False
GLOBAL_TOLERANCE_M = 100

LATENESS_CUTOFF = "09:00"
CHECK_IN_DEADLINE = "15:00"
STANDARD_END_TIME = "17:00"
MIN_DWELL_MINUTES = 120
MIN_REASON_LENGTH = 20

OFF_PREMISES_ENABLED = True
FACILITY_CODE_RADIUS_M = 40
FACILITY_REFRESH_SECONDS = 0
