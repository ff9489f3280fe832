"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
Settings modules may override most of them (see ``policy.loader``).
"""

from datetime import time

EARTH_RADIUS_M = 6_371_000.0

# Accuracy tier upper bounds (inclusive), meters.
GOOD_ACCURACY_M = 30.0
MODERATE_ACCURACY_M = 100.0
POOR_ACCURACY_M = 1000.0

# Acquisition
RELAXED_RETRY_ACCURACY_M = 2000.0
HIGH_ACCURACY_TIMEOUT_S = 10.0
WINDOWS_HIGH_ACCURACY_TIMEOUT_S = 15.0
RELAXED_TIMEOUT_S = 10.0
RELAXED_MAXIMUM_AGE_S = 5.0
SAMPLE_SPACING_S = 2.0
DEFAULT_SAMPLE_COUNT = 3

# Tolerances, meters
DEFAULT_DEVICE_RADII = {
    "mobile": (400.0, 400.0),
    "tablet": (400.0, 400.0),
    "laptop": (700.0, 700.0),
    "desktop": (2000.0, 1000.0),
}
DEFAULT_GLOBAL_TOLERANCE_M = 100.0
DEFAULT_FACILITY_CODE_RADIUS_M = 40.0

# Session policy
DEFAULT_DEBOUNCE_SECONDS = 3
USER_LOCK_TIMEOUT_S = 30.0
DEFAULT_MIN_DWELL_MINUTES = 120
DEFAULT_MIN_REASON_LENGTH = 20
DEFAULT_MAX_REASON_LENGTH = 500
DEFAULT_LATENESS_CUTOFF = time(9, 0)
DEFAULT_CHECK_IN_DEADLINE = time(15, 0)
DEFAULT_STANDARD_END_TIME = time(17, 0)
AUTO_CLOSE_TIME = time(23, 59, 59)
AUTO_CHECKOUT_METHOD = "auto_system"
LOCATION_CHECKOUT_METHOD = "location"
REMOTE_CHECKOUT_METHOD = "remote"

DEFAULT_FACILITY_REFRESH_SECONDS = 300
