"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_GEOFENCE_RADIUS_M = 100
DEFAULT_LOW_ACCURACY_M = 100.0
EARTH_RADIUS_M = 6371000

DEFAULT_MISMATCH_TOLERANCE_MINUTES = 30
DEFAULT_LOCATION_DRIFT_M = 1000.0
MAX_DAILY_HOURS = 24.0

DEFAULT_STANDARD_DAILY_HOURS = 8.0
DEFAULT_OVERTIME_MULTIPLIER = 1.5
DEFAULT_MISMATCH_HIGH_THRESHOLD = 3
DEFAULT_LOW_ATTENDANCE_RATE = 75.0
DEFAULT_HIGH_OVERTIME_HOURS = 20.0

DEFAULT_AUTO_CLOSE_INTERVAL_MINUTES = 30
DEFAULT_AUTO_CLOSE_CUTOFF = "23:59:59"

DEFAULT_BULK_MAX_WORKERS = 4
DEFAULT_RECONCILE_MAX_RETRIES = 3
DEFAULT_RECONCILE_BACKOFF_SECONDS = 0.05
