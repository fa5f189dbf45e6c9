"""Settings shared by every environment. Values come from the environment (.env via python-dotenv)."""
import json
import os


def _flag(name: str, default: str) -> bool:
    return bool(int(os.getenv(name, default)))


DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_core"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Geofence
GEOFENCE_DEFAULT_RADIUS_M = float(os.getenv("GEOFENCE_DEFAULT_RADIUS_M", "100"))
GEOFENCE_LOW_ACCURACY_M = float(os.getenv("GEOFENCE_LOW_ACCURACY_M", "100"))

# Reconciliation
MISMATCH_TOLERANCE_MINUTES = int(os.getenv("MISMATCH_TOLERANCE_MINUTES", "30"))
LOCATION_DRIFT_M = float(os.getenv("LOCATION_DRIFT_M", "1000"))
RECONCILE_MAX_RETRIES = int(os.getenv("RECONCILE_MAX_RETRIES", "3"))
RECONCILE_BACKOFF_SECONDS = float(os.getenv("RECONCILE_BACKOFF_SECONDS", "0.05"))

# Payroll
STANDARD_DAILY_HOURS = float(os.getenv("STANDARD_DAILY_HOURS", "8"))
OVERTIME_MULTIPLIER = float(os.getenv("OVERTIME_MULTIPLIER", "1.5"))
MISMATCH_HIGH_THRESHOLD = int(os.getenv("MISMATCH_HIGH_THRESHOLD", "3"))
LOW_ATTENDANCE_RATE = float(os.getenv("LOW_ATTENDANCE_RATE", "75"))
HIGH_OVERTIME_HOURS = float(os.getenv("HIGH_OVERTIME_HOURS", "20"))
BULK_SALARY_MAX_WORKERS = int(os.getenv("BULK_SALARY_MAX_WORKERS", "4"))
# {"2024-03": 20} overrides the Monday..Friday count for that month.
WORKING_DAYS_OVERRIDE = json.loads(os.getenv("WORKING_DAYS_OVERRIDE", "{}"))

# Auto-close
AUTO_CLOSE_ENABLED = _flag("AUTO_CLOSE_ENABLED", "1")
AUTO_CLOSE_INTERVAL_MINUTES = int(os.getenv("AUTO_CLOSE_INTERVAL_MINUTES", "30"))
AUTO_CLOSE_CUTOFF = os.getenv("AUTO_CLOSE_CUTOFF", "23:59:59")
