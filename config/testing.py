from .base import *  # noqa: F401,F403
from .base import _flag

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

AUTO_INIT_DB = _flag("AUTO_INIT_DB", "0")
# Tests drive the sweep directly.
AUTO_CLOSE_ENABLED = False
RECONCILE_BACKOFF_SECONDS = 0.0
