"""
Environment for the test suite.

The dashboard's database module refuses to import without DATABASE_URL and
its logger writes files under LOG_DIR, so both are pointed somewhere harmless
before any test module imports the app.
"""

import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="usage-dashboard-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("USAGE_COLLECTOR_LOG_LEVEL", "WARNING")
