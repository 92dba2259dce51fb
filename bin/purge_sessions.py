# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Maintenance script – deletes expired device sessions.

Expired rows are already ignored at lookup time; this only keeps the table
small.  Safe to run from cron at any interval:
    python bin/purge_sessions.py

Reads DATABASE_URL (and the rest of the settings) from etc/app.conf.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/purge_sessions.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from core.config import get_settings      # noqa: E402
from core.logger import logger            # noqa: E402
from core.sessions import SessionTracker  # noqa: E402
from core.store import CredentialStore    # noqa: E402
from database import Database             # noqa: E402


def purge() -> int:
    database = Database(get_settings().database_url)
    try:
        removed = SessionTracker(CredentialStore(database)).purge_expired()
    finally:
        database.dispose()
    logger.info("purged %d expired device session(s)", removed)
    print(f"[purge_sessions] {removed} expired session(s) removed.")
    return removed


if __name__ == "__main__":
    purge()
