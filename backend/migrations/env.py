# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Alembic environment – points migrations at the database named by
DATABASE_URL in etc/app.conf (or the process environment), through the same
Settings class the application validates at startup.
"""

import os
import sys

# backend/ for the model imports, the project root for etc/app.conf
_BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
for _path in (_BACKEND_DIR, os.path.dirname(_BACKEND_DIR)):
    if _path not in sys.path:
        sys.path.insert(0, _path)

from alembic import context  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

from core.config import get_settings  # noqa: E402
from database import Base  # noqa: E402

# Every model must be imported so Base.metadata sees its table
import models.activity_log  # noqa: F401, E402
import models.bridge_transaction  # noqa: F401, E402
import models.device_session  # noqa: F401, E402
import models.user  # noqa: F401, E402
import models.wallet  # noqa: F401, E402
import models.wallet_backup  # noqa: F401, E402

_OPTIONS = {"target_metadata": Base.metadata, "compare_type": True}


def _database_url():
    # -x url=... wins over the configured one
    return context.get_x_argument(as_dictionary=True).get("url") or get_settings().database_url


def run_migrations_online():
    engine = create_engine(_database_url())
    try:
        with engine.connect() as conn:
            context.configure(connection=conn, **_OPTIONS)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


def run_migrations_offline():
    """Emit SQL to stdout instead of touching a live database."""
    context.configure(url=_database_url(), literal_binds=True, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
