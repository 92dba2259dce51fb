# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Logging setup for the wallet API.

Levels, handlers, rotation and format are all declared in etc/logging.conf;
the only thing decided here is *where* the log file goes.  The directory
defaults to ``<project>/log`` and can be moved with ONRAMPR_LOG_DIR (tests
point it at a temp dir, containers at a mounted volume).

    from core.logger import logger
    log = logger.getChild("bridge")      # -> "onrampr.bridge"

Nothing in this package logs passwords, password hashes, tokens, reset codes
or mnemonics.  Verification / reset codes reach the log only when
DEBUG_LOG_CODES is switched on.
"""

import configparser
import logging
import logging.config
import os
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_CONF_PATH = _PROJECT_ROOT / "etc" / "logging.conf"

LOGGER_NAME = "onrampr"


def _log_dir() -> Path:
    override = os.environ.get("ONRAMPR_LOG_DIR")
    return Path(override) if override else _PROJECT_ROOT / "log"


def configure_logging(conf_path: Path = _CONF_PATH) -> logging.Logger:
    """
    Apply *conf_path* with the ``%(log_file)s`` placeholder resolved, and
    return the application logger.
    """
    log_dir = _log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    text = conf_path.read_text(encoding="utf-8").replace(
        "%(log_file)s", str(log_dir / "app.log")
    )
    # Raw parser: the format strings hold %(asctime)s and friends
    parser = configparser.RawConfigParser()
    parser.read_string(text)
    logging.config.fileConfig(parser, disable_existing_loggers=False)
    return logging.getLogger(LOGGER_NAME)


logger = configure_logging()
