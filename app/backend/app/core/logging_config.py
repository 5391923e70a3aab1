"""Logging configuration for the API process."""

import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging with a single stdout handler.

    Safe to call more than once; the handler list is replaced each time.
    """

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    # SQL echo is controlled by SQLAlchemy's own flags.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
