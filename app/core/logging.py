import logging
import sys
from typing import Optional
from app.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure console logging for the host application.

    The debugger's fault lines arrive here through the `routing.router`
    logger; the per-directory text logs (error.log, access.log) use their
    own non-propagating loggers and are left alone.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level or settings.log_level)

    # Replace handlers, keep the fault log ones (they hang off their own loggers)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    # Silence noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("python_multipart").setLevel(logging.WARNING)
