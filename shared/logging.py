import logging
import sys
import time

from pythonjsonlogger import jsonlogger


def setup_logging(service_name: str, log_level: str = "INFO") -> None:
    """JSON logs on stdout, one object per record, stamped with the service name."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if root_logger.handlers:
        root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": service_name},
    )
    formatter.converter = time.gmtime
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from libraries
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiokafka"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
