import json
import logging
import sys
from media_gateway.config import settings

def setup_logger(name: str = "MediaGateway"):
    logger = logging.getLogger(name)
    logger.setLevel(settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    # Avoid duplicate handlers
    if not logger.handlers:
        logger.addHandler(handler)

    return logger


def audit_line(event: str, **fields) -> str:
    """Format an audit record as `EVENT: key="value" ...`. Values are JSON-quoted so they cannot add fields."""
    parts = " ".join(f"{key}={json.dumps(str(value))}" for key, value in fields.items() if value is not None)
    return f"{event}: {parts}" if parts else event


logger = setup_logger()
