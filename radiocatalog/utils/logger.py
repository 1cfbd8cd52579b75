"""Logging utilities."""

import logging
from pathlib import Path

from radiocatalog.core.config import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """Setup application logging.

    Logs go both to the configured file and to stderr.

    Args:
        config: Logging configuration
    """
    log_file = Path(config.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(log_file), logging.StreamHandler()],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
