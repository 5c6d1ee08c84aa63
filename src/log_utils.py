"""
Logging utilities for the Azure Arc Extension Reconciler.
"""

import logging
import sys

# azure-identity and azure-core log every token request at INFO
NOISY_LOGGERS = ("azure", "urllib3")


def setup_logging(
    verbose: bool = False, log_file: str = "arc-extension-check.log"
) -> logging.Logger:
    """
    Configure console and file logging for a reconciliation run.

    Args:
        verbose: Enable DEBUG logging, including the Azure SDK loggers
        log_file: Path to log file

    Returns:
        Logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file),
        ],
    )

    sdk_level = logging.DEBUG if verbose else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    return logging.getLogger(__name__)
