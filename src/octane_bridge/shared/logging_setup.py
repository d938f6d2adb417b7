"""
Logging setup
Maps the 1-5 log level scale of the configuration onto the logging module
"""

import logging

TRACE = 5

LEVELS = {
    1: TRACE,
    2: logging.DEBUG,
    3: logging.INFO,
    4: logging.WARNING,
    5: logging.ERROR,
}

logging.addLevelName(TRACE, "TRACE")


def configure_logging(level: int = 3) -> None:
    """Configure the root logger for one bridge invocation"""
    logging.basicConfig(
        level=LEVELS.get(level, logging.INFO),
        format="[%(levelname)s][%(name)s] %(message)s",
        force=True,
    )
    # PyGithub and urllib3 are chatty at DEBUG
    logging.getLogger("github").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
