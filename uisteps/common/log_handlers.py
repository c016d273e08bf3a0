"""
Log Handlers

Gives the step library's logger the same record format the demo site uses,
so a behave run interleaves both streams readably.
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(module)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def init_logging(level="INFO", logger_name: str = "uisteps") -> logging.Logger:
    """Attach a stderr handler to the library logger (once) and set its level"""
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(handler)
    logger.info("Logging handler established")
    return logger
