"""
Log Handlers

This module contains utility functions to set up logging
consistently
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(module)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def init_logging(app, logger_name: str):
    """Set up logging for production"""
    app.logger.propagate = False
    server_logger = logging.getLogger(logger_name)
    if server_logger.handlers:
        app.logger.handlers = server_logger.handlers
        app.logger.setLevel(server_logger.level)
    else:
        # not running under gunicorn: log to stderr
        app.logger.handlers = [logging.StreamHandler()]
        app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    # Make all log formats consistent
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    for handler in app.logger.handlers:
        handler.setFormatter(formatter)
    app.logger.info("Logging handler established")
