"""
Package: democms
Create and configure the Flask app, logging, and database

A small CMS the browser steps run against: a login form, an admin area
and a tree of pages.
"""

import sys
from flask import Flask
from democms import config
from democms.common import log_handlers

# One global app so `from democms import app` gets the instance with routes registered
app = Flask(__name__)
app.config.from_object(config)

from democms.models import db  # noqa: E402  pylint: disable=wrong-import-position

db.init_app(app)

with app.app_context():
    # Imported after the app exists so @app.route binds to it
    from democms import routes, models  # noqa: F401,E402  pylint: disable=unused-import, wrong-import-position
    from democms.common import error_handlers, cli_commands  # noqa: F401,E402  pylint: disable=unused-import, wrong-import-position

    try:
        db.create_all()
    except Exception as err:  # pylint: disable=broad-except
        app.logger.critical("%s: Cannot continue", err)
        sys.exit(4)

    log_handlers.init_logging(app, "gunicorn.error")

    app.logger.info(70 * "*")
    app.logger.info("  D E M O   C M S   S E R V I C E   I N I T  ".center(70, "*"))
    app.logger.info(70 * "*")


def create_app():
    """Factory-style accessor to the (already created) global app"""
    return app
