######################################################################
# Copyright 2016, 2024 John J. Rofrano. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
######################################################################
"""
Module: error_handlers

Every error is rendered with the error.html page, since the site is read
by a browser rather than an API client
"""

from flask import current_app as app
from flask import render_template
from werkzeug.exceptions import HTTPException, MethodNotAllowed
from democms.models import DataValidationError, DatabaseError
from democms.common import status

SERVER_ERROR_MESSAGE = "An unexpected error occurred."


def _error(status_code: int, title: str, message: str):
    """Render the shared error page"""
    return render_template("error.html", title=title, message=message), status_code


######################################################################
# Error Handlers
######################################################################
@app.errorhandler(DataValidationError)
def request_validation_error(error):
    """Handles invalid form data with 400_BAD_REQUEST"""
    app.logger.warning("Bad Request: %s", error)
    return _error(status.HTTP_400_BAD_REQUEST, "Bad Request", str(error))


@app.errorhandler(status.HTTP_400_BAD_REQUEST)
@app.errorhandler(status.HTTP_403_FORBIDDEN)
@app.errorhandler(status.HTTP_405_METHOD_NOT_ALLOWED)
def client_error(error: HTTPException):
    """Renders 400, 403 and 405 with werkzeug's name and description"""
    app.logger.warning("%s: %s", error.name, error.description)
    body, code = _error(error.code, error.name, error.description)
    headers = {}
    if isinstance(error, MethodNotAllowed) and error.valid_methods:
        headers["Allow"] = ", ".join(error.valid_methods)
    return body, code, headers


@app.errorhandler(status.HTTP_404_NOT_FOUND)
def not_found(error):
    """Handles pages not found with 404_NOT_FOUND"""
    app.logger.warning("Not Found: %s", error)
    return _error(status.HTTP_404_NOT_FOUND, "Page not found", "The requested page could not be found.")


@app.errorhandler(DatabaseError)
@app.errorhandler(status.HTTP_500_INTERNAL_SERVER_ERROR)
def internal_server_error(error):
    """Handles database and unexpected errors with 500_INTERNAL_SERVER_ERROR"""
    # details stay in the log
    app.logger.error("%s: %s", type(error).__name__, error)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", SERVER_ERROR_MESSAGE)
