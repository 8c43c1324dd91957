# Exception Handlers
#
# All exceptions raised while handling a request are caught in rest_handler (handlers.py)
# and formatted as a json body with a single "error" member, for example:
# {
#      "error": "selected item not found"
# }
# with the status_code of the exception as HTTP status.
#
# Unlike validation and lookup errors, internal errors are logged with traceback in debug mode only
#
from http import HTTPStatus
import modelrest


class RestError(Exception):
    """
    Base class of all errors translated into an http response
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""

    def __init__(self, message="", status_code=None):
        """
        :param message: Message to be returned in the (json) body
        :param status_code: HTTP Status code
        """
        Exception.__init__(self, message)
        if status_code is not None:
            self.status_code = status_code
        self.message = str(message) or HTTPStatus(self.status_code).phrase.lower()


class ValidationError(RestError):
    """
    This exception is raised when invalid input has been detected (client side input)
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        RestError.__init__(self, message, status_code)
        modelrest.log.warning("ValidationError: %s", message)


class MethodNotAllowedError(RestError):
    """
    This exception is raised when a http method isn't supported on a route, eg. when PUTting a collection
    """

    status_code = HTTPStatus.METHOD_NOT_ALLOWED.value

    def __init__(self, message="", status_code=HTTPStatus.METHOD_NOT_ALLOWED.value):
        RestError.__init__(self, message, status_code)
        modelrest.log.warning("MethodNotAllowedError: %s", message)


class NotFoundError(RestError):
    """
    This exception is raised when an item or a collection was not found
    Repositories raise it when loading a missing record
    """

    status_code = HTTPStatus.NOT_FOUND.value

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value):
        RestError.__init__(self, message, status_code)
        modelrest.log.info("Not found: %s", message)


class ForbiddenError(RestError):
    """
    This exception is raised when a model may not be exposed to the requesting client
    """

    status_code = HTTPStatus.FORBIDDEN.value

    def __init__(self, message="", status_code=HTTPStatus.FORBIDDEN.value):
        RestError.__init__(self, message, status_code)
        modelrest.log.warning("ForbiddenError: %s", message)


class GenericError(RestError):
    """
    This exception is raised when an internal error has been detected, eg. a repository failure
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        RestError.__init__(self, message, status_code)
        modelrest.log.error("Generic Error: %s", message)


class SystemValidationError(Exception):
    """
    This exception is raised when invalid server side configuration has been detected,
    eg. two models exposed on the same url. It's raised at startup, never while serving requests.
    """

    def __init__(self, message=""):
        Exception.__init__(self, message)
        self.message = message
        modelrest.log.error("SystemValidationError: %s", message)
