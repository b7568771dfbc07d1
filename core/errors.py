from core.imports import jsonify


class StorefrontError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self):
        return jsonify({"message": self.message}), self.status_code


class ValidationError(StorefrontError):
    status_code = 400


class Forbidden(StorefrontError):
    status_code = 403


class NotFound(StorefrontError):
    status_code = 404


class InvalidTransition(StorefrontError):
    """Raised when an order action is not allowed from its current status."""
    status_code = 409


class OutOfStock(StorefrontError):
    status_code = 409


class ExternalServiceError(StorefrontError):
    """A proxy or provider call failed (network error, non-2xx or bad payload)."""
    status_code = 502


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error):
        app.logger.info("%s: %s", type(error).__name__, error.message)
        return error.to_response()
