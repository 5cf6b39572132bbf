from flask import jsonify


class RentalError(Exception):
    """Base class for errors recovered at the request boundary."""
    status_code = 500
    default_message = 'An internal error occurred.'

    def __init__(self, message=None, errors=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.errors = errors or {}

    def to_dict(self):
        payload = {'success': False, 'message': self.message}
        if self.errors:
            payload['errors'] = self.errors
        return payload


class ValidationError(RentalError):
    """Missing or malformed input. Never reaches the network."""
    status_code = 400
    default_message = 'Please correct the highlighted fields.'


class NotFoundError(RentalError):
    status_code = 404
    default_message = 'Resource not found.'


class ExternalServiceError(RentalError):
    """Geocoder, payment provider or database unreachable / non-2xx."""
    status_code = 502
    default_message = 'An external service is unavailable. Please try again later.'


class PaymentDeclined(RentalError):
    status_code = 402
    default_message = 'Payment not successful.'

    def __init__(self, message=None, provider_status=None):
        super().__init__(message)
        self.provider_status = provider_status

    def to_dict(self):
        payload = super().to_dict()
        if self.provider_status:
            payload['status'] = self.provider_status
        return payload


def register_error_handlers(app):
    @app.errorhandler(RentalError)
    def handle_rental_error(error):
        if error.status_code >= 500:
            app.logger.error('%s: %s', type(error).__name__, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'success': False, 'message': 'Not found'}), 404
