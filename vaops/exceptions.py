"""
Error kinds raised by the PIREP core.

Each error carries the HTTP status and a stable error code so the API
layer can serialise it without a lookup table.
"""


class VaopsError(Exception):
    """Base class for all errors the core reports to callers."""
    status_code = 400
    error = 'error'
    default_message = 'Request failed'

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {'error': self.error, 'message': self.message}


class UserNotAtDepartureAirport(VaopsError):
    error = 'user-not-at-airport'
    default_message = 'Pilot is not at the departure airport'


class AircraftPermissionDenied(VaopsError):
    error = 'aircraft-permission-denied'
    default_message = 'Pilot is not allowed to fly this aircraft'


class AircraftNotAtDepartureAirport(VaopsError):
    error = 'aircraft-not-at-airport'
    default_message = 'Aircraft is not at the departure airport'


class PirepCancelled(VaopsError):
    error = 'pirep-cancelled'
    default_message = 'PIREP has been cancelled, updates are not allowed'


class NotFound(VaopsError):
    status_code = 404
    error = 'not-found'
    default_message = 'Not found'


class ValidationFailed(VaopsError):
    error = 'validation-failed'
    default_message = 'Invalid input'


class InvalidTransition(ValidationFailed):
    error = 'invalid-transition'
    default_message = 'PIREP cannot make this transition from its current state'


class FinanceError(VaopsError):
    status_code = 422
    error = 'finance-error'
    default_message = 'Finances could not be computed for this PIREP'
