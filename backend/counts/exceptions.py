"""
Count reconciliation errors.

Every error carries a user-facing message and the HTTP status the API
reports it with. None of them are fatal: the caller can fix the input or
retry the operation.
"""


class CountError(Exception):
    """Base class for rejected or failed count operations"""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(CountError):
    """Missing or malformed input, rejected before any store access"""
    status_code = 400


class MismatchError(CountError):
    """Entered quantity disagrees with recorded stock"""
    status_code = 409

    def __init__(self, expected, entered):
        super().__init__(
            f"Quantity does not match. Expected: {expected}, Entered: {entered}. Please recount."
        )
        self.expected = expected
        self.entered = entered

    def to_dict(self):
        return {
            'error': self.message,
            'code': 'mismatch',
            'expected': self.expected,
            'entered': self.entered,
        }


class ConflictError(CountError):
    """
    Another open session recorded a different quantity for the barcode.

    Raised before any write. ``declined`` is True when the caller was asked
    and refused to override.
    """
    status_code = 409

    DECLINED_MESSAGE = "Count not updated. Please recount if necessary."

    def __init__(self, conflicts, entered, location, declined=False):
        self.conflicts = list(conflicts)
        self.entered = entered
        self.location = location
        self.declined = declined
        if declined:
            message = self.DECLINED_MESSAGE
        else:
            first = self.conflicts[0]
            message = (
                f"This SKU was previously counted with a quantity of {first.quantity} "
                f"in the {first.session_label} at {location}. Update to {entered}?"
            )
        super().__init__(message)

    def to_dict(self):
        return {
            'error': self.message,
            'code': 'declined' if self.declined else 'conflict',
            'requires_confirmation': not self.declined,
            'conflicts': [
                {
                    'session_id': conflict.session_id,
                    'session': conflict.session_label,
                    'quantity': conflict.quantity,
                }
                for conflict in self.conflicts
            ],
        }


class StoreError(CountError):
    """An external store call failed; state is left as-is"""
    status_code = 503

    def __init__(self, operation, cause=None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store error during {operation}{detail}")
        self.operation = operation
        self.cause = cause

    def to_dict(self):
        return {'error': self.message, 'code': 'store_error', 'operation': self.operation}


class PartialWriteError(StoreError):
    """A later write step failed after earlier steps were applied"""

    def __init__(self, operation, cause=None, applied_steps=()):
        super().__init__(operation, cause)
        self.applied_steps = list(applied_steps)
        self.message = (
            f"{self.message}. Partially applied ({', '.join(self.applied_steps)}); "
            f"stock, progress and history may disagree until recounted."
        )
        self.args = (self.message,)

    def to_dict(self):
        data = super().to_dict()
        data['code'] = 'partial_write'
        data['applied_steps'] = self.applied_steps
        return data
