"""Error kinds raised by the content layer.

Every failure a management screen can hit has its own class and a stable
``code`` so callers render a specific message instead of a blanket one.
"""


class ContentError(Exception):
    code = 'content_error'
    status = 500

    def __init__(self, message='', **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'error': self.message, 'code': self.code}
        payload.update(self.details)
        return payload


class FieldError:
    def __init__(self, field, message):
        self.field = field
        self.message = message

    def to_dict(self):
        return {'field': self.field, 'message': self.message}

    def __repr__(self):
        return f'FieldError({self.field!r}, {self.message!r})'


class ValidationError(ContentError):
    code = 'validation_error'
    status = 400

    def __init__(self, message='', fields=None):
        self.fields = list(fields or [])
        super().__init__(message or '; '.join(f.message for f in self.fields))

    def to_dict(self):
        payload = super().to_dict()
        payload['fields'] = [f.to_dict() for f in self.fields]
        return payload


class UploadError(ContentError):
    code = 'upload_error'
    status = 502
    HINT = 'Make sure the media bucket exists and is writable by the application.'

    def __init__(self, message=''):
        super().__init__(f'Error uploading image: {message}\n\n{self.HINT}')
        self.storage_message = message


class StorageError(Exception):
    """Raised by a bucket implementation; the message is shown verbatim."""


class WriteError(ContentError):
    code = 'write_error'
    status = 400


class ConstraintViolation(WriteError):
    code = 'constraint_violation'
    status = 409


class TransportError(ContentError):
    code = 'transport_error'
    status = 503


class NotFoundError(ContentError):
    code = 'not_found'
    status = 404


class UnknownKind(NotFoundError):
    code = 'unknown_kind'


class BusyError(ContentError):
    code = 'busy'
    status = 409


class ConfirmationRequired(ContentError):
    code = 'confirmation_required'
    status = 400


class InvalidTransition(ContentError):
    code = 'invalid_transition'
    status = 409
