"""Form state for the content management screens.

A controller moves between four states::

    idle -> creating | editing -> saving -> idle
                 ^                   |
                 +---- on failure ---+

Required fields (and the image on first creation) are checked before
anything leaves the process. A save commits staged media first, then writes
the row, then releases the image it replaced. There is no version check, so
the last successful write wins.
"""
import copy
import logging

from .errors import BusyError, ContentError, FieldError, InvalidTransition, ValidationError
from .slugs import slugify

logger = logging.getLogger(__name__)

STATE_IDLE = 'idle'
STATE_CREATING = 'creating'
STATE_EDITING = 'editing'
STATE_SAVING = 'saving'
UNEXPECTED_ERROR_MESSAGE = 'An unexpected error occurred.'


class FormController:
    def __init__(self, kind, repository, media=None):
        self.kind = kind
        self.repository = repository
        self.media = media
        self.state = STATE_IDLE
        self.record = None
        self.draft = {}
        self.staged = None
        self.error = None
        self._baseline = {}
        self._defaults = {}

    @property
    def busy(self):
        return self.state == STATE_SAVING

    @property
    def is_open(self):
        return self.state in (STATE_CREATING, STATE_EDITING)

    def begin_create(self, existing_count=0):
        self._guard_not_saving()
        self.record = None
        self._open(STATE_CREATING, self.kind.default_draft(existing_count), existing_count)

    def begin_edit(self, record, existing_count=0):
        self._guard_not_saving()
        self.record = record
        draft = {name: copy.deepcopy(getattr(record, name, None)) for name in self.kind.field_names}
        self._open(STATE_EDITING, draft, existing_count)

    def _open(self, state, draft, existing_count):
        self.state = state
        self.draft = draft
        self._baseline = copy.deepcopy(draft)
        self._defaults = self.kind.default_draft(existing_count)
        self.staged = None
        self.error = None

    def _guard_not_saving(self):
        if self.state == STATE_SAVING:
            raise BusyError('A save is already in progress.')

    def _require_open(self):
        self._guard_not_saving()
        if not self.is_open:
            raise InvalidTransition('Open a record for editing first.')

    def update_draft(self, values):
        self._require_open()
        self.draft.update(self.kind.coerce(values))
        return self.draft

    def stage_image(self, pending):
        self._require_open()
        if not self.kind.image_field:
            raise ValidationError(fields=[FieldError('image', f'{self.kind.label} records do not take an image.')])
        self.staged = pending

    def changed_fields(self):
        names = set(self.draft) | set(self._baseline)
        return sorted(name for name in names if self.draft.get(name) != self._baseline.get(name))

    @property
    def dirty(self):
        return self.staged is not None or bool(self.changed_fields())

    @property
    def current_image(self):
        if not self.kind.image_field or self.record is None:
            return None
        return getattr(self.record, self.kind.image_field, None)

    @property
    def preview_url(self):
        if self.staged is not None:
            return self.staged.preview_url
        return self.current_image

    def validate(self):
        errors = []
        for name in self.kind.required:
            field = self.kind.field(name)
            if field.is_blank(self.draft.get(name)):
                errors.append(FieldError(name, f'{field.label} is required.'))
        if (
            self.kind.image_required
            and self.state == STATE_CREATING
            and self.staged is None
            and not self.current_image
        ):
            errors.append(
                FieldError(self.kind.image_field, f'Please upload an image for the {self.kind.label.lower()}.')
            )
        if self.kind.slug_field and not errors and not slugify(self.draft.get(self.kind.title_field)):
            errors.append(FieldError(self.kind.title_field, 'Unable to generate a valid slug from this title.'))
        return errors

    def build_payload(self, committed=None):
        payload = self.kind.coerce({name: self.draft.get(name) for name in self.kind.field_names})
        for name, default in self._defaults.items():
            field = self.kind.field(name)
            if default is not None and field is not None and field.is_blank(payload.get(name)):
                payload[name] = field.coerce(default)
        if self.kind.slug_field:
            payload[self.kind.slug_field] = slugify(payload.get(self.kind.title_field))
        payload.update(self.kind.derived_fields(payload))
        if committed is not None:
            payload[self.kind.image_field] = committed.url
            payload['image_object_path'] = committed.object_path
        return payload

    def submit(self):
        self._require_open()
        errors = self.validate()
        if errors:
            error = ValidationError(fields=errors)
            self.error = error.message
            raise error

        resume_state = self.state
        previous_url = self.current_image
        previous_object_path = getattr(self.record, 'image_object_path', None) if self.record is not None else None
        self.state = STATE_SAVING
        committed = None
        try:
            if self.staged is not None:
                committed = self.media.commit(self.staged, self.kind.media_folder)
            payload = self.build_payload(committed)
            if resume_state == STATE_EDITING:
                saved = self.repository.update(self.record.id, payload)
            else:
                saved = self.repository.create(payload)
        except Exception as exc:
            self.state = resume_state
            self.error = exc.message if isinstance(exc, ContentError) else UNEXPECTED_ERROR_MESSAGE
            if committed is not None:
                # The row never pointed at this object, so drop it.
                self.media.release_previous(committed.url, committed.object_path)
            raise

        if committed is not None and previous_url:
            self.media.release_previous(previous_url, previous_object_path)
        self._close()
        return saved

    def cancel(self):
        self._guard_not_saving()
        self._close()

    def _close(self):
        self.state = STATE_IDLE
        self.record = None
        self.draft = {}
        self.staged = None
        self.error = None
        self._baseline = {}
        self._defaults = {}
