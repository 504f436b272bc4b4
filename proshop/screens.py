import logging

from .errors import ConfirmationRequired, FieldError, TransportError, ValidationError
from .forms import FormController
from .listing import ALL_CATEGORIES, ListingView

logger = logging.getLogger(__name__)


class ViewerSession:
    def __init__(self, is_authenticated=False, email=None):
        self.is_authenticated = is_authenticated
        self.email = email

    @classmethod
    def from_user(cls, user):
        if user is None or not getattr(user, 'is_authenticated', False):
            return cls()
        return cls(True, getattr(user, 'email', None))

    def to_dict(self):
        return {'authenticated': self.is_authenticated, 'email': self.email}


class ManagementScreen:
    """One admin screen: the loaded list, its filter and the open form."""

    def __init__(self, kind, repository, media=None, session=None, language='en', copywriter=None):
        self.kind = kind
        self.repository = repository
        self.media = media
        self.session = session or ViewerSession()
        self.language = language
        self.copywriter = copywriter
        self.form = FormController(kind, repository, media)
        self.records = []
        self.load_error = None

    def reload(self):
        try:
            self.records = self.repository.list()
        except TransportError as exc:
            # Keep showing the last list we had.
            self.load_error = exc.message
            raise
        self.load_error = None
        return self.records

    def listing(self):
        return ListingView(self.records, self.kind.category_field, self.language)

    def visible(self, category=ALL_CATEGORIES):
        return self.listing().apply_filter(category)

    def new(self):
        self.form.begin_create(len(self.records))
        return self.form.draft

    def edit(self, entity_id):
        record = self.repository.get(entity_id)
        self.form.begin_edit(record, len(self.records))
        return record

    def save(self, values=None, upload=None):
        if values:
            self.form.update_draft(values)
        if upload is not None:
            self.form.stage_image(upload)
        saved = self.form.submit()
        self.reload()
        return saved

    def cancel(self):
        self.form.cancel()

    def delete(self, entity_id, confirmed=False):
        if not confirmed:
            raise ConfirmationRequired(f'Delete this {self.kind.label.lower()}? Confirm to continue.')
        record = self.repository.get(entity_id)
        image_url = getattr(record, self.kind.image_field, None) if self.kind.image_field else None
        if image_url and self.media is not None:
            self.media.release_previous(image_url, getattr(record, 'image_object_path', None))
        self.repository.delete(entity_id)
        logger.info('%s deleted %s %s.', self.session.email or 'anonymous', self.kind.key, entity_id)
        self.reload()

    def assist(self, content_type=None, target_field='content'):
        """Ask the copywriter for a draft of ``target_field`` based on the title."""
        title = self.form.draft.get(self.kind.title_field) if self.form.is_open else None
        if not title:
            raise ValidationError(fields=[FieldError(self.kind.title_field, 'Enter a title before asking for a draft.')])
        result = self.copywriter.generate(
            content_type or f'{self.kind.label} Content',
            title,
            self.form.draft.get(target_field) or '',
        )
        if result.ok:
            self.form.update_draft({target_field: result.html})
        return result
