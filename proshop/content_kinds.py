"""Entity kind descriptors.

Each management screen is driven by one ``EntityKind``: which model it edits,
how form values are coerced, which fields are required, where images live in
the bucket and how the list is ordered by default.
"""
from datetime import date

from .errors import UnknownKind
from .models import About, Article, Award, Faq, Portfolio, Product, Testimonial
from .slugs import estimate_read_time
from .utils import (
    clean_text,
    parse_date,
    parse_int,
    parse_json_list,
    parse_string_list,
    sanitize_html,
)

FIELD_TEXT = 'text'
FIELD_HTML = 'html'
FIELD_INT = 'int'
FIELD_LIST = 'list'
FIELD_JSON = 'json'
FIELD_DATE = 'date'


class Field:
    def __init__(self, name, kind=FIELD_TEXT, max_length=255, label=None):
        self.name = name
        self.kind = kind
        self.max_length = max_length
        self.label = label or name.replace('_', ' ').capitalize()

    def coerce(self, value):
        if self.kind == FIELD_HTML:
            return sanitize_html(value, self.max_length)
        if self.kind == FIELD_INT:
            return parse_int(value, default=0, min_value=-100000, max_value=100000)
        if self.kind == FIELD_LIST:
            return parse_string_list(value, max_length=self.max_length)
        if self.kind == FIELD_JSON:
            return parse_json_list(value)
        if self.kind == FIELD_DATE:
            return parse_date(value)
        return clean_text(value, self.max_length)

    def is_blank(self, value):
        if value is None:
            return True
        if self.kind == FIELD_INT:
            return not value
        if isinstance(value, str):
            return not value.strip()
        if isinstance(value, (list, tuple)):
            return not value
        return False


class EntityKind:
    def __init__(
        self,
        key,
        label,
        model,
        fields,
        title_field,
        slug_field=None,
        required=(),
        image_field=None,
        image_required=False,
        media_folder=None,
        default_order=(('id', False),),
        category_field=None,
        defaults=None,
        derive=None,
        singleton=False,
    ):
        self.key = key
        self.label = label
        self.model = model
        self.fields = tuple(fields)
        self.title_field = title_field
        self.slug_field = slug_field
        self.required = tuple(required)
        self.image_field = image_field
        self.image_required = image_required
        self.media_folder = media_folder
        self.default_order = tuple(default_order)
        self.category_field = category_field
        self._defaults = defaults
        self._derive = derive
        self.singleton = singleton

    @property
    def field_names(self):
        return tuple(field.name for field in self.fields)

    def field(self, name):
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def default_draft(self, existing_count=0):
        draft = {field.name: None for field in self.fields}
        if self._defaults:
            draft.update(self._defaults(existing_count))
        return draft

    def coerce(self, values):
        coerced = {}
        for name, value in (values or {}).items():
            field = self.field(name)
            if field is not None:
                coerced[name] = field.coerce(value)
        return coerced

    def derived_fields(self, payload):
        if not self._derive:
            return {}
        return self._derive(payload)

    def writable_columns(self):
        names = set(self.field_names)
        if self.slug_field:
            names.add(self.slug_field)
        if self.image_field:
            names.update((self.image_field, 'image_object_path'))
        names.update(self.derived_fields({}).keys())
        return names

    def __repr__(self):
        return f'<EntityKind {self.key}>'


def _article_defaults(existing_count):
    return {
        'category': 'Education',
        'author': 'Admin',
        'published_at': date.today(),
    }


def _article_derived(payload):
    return {'read_time': estimate_read_time(payload.get('content') or '')}


def _award_defaults(existing_count):
    return {'year': str(date.today().year)}


def _faq_defaults(existing_count):
    return {'order': existing_count + 1}


PRODUCTS = EntityKind(
    key='products',
    label='Product',
    model=Product,
    fields=(
        Field('name', max_length=200),
        Field('category', max_length=100),
        Field('description', max_length=10000),
        Field('features', FIELD_LIST, max_length=120),
        Field('detailed_features', FIELD_JSON),
        Field('ideal_applications', FIELD_JSON),
    ),
    title_field='name',
    slug_field='slug',
    required=('name',),
    image_field='image_path',
    image_required=True,
    media_folder='products',
    default_order=(('created_at', True), ('id', False)),
    category_field='category',
    defaults=lambda count: {'category': 'Single-Split', 'features': []},
)

PORTFOLIOS = EntityKind(
    key='portfolios',
    label='Portfolio',
    model=Portfolio,
    fields=(
        Field('title', max_length=200),
        Field('category', max_length=100),
        Field('location', max_length=200),
        Field('products_used', max_length=500),
        Field('summary', max_length=10000),
        Field('challenge', max_length=10000),
        Field('solution', max_length=10000),
        Field('impact', max_length=10000),
    ),
    title_field='title',
    slug_field='slug',
    required=('title',),
    image_field='image_path',
    image_required=True,
    media_folder='portfolios',
    default_order=(('created_at', True), ('id', False)),
    category_field='category',
    defaults=lambda count: {'category': 'Residential'},
)

ARTICLES = EntityKind(
    key='articles',
    label='Article',
    model=Article,
    fields=(
        Field('title', max_length=300),
        Field('excerpt', max_length=2000),
        Field('content', FIELD_HTML, max_length=100000),
        Field('category', max_length=100),
        Field('author', max_length=120),
        Field('published_at', FIELD_DATE),
    ),
    title_field='title',
    slug_field='slug',
    required=('title',),
    image_field='image_path',
    image_required=True,
    media_folder='articles',
    default_order=(('published_at', True), ('id', False)),
    category_field='category',
    defaults=_article_defaults,
    derive=_article_derived,
)

AWARDS = EntityKind(
    key='awards',
    label='Award',
    model=Award,
    fields=(
        Field('year', max_length=20),
        Field('name', max_length=300),
        Field('institution', max_length=300),
    ),
    title_field='name',
    required=('year', 'name', 'institution'),
    default_order=(('year', True), ('id', False)),
    defaults=_award_defaults,
)

TESTIMONIALS = EntityKind(
    key='testimonials',
    label='Testimonial',
    model=Testimonial,
    fields=(
        Field('name', max_length=200),
        Field('role', max_length=200),
        Field('company', max_length=200),
        Field('content', max_length=4000),
    ),
    title_field='name',
    required=('name',),
    image_field='image',
    image_required=True,
    media_folder='testimonials',
    default_order=(('created_at', True), ('id', False)),
)

FAQS = EntityKind(
    key='faqs',
    label='FAQ',
    model=Faq,
    fields=(
        Field('q', max_length=500, label='Question'),
        Field('a', max_length=10000, label='Answer'),
        Field('order', FIELD_INT),
    ),
    title_field='q',
    required=('q',),
    default_order=(('order', False), ('id', False)),
    defaults=_faq_defaults,
)

ABOUT = EntityKind(
    key='about',
    label='About',
    model=About,
    fields=(
        Field('content', max_length=20000),
        Field('vision', max_length=10000),
        Field('projects_count', max_length=20),
    ),
    title_field='content',
    image_field='image_path',
    media_folder='about',
    defaults=lambda count: {'projects_count': '0'},
    singleton=True,
)

ENTITY_KINDS = {
    kind.key: kind
    for kind in (PRODUCTS, PORTFOLIOS, ARTICLES, AWARDS, TESTIMONIALS, FAQS)
}
ALL_KINDS = dict(ENTITY_KINDS, about=ABOUT)


def get_kind(key, include_singletons=False):
    registry = ALL_KINDS if include_singletons else ENTITY_KINDS
    kind = registry.get((key or '').strip().lower())
    if kind is None:
        raise UnknownKind(f'Unknown content kind: {key}')
    return kind
