import logging

from flask import Blueprint, abort, current_app, jsonify, request, send_file

from ..content_kinds import ABOUT, get_kind
from ..errors import NotFoundError, TransportError
from ..listing import ALL_CATEGORIES, ListingView, apply_ordering
from ..repository import EntityRepository
from ..seed import SAMPLE_ABOUT, SAMPLE_CONTENT, sample_record, sample_records
from ..utils import clean_text, parse_int

logger = logging.getLogger(__name__)
main_bp = Blueprint('main', __name__)
PUBLIC_PAGE_SIZE = 12
PUBLIC_CACHE_CONTROL = 'public, max-age=60, s-maxage=120'


def _language():
    supported = current_app.config.get('SUPPORTED_LANGUAGES') or ('en',)
    requested = clean_text(request.args.get('lang', ''), 8).lower()
    if requested in supported:
        return requested
    return current_app.config.get('DEFAULT_LANGUAGE') or supported[0]


def _serialize(record):
    return record if isinstance(record, dict) else record.to_dict()


def _public_response(payload):
    response = jsonify(payload)
    response.headers['Cache-Control'] = PUBLIC_CACHE_CONTROL
    return response


@main_bp.route('/api/<kind_key>')
def content_list(kind_key):
    kind = get_kind(kind_key)
    try:
        records = EntityRepository(kind).list()
    except TransportError:
        if not SAMPLE_CONTENT.get(kind.key):
            raise
        logger.warning('Serving sample %s, the database is unreachable.', kind.key)
        records = []
    fallback = False
    if not records and SAMPLE_CONTENT.get(kind.key):
        records = apply_ordering(sample_records(kind.key), kind.default_order)
        fallback = True

    language = _language()
    view = ListingView(records, kind.category_field, language)
    payload = {
        'kind': kind.key,
        'language': language,
        'fallback': fallback,
    }
    if kind.category_field:
        category = clean_text(request.args.get('category', ''), 100) or ALL_CATEGORIES
        page = view.page(
            parse_int(request.args.get('page'), default=1, min_value=1, max_value=1000),
            parse_int(request.args.get('per_page'), default=PUBLIC_PAGE_SIZE, min_value=1, max_value=100),
            category,
        )
        payload.update(page.to_dict(_serialize))
        payload['category'] = category
        payload['all_label'] = view.all_label
        payload['categories'] = view.categories()
        payload['counts'] = view.count_by_category()
    else:
        payload['items'] = [_serialize(record) for record in records]
        payload['total'] = len(records)
    return _public_response(payload)


@main_bp.route('/api/<kind_key>/<slug>')
def content_detail(kind_key, slug):
    kind = get_kind(kind_key)
    if not kind.slug_field:
        abort(404)
    slug = clean_text(slug, 300)
    try:
        record = EntityRepository(kind).get_by_slug(slug)
    except (NotFoundError, TransportError):
        # Keep detail pages populated with showcase content instead of a 404.
        samples = sample_records(kind.key)
        if not samples:
            raise
        item = sample_record(kind.key, slug) or samples[0]
        return _public_response({'item': item, 'fallback': True})
    return _public_response({'item': record.to_dict(), 'fallback': False})


@main_bp.route('/api/about')
def about():
    try:
        record = EntityRepository(ABOUT).first()
    except TransportError:
        logger.warning('Serving sample about content, the database is unreachable.')
        record = None
    if record is None:
        return _public_response({'item': dict(SAMPLE_ABOUT), 'fallback': True})
    return _public_response({'item': record.to_dict(), 'fallback': False})


@main_bp.route('/media/<bucket_name>/<path:object_path>')
def media_file(bucket_name, object_path):
    bucket = current_app.extensions['media_bucket']
    if bucket_name != bucket.name:
        abort(404)
    full_path = bucket.resolve(object_path)
    if not full_path:
        abort(404)
    response = send_file(full_path, conditional=True, max_age=None)
    response.headers['Cache-Control'] = f"public, max-age={current_app.config['MEDIA_CACHE_CONTROL']}"
    response.headers['Cross-Origin-Resource-Policy'] = 'cross-origin'
    return response
