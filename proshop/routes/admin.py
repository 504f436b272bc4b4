from flask import Blueprint, current_app, jsonify, request, session
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from .. import get_csrf_token
from ..content_kinds import ABOUT, ENTITY_KINDS, get_kind
from ..errors import FieldError, ValidationError
from ..listing import ALL_CATEGORIES
from ..media import stage_upload
from ..models import User, db
from ..repository import EntityRepository
from ..screens import ManagementScreen, ViewerSession
from ..utils import clean_text, parse_positive_int, utc_now_naive

admin_bp = Blueprint('admin', __name__)
AUTH_DUMMY_HASH = generate_password_hash('Proshop::dummy-auth-check')
CONFIRM_VALUES = {'yes', 'true', '1', 'on'}


def is_strong_password(value):
    password = value or ''
    return (
        len(password) >= current_app.config.get('ADMIN_PASSWORD_MIN_LENGTH', 10)
        and any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
        and any(not c.isalnum() for c in password)
    )


def _request_values():
    if request.is_json:
        values = request.get_json(silent=True) or {}
        if not isinstance(values, dict):
            raise ValidationError('Expected a JSON object.')
        return dict(values)
    values = request.form.to_dict()
    # Repeated form keys (e.g. features) arrive as lists.
    for key in request.form:
        items = request.form.getlist(key)
        if len(items) > 1:
            values[key] = items
    values.pop('_csrf_token', None)
    return values


def _staged_image():
    file = request.files.get('image')
    if not file or not file.filename:
        return None
    return stage_upload(
        file,
        allowed_extensions=current_app.config['ALLOWED_IMAGE_EXTENSIONS'],
        allowed_mime_types=current_app.config['ALLOWED_UPLOAD_MIME_TYPES'],
        max_pixels=current_app.config['MAX_UPLOAD_IMAGE_PIXELS'],
    )


def _language():
    requested = clean_text(request.args.get('lang') or request.headers.get('X-Language'), 8).lower()
    supported = current_app.config.get('SUPPORTED_LANGUAGES') or ('en',)
    return requested if requested in supported else current_app.config.get('DEFAULT_LANGUAGE', 'en')


def _screen(kind):
    return ManagementScreen(
        kind,
        EntityRepository(kind),
        media=current_app.extensions['media'],
        session=ViewerSession.from_user(current_user),
        language=_language(),
        copywriter=current_app.extensions['copywriter'],
    )


def _screen_payload(screen, record=None, status=200, category=ALL_CATEGORIES):
    listing = screen.listing()
    payload = {
        'kind': screen.kind.key,
        'category': category,
        'items': [item.to_dict() for item in screen.visible(category)],
        'all_label': listing.all_label,
        'categories': listing.categories() if screen.kind.category_field else [],
        'counts': listing.count_by_category(),
    }
    if record is not None:
        payload['item'] = record.to_dict()
    return jsonify(payload), status


# Auth
@admin_bp.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'GET':
        return jsonify({'csrf_token': get_csrf_token(), **ViewerSession.from_user(current_user).to_dict()})
    if current_user.is_authenticated:
        return jsonify(ViewerSession.from_user(current_user).to_dict())

    values = _request_values()
    identifier = clean_text(values.get('email') or values.get('username'), 120).lower()
    password = values.get('password') or ''
    user = User.query.filter((User.email == identifier) | (User.username == identifier)).first()
    password_ok = False
    if user:
        password_ok = user.check_password(password)
    else:
        # Keep response timing closer for unknown accounts.
        check_password_hash(AUTH_DUMMY_HASH, password)
    if not (user and password_ok):
        current_app.logger.warning('Failed admin login for %s.', identifier or '(blank)')
        return jsonify({'error': 'Invalid email or password.', 'code': 'invalid_credentials'}), 401

    session.clear()
    login_user(user)
    user.last_login_at = utc_now_naive()
    db.session.commit()
    return jsonify({'csrf_token': get_csrf_token(), **ViewerSession.from_user(user).to_dict()})


@admin_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    session.clear()
    return jsonify({'authenticated': False, 'email': None})


@admin_bp.route('/session')
def session_info():
    return jsonify({'csrf_token': get_csrf_token(), **ViewerSession.from_user(current_user).to_dict()})


@admin_bp.route('/password', methods=['POST'])
@login_required
def change_password():
    values = _request_values()
    if not current_user.check_password(values.get('current_password') or ''):
        raise ValidationError(fields=[FieldError('current_password', 'Current password is incorrect.')])
    new_password = values.get('new_password') or ''
    if new_password != (values.get('confirm_password') or new_password):
        raise ValidationError(fields=[FieldError('confirm_password', 'Passwords do not match.')])
    if not is_strong_password(new_password):
        raise ValidationError(fields=[FieldError(
            'new_password',
            'Password must include upper and lower case letters, a digit and a symbol.',
        )])
    current_user.set_password(new_password)
    db.session.commit()
    current_app.logger.info('Admin %s changed their password.', current_user.username)
    return jsonify({'status': 'ok'})


# Dashboard
@admin_bp.route('/dashboard')
@login_required
def dashboard():
    counts = {key: EntityRepository(kind).count() for key, kind in ENTITY_KINDS.items()}
    return jsonify({'counts': counts, **ViewerSession.from_user(current_user).to_dict()})


# About (single record)
@admin_bp.route('/about', methods=['GET', 'POST'])
@login_required
def about():
    screen = _screen(ABOUT)
    record = screen.repository.first()
    if request.method == 'GET':
        item = record.to_dict() if record is not None else ABOUT.default_draft()
        return jsonify({'kind': ABOUT.key, 'item': item})

    if record is None:
        screen.new()
    else:
        screen.form.begin_edit(record)
    saved = screen.save(_request_values(), _staged_image())
    return jsonify({'kind': ABOUT.key, 'item': saved.to_dict()})


# Content kinds
@admin_bp.route('/<kind_key>', methods=['GET', 'POST'])
@login_required
def content_collection(kind_key):
    screen = _screen(get_kind(kind_key))
    screen.reload()
    if request.method == 'GET':
        category = clean_text(request.args.get('category'), 100) or ALL_CATEGORIES
        return _screen_payload(screen, category=category)

    screen.new()
    saved = screen.save(_request_values(), _staged_image())
    return _screen_payload(screen, saved, status=201)


@admin_bp.route('/<kind_key>/<int:entity_id>', methods=['GET', 'POST'])
@login_required
def content_item(kind_key, entity_id):
    screen = _screen(get_kind(kind_key))
    if request.method == 'GET':
        record = screen.repository.get(entity_id)
        return jsonify({'kind': screen.kind.key, 'item': record.to_dict()})

    screen.reload()
    screen.edit(entity_id)
    saved = screen.save(_request_values(), _staged_image())
    return _screen_payload(screen, saved)


@admin_bp.route('/<kind_key>/<int:entity_id>/delete', methods=['POST'])
@login_required
def content_delete(kind_key, entity_id):
    screen = _screen(get_kind(kind_key))
    values = _request_values()
    confirmed = str(values.get('confirm') or '').strip().lower() in CONFIRM_VALUES
    screen.delete(entity_id, confirmed=confirmed)
    return _screen_payload(screen)


@admin_bp.route('/<kind_key>/assist', methods=['POST'])
@login_required
def content_assist(kind_key):
    kind = get_kind(kind_key)
    screen = _screen(kind)
    values = _request_values()
    target_field = clean_text(values.pop('field', None), 60) or 'content'
    if kind.field(target_field) is None:
        raise ValidationError(fields=[FieldError('field', f'{kind.label} has no field "{target_field}".')])

    content_type = clean_text(values.pop('content_type', None), 80) or None
    entity_id = parse_positive_int(values.pop('id', None))
    if entity_id:
        screen.edit(entity_id)
    else:
        screen.new()
    screen.form.update_draft(values)
    result = screen.assist(content_type, target_field)
    return jsonify({'field': target_field, **result.to_dict()})
