import os
from urllib.parse import urlparse

basedir = os.path.abspath(os.path.dirname(__file__))


def _is_production_runtime():
    return (os.environ.get('FLASK_ENV') or '').strip().lower() == 'production'


def _as_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in {'1', 'true', 'yes', 'on'}


def _as_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value, default):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_list(value, default):
    items = [item.strip() for item in (value or '').split(',') if item.strip()]
    return tuple(items) or default


def _database_url():
    raw = (os.environ.get('DATABASE_URL') or '').strip()
    if raw.startswith('postgres://'):
        raw = raw.replace('postgres://', 'postgresql://', 1)
    if raw:
        return raw
    return 'sqlite:///' + os.path.join(basedir, 'proshop.db')


def _database_engine_options(database_url):
    if database_url.startswith('sqlite'):
        return {}
    options = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }
    parsed = urlparse(database_url)
    if parsed.scheme.startswith('postgresql'):
        connect_timeout_seconds = max(1, _as_int(os.environ.get('DB_CONNECT_TIMEOUT_SECONDS'), 5))
        statement_timeout_ms = max(1000, _as_int(os.environ.get('DB_STATEMENT_TIMEOUT_MS'), 8000))
        options['connect_args'] = {
            'connect_timeout': connect_timeout_seconds,
            'options': f'-c statement_timeout={statement_timeout_ms}',
        }
    return options


def _media_root():
    configured = (os.environ.get('MEDIA_ROOT') or '').strip()
    if configured:
        return configured
    return os.path.join(basedir, 'media')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or ''
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = _database_engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Object storage: one shared bucket, per-kind folders inside it.
    MEDIA_ROOT = _media_root()
    MEDIA_BUCKET = (os.environ.get('MEDIA_BUCKET') or 'images').strip()
    MEDIA_CACHE_CONTROL = (os.environ.get('MEDIA_CACHE_CONTROL') or '3600').strip()
    APP_BASE_URL = (os.environ.get('APP_BASE_URL') or '').rstrip('/')
    MEDIA_PUBLIC_BASE_URL = (os.environ.get('MEDIA_PUBLIC_BASE_URL') or f'{APP_BASE_URL}/media').rstrip('/')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max upload
    MAX_UPLOAD_IMAGE_PIXELS = _as_int(os.environ.get('MAX_UPLOAD_IMAGE_PIXELS'), 40_000_000)
    ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
    ALLOWED_UPLOAD_MIME_TYPES = {
        'image/png',
        'image/jpeg',
        'image/gif',
        'image/webp',
    }

    GEMINI_API_KEY = (os.environ.get('GEMINI_API_KEY') or os.environ.get('API_KEY') or '').strip()
    GEMINI_MODEL = (os.environ.get('GEMINI_MODEL') or 'gemini-1.5-flash').strip()
    GEMINI_TIMEOUT_SECONDS = max(1, _as_int(os.environ.get('GEMINI_TIMEOUT_SECONDS'), 30))

    DEFAULT_LANGUAGE = (os.environ.get('DEFAULT_LANGUAGE') or 'id').strip().lower()
    SUPPORTED_LANGUAGES = _as_list(os.environ.get('SUPPORTED_LANGUAGES'), ('id', 'en'))

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = _as_bool(os.environ.get('SESSION_COOKIE_SECURE'), _is_production_runtime())
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = 'Lax'
    REMEMBER_COOKIE_SECURE = SESSION_COOKIE_SECURE
    TRUST_PROXY_HEADERS = _as_bool(os.environ.get('TRUST_PROXY_HEADERS'), False)
    ADMIN_PASSWORD_MIN_LENGTH = max(8, _as_int(os.environ.get('ADMIN_PASSWORD_MIN_LENGTH'), 10))
    SEED_SAMPLE_CONTENT = _as_bool(os.environ.get('SEED_SAMPLE_CONTENT'), True)

    SENTRY_DSN = (os.environ.get('SENTRY_DSN') or '').strip()
    SENTRY_ENVIRONMENT = (os.environ.get('SENTRY_ENVIRONMENT') or '').strip()
    SENTRY_TRACES_SAMPLE_RATE = _as_float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE'), 0.0)
    LOG_JSON = _as_bool(os.environ.get('LOG_JSON'), True)
    LOG_LEVEL = (os.environ.get('LOG_LEVEL') or 'INFO').strip().upper()
