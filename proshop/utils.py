"""Shared utility functions used across the content layer and route modules."""
import json
import re
from datetime import date, datetime, timezone

import bleach

CODE_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")
ALLOWED_RICH_TEXT_TAGS = [
    'p', 'br', 'strong', 'em', 'b', 'i', 'u', 's', 'blockquote', 'code', 'pre',
    'ul', 'ol', 'li', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'a', 'img', 'table', 'thead', 'tbody', 'tr', 'th', 'td', 'hr', 'div', 'span'
]
ALLOWED_RICH_TEXT_ATTRIBUTES = {
    '*': ['class'],
    'a': ['href', 'title', 'target', 'rel'],
    'img': ['src', 'alt', 'title', 'width', 'height'],
}
ALLOWED_RICH_TEXT_PROTOCOLS = ['http', 'https', 'mailto']


def utc_now_naive():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clean_text(value, max_length=255):
    return ('' if value is None else str(value)).strip()[:max_length]


def sanitize_html(value, max_length=100000):
    html = ('' if value is None else str(value)).strip()
    cleaned = bleach.clean(
        html,
        tags=ALLOWED_RICH_TEXT_TAGS,
        attributes=ALLOWED_RICH_TEXT_ATTRIBUTES,
        protocols=ALLOWED_RICH_TEXT_PROTOCOLS,
        strip=True,
    )
    return cleaned[:max_length]


def strip_code_fences(value):
    return CODE_FENCE_RE.sub('', value or '')


def parse_int(value, default=0, min_value=None, max_value=None):
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if min_value is not None and parsed < min_value:
        return min_value
    if max_value is not None and parsed > max_value:
        return max_value
    return parsed


def parse_positive_int(value):
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    if parsed <= 0:
        return None
    return parsed


def parse_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = clean_text(value, 40)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def parse_string_list(value, max_items=50, max_length=120):
    """Accept a list, a JSON array or a comma separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw.startswith('['):
            try:
                value = json.loads(raw)
            except (TypeError, json.JSONDecodeError):
                value = raw.split(',')
        else:
            value = raw.split(',')
    if not isinstance(value, (list, tuple)):
        return []
    items = [clean_text(item, max_length) for item in value]
    return [item for item in items if item][:max_items]


def parse_json_list(value, max_items=50):
    if value is None or value == '':
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except (TypeError, json.JSONDecodeError):
            return None
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, dict)][:max_items]

