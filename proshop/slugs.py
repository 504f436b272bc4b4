import math
import re

WORDS_PER_MINUTE = 200
_DISALLOWED_SLUG_RE = re.compile(r'[^a-z0-9]+')
_TAG_RE = re.compile(r'<[^>]*>')


def slugify(text):
    """Lowercase ``text`` and collapse every run outside ``[a-z0-9]`` into one hyphen.

    Non-ASCII letters count as disallowed ("Café" -> "caf"). The result never
    starts or ends with a hyphen, so ``slugify(slugify(x)) == slugify(x)``.
    Uniqueness is not checked here.
    """
    if text is None:
        return ''
    return _DISALLOWED_SLUG_RE.sub('-', str(text).lower()).strip('-')


def estimate_read_time(html):
    plain = _TAG_RE.sub(' ', html or '')
    words = len(plain.split())
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return f'{minutes} min'
