"""Draft copy for the admin forms through the Gemini REST API."""
import json
import logging
import urllib.error
import urllib.request

from .utils import sanitize_html, strip_code_fences

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'
UNAVAILABLE_MESSAGE = 'AI Service Unavailable (Missing Configuration)'
FAILED_MESSAGE = 'Failed to generate content. Please try again later.'
EMPTY_MESSAGE = 'No content generated.'

STATUS_OK = 'ok'
STATUS_EMPTY = 'empty'
STATUS_UNAVAILABLE = 'unavailable'
STATUS_FAILED = 'failed'

PROMPT_TEMPLATE = """You are a luxury copywriter for Daikin Proshop, an elite HVAC service provider.
Task: Write or refine a {content_type} for "{title}".
Tone: Professional, Exclusive, Elite, Technical yet accessible.
Context: Daikin is the world's leading air conditioning manufacturer.
Current content: {existing}
Output should be in HTML format (paragraphs, lists).
Do not include markdown backticks."""


class CopyResult:
    def __init__(self, status, html):
        self.status = status
        self.html = html

    @property
    def ok(self):
        return self.status == STATUS_OK

    def to_dict(self):
        return {'status': self.status, 'html': self.html}

    def __repr__(self):
        return f'<CopyResult {self.status}>'


def _response_text(payload):
    parts = []
    for candidate in (payload or {}).get('candidates') or []:
        for part in ((candidate or {}).get('content') or {}).get('parts') or []:
            text = (part or {}).get('text')
            if text:
                parts.append(text)
        if parts:
            break
    return ''.join(parts).strip()


class CopywriterClient:
    def __init__(self, api_key=None, model='gemini-1.5-flash', timeout=30, opener=None):
        self.api_key = (api_key or '').strip()
        self.model = model
        self.timeout = timeout
        self.opener = opener or urllib.request.urlopen

    @property
    def available(self):
        return bool(self.api_key)

    def build_prompt(self, content_type, title, existing_content=''):
        return PROMPT_TEMPLATE.format(content_type=content_type, title=title, existing=existing_content or '')

    def generate(self, content_type, title, existing_content=''):
        if not self.available:
            logger.warning('GEMINI_API_KEY is not configured; AI drafting is disabled.')
            return CopyResult(STATUS_UNAVAILABLE, UNAVAILABLE_MESSAGE)

        body = {
            'contents': [{
                'role': 'user',
                'parts': [{'text': self.build_prompt(content_type, title, existing_content)}],
            }],
        }
        req = urllib.request.Request(
            GEMINI_ENDPOINT.format(model=self.model),
            data=json.dumps(body).encode('utf-8'),
            method='POST',
        )
        req.add_header('Content-Type', 'application/json')
        req.add_header('x-goog-api-key', self.api_key)

        try:
            with self.opener(req, timeout=self.timeout) as resp:  # nosec B310
                payload = json.loads(resp.read().decode('utf-8'))
        except urllib.error.HTTPError as e:
            error_body = e.read().decode('utf-8', errors='replace')
            logger.error(f'Gemini API error {e.code}: {error_body[:500]}')
            return CopyResult(STATUS_FAILED, FAILED_MESSAGE)
        except Exception:
            logger.exception('Gemini request failed.')
            return CopyResult(STATUS_FAILED, FAILED_MESSAGE)

        text = _response_text(payload)
        if not text:
            return CopyResult(STATUS_EMPTY, EMPTY_MESSAGE)
        return CopyResult(STATUS_OK, sanitize_html(strip_code_fences(text)))
