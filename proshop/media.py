import base64
import logging
import os
import secrets
import time
from urllib.parse import unquote, urlparse

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from .errors import FieldError, StorageError, UploadError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_CONTROL = '3600'
EXTENSION_MIME_TYPES = {
    'png': {'image/png'},
    'jpg': {'image/jpeg'},
    'jpeg': {'image/jpeg'},
    'gif': {'image/gif'},
    'webp': {'image/webp'},
}


class PendingUpload:
    """A validated file held in memory until the form is submitted."""

    def __init__(self, filename, content_type, data):
        self.filename = filename
        self.content_type = content_type
        self.data = data

    @property
    def extension(self):
        return self.filename.rsplit('.', 1)[1].lower() if '.' in self.filename else 'bin'

    @property
    def size(self):
        return len(self.data)

    @property
    def preview_url(self):
        encoded = base64.b64encode(self.data).decode('ascii')
        return f'data:{self.content_type};base64,{encoded}'

    def __repr__(self):
        return f'<PendingUpload {self.filename} {self.size}B>'


class CommittedMedia:
    def __init__(self, url, object_path):
        self.url = url
        self.object_path = object_path

    def __repr__(self):
        return f'<CommittedMedia {self.object_path}>'


def stage_upload(file, allowed_extensions=None, allowed_mime_types=None, max_pixels=40_000_000):
    """Validate an uploaded file and keep it in memory; nothing is stored yet."""
    if not file or not getattr(file, 'filename', ''):
        raise ValidationError(fields=[FieldError('image', 'Please choose an image to upload.')])

    filename = secure_filename(file.filename)
    allowed_extensions = allowed_extensions or set(EXTENSION_MIME_TYPES)
    extension = filename.rsplit('.', 1)[1].lower() if '.' in filename else ''
    if not filename or len(filename) > 180 or extension not in allowed_extensions:
        raise ValidationError(fields=[FieldError('image', 'Unsupported image file type.')])

    mime_type = (getattr(file, 'mimetype', '') or '').split(';', 1)[0].lower()
    allowed_mime_types = allowed_mime_types or {mime for mimes in EXTENSION_MIME_TYPES.values() for mime in mimes}
    if mime_type not in allowed_mime_types or mime_type not in EXTENSION_MIME_TYPES.get(extension, set()):
        raise ValidationError(fields=[FieldError('image', f'File type {mime_type or "unknown"} does not match .{extension}.')])

    stream = file.stream
    stream.seek(0)
    data = stream.read()
    stream.seek(0)
    try:
        with Image.open(stream) as image:
            width, height = image.size
            if width < 1 or height < 1 or (width * height) > max(1, int(max_pixels)):
                raise ValidationError(fields=[FieldError('image', 'Image dimensions are out of range.')])
            image.verify()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        raise ValidationError(fields=[FieldError('image', 'The uploaded file is not a valid image.')])
    finally:
        stream.seek(0)
    return PendingUpload(filename, mime_type, data)


def object_path_from_url(url):
    """Recover ``folder/filename`` from a public URL (its last two path segments)."""
    if not url or url.startswith('data:'):
        return None
    path = unquote(urlparse(url).path)
    segments = [segment for segment in path.split('/') if segment]
    if len(segments) < 2:
        return None
    return '/'.join(segments[-2:])


class LocalMediaBucket:
    """Object storage on the local filesystem, one directory per bucket."""

    def __init__(self, root, name='images', public_base_url='/media'):
        self.name = name
        self.root = os.path.abspath(os.path.join(root, name))
        self.public_base_url = (public_base_url or '').rstrip('/')

    def _full_path(self, object_path):
        raw = (object_path or '').strip().strip('/')
        parts = raw.split('/') if raw else []
        if not parts or any(secure_filename(part) != part for part in parts):
            raise StorageError(f'Invalid object path: {object_path!r}')
        full_path = os.path.abspath(os.path.join(self.root, *parts))
        if os.path.commonpath([self.root, full_path]) != self.root:
            raise StorageError(f'Invalid object path: {object_path!r}')
        return full_path

    def upload(self, object_path, data, cache_control=DEFAULT_CACHE_CONTROL, upsert=False):
        full_path = self._full_path(object_path)
        if os.path.exists(full_path) and not upsert:
            raise StorageError('The resource already exists')
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, 'wb' if upsert else 'xb') as handle:
                handle.write(data)
        except FileExistsError:
            raise StorageError('The resource already exists')
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        return object_path

    def get_public_url(self, object_path):
        return f'{self.public_base_url}/{self.name}/{object_path}'

    def remove(self, object_paths):
        removed = []
        for object_path in object_paths:
            full_path = self._full_path(object_path)
            try:
                os.remove(full_path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageError(str(exc)) from exc
            removed.append(object_path)
        return removed

    def resolve(self, object_path):
        """Return the file path for serving, or None if it is missing or unsafe."""
        try:
            full_path = self._full_path(object_path)
        except StorageError:
            return None
        return full_path if os.path.isfile(full_path) else None


class MediaLifecycleManager:
    """Upload-then-link for entity images, plus best-effort cleanup of replaced ones."""

    def __init__(self, bucket, cache_control=DEFAULT_CACHE_CONTROL, clock=time.time):
        self.bucket = bucket
        self.cache_control = cache_control
        self.clock = clock

    def object_name(self, pending, folder):
        millis = int(self.clock() * 1000)
        return f'{folder}/{millis}-{secrets.token_hex(4)}.{pending.extension}'

    def commit(self, pending, folder):
        object_path = self.object_name(pending, folder)
        try:
            self.bucket.upload(object_path, pending.data, cache_control=self.cache_control, upsert=False)
        except StorageError as exc:
            logger.error('Upload of %s to %s failed: %s', pending.filename, object_path, exc)
            raise UploadError(str(exc)) from exc
        url = self.bucket.get_public_url(object_path)
        logger.info('Stored %s as %s.', pending.filename, object_path)
        return CommittedMedia(url, object_path)

    def release_previous(self, url, object_path=None):
        """Delete a media object that is no longer referenced; failures are only logged."""
        object_path = object_path or object_path_from_url(url)
        if not object_path:
            return False
        try:
            self.bucket.remove([object_path])
        except Exception:
            logger.warning('Could not delete old image %s.', object_path, exc_info=True)
            return False
        logger.info('Released media object %s.', object_path)
        return True
