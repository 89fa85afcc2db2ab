import base64
import json
import logging
import re
from functools import lru_cache

from thumbnailer.auth.authorizer import verify_origin
from thumbnailer.config import get_settings
from thumbnailer.errors import InvalidRequest, PayloadTooLarge, StorageError, ThumbnailError
from thumbnailer.processor.processor import decode_image, render_thumbnail, resolve_output_format
from thumbnailer.storage import S3ObjectStore

logger = logging.getLogger()
logger.setLevel(logging.INFO)

MAX_DIMENSION = 4096
DEFAULT_DIMENSION = 200
MAX_FILE_SIZE = 20 * 1024 * 1024  # 20 MiB

_INTEGER = re.compile(r'^[+-]?[0-9]+$')


def parse_object_key(path):
    key = path or ''
    if key.startswith('/'):
        key = key[1:]
    if not key:
        raise InvalidRequest('Missing image path')
    return key


def _parse_dimension(value):
    if value is None or str(value).strip() == '':
        return DEFAULT_DIMENSION
    value = str(value).strip()
    if not _INTEGER.match(value):
        raise InvalidRequest('Invalid width or height parameter')
    return int(value, 10)


def parse_dimensions(params):
    width = _parse_dimension(params.get('width'))
    height = _parse_dimension(params.get('height'))

    if not (0 < width <= MAX_DIMENSION and 0 < height <= MAX_DIMENSION):
        raise InvalidRequest(f"Width and height must be between 1 and {MAX_DIMENSION}")
    return width, height


def error_response(status_code, message):
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps({"error": message})
    }


def image_response(data, output_format, cache_control):
    return {
        "statusCode": 200,
        "headers": {
            "Content-Type": f"image/{output_format}",
            "Cache-Control": cache_control
        },
        "body": base64.b64encode(data).decode('ascii'),
        "isBase64Encoded": True
    }


def render_request(event, settings, store):
    """Run one API Gateway proxy event through the thumbnail pipeline.

    Always returns a proxy response; nothing is raised to the caller.
    """
    key = None
    try:
        # 1. Shared-secret check (CloudFront origin header)
        verify_origin(event.get('headers'), settings)

        # 2. Key and dimensions
        key = parse_object_key(event.get('path'))
        params = event.get('queryStringParameters') or {}
        width, height = parse_dimensions(params)

        # 3. Fetch, rejecting oversized objects before reading the body
        stored = store.get_object(key)
        try:
            if stored.content_length > MAX_FILE_SIZE:
                raise PayloadTooLarge()
            data = stored.read(MAX_FILE_SIZE)
        finally:
            stored.close()

        # 4. Decode and pick the output format
        source = decode_image(data)
        output_format = resolve_output_format(params.get('format'), source.format)

        # 5. Resize and re-encode
        output = render_thumbnail(source, width, height, output_format)
        logger.info(
            "THUMBNAIL: %s %sx%s %s -> %s (%d -> %d bytes)",
            key, width, height, source.format, output_format, source.size, len(output)
        )
        return image_response(output, output_format, settings.cache_control)

    except StorageError as e:
        logger.error("STORAGE_ERROR: %s", e.detail, exc_info=True)
        return error_response(e.status_code, e.message)
    except ThumbnailError as e:
        logger.warning("REJECTED %s: %s (key=%s)", e.status_code, e.message, key)
        return error_response(e.status_code, e.message)
    except Exception:
        logger.exception("CRITICAL ERROR processing %s", key)
        return error_response(500, "Internal server error")


@lru_cache()
def get_store():
    settings = get_settings()
    return S3ObjectStore(settings.bucket_name, region=settings.region)


def handler(event, context):
    settings = get_settings()
    logger.setLevel(settings.log_level)
    return render_request(event, settings, get_store())
