import hmac

from thumbnailer.errors import Forbidden


def get_header(headers, name):
    """Case-insensitive header lookup. API Gateway may pass ``headers: null``."""
    wanted = name.lower()
    for key, value in (headers or {}).items():
        if key.lower() == wanted:
            return value
    return None


def verify_origin(headers, settings):
    """Raise Forbidden unless the origin header carries the shared secret.

    CloudFront adds the header on every origin request, so a missing or wrong
    value means the caller bypassed the distribution. An unset secret rejects
    everything.
    """
    supplied = get_header(headers, settings.origin_header)
    if not settings.secret_key or supplied is None:
        raise Forbidden()

    if not hmac.compare_digest(str(supplied).encode(), settings.secret_key.encode()):
        raise Forbidden()
