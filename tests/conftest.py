import io

import pytest
from PIL import Image

from thumbnailer.config import Settings
from thumbnailer.errors import ObjectNotFound
from thumbnailer.storage import StoredObject

SECRET = "s3cr3t-origin-value"


def make_image(fmt="PNG", size=(500, 500), mode="RGB", color=(200, 30, 30)):
    """Encode a solid-colour test image and return its bytes."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (0,)
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


class UnreadableBody:
    def __init__(self):
        self.closed = False

    def read(self, amt=None):
        raise AssertionError("body should not be read")

    def close(self):
        self.closed = True


class FakeStore:
    """In-memory stand-in for S3ObjectStore."""

    def __init__(self, objects=None, error=None):
        self.objects = objects or {}
        self.error = error
        self.requested = []
        self.last = None

    def get_object(self, key):
        self.requested.append(key)
        if self.error is not None:
            raise self.error
        if key not in self.objects:
            raise ObjectNotFound()
        value = self.objects[key]
        if isinstance(value, StoredObject):
            self.last = value
        else:
            self.last = StoredObject(io.BytesIO(value), len(value))
        return self.last


@pytest.fixture
def settings():
    return Settings(bucket_name="originals", secret_key=SECRET)


@pytest.fixture
def make_event():
    def _make(path="/cats/a.png", params=None, headers=None):
        if headers is None:
            headers = {"x-origin-verify": SECRET}
        return {"path": path, "headers": headers, "queryStringParameters": params}
    return _make
