"""
Object stores the thumbnail pipeline reads originals from.

Both stores return a ``StoredObject``: the reported length plus an unread
body, so callers can reject oversized objects before buffering them.
"""
import os

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from thumbnailer.errors import AccessDenied, ObjectNotFound, PayloadTooLarge, StorageError

NOT_FOUND_CODES = ('NoSuchKey', 'NotFound', '404')
ACCESS_DENIED_CODES = ('AccessDenied', 'Forbidden', '403')


class StoredObject:
    def __init__(self, body, content_length):
        self.body = body
        self.content_length = content_length or 0

    def read(self, max_bytes):
        """Buffer the body, refusing to hold more than ``max_bytes``."""
        data = self.body.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise PayloadTooLarge()
        return data

    def close(self):
        self.body.close()


class S3ObjectStore:
    def __init__(self, bucket_name, client=None, region=None):
        self.bucket_name = bucket_name
        self.client = client or boto3.client(
            's3', region_name=region, config=Config(signature_version='s3v4')
        )

    def get_object(self, key):
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            error = e.response.get('Error', {})
            code = str(error.get('Code', ''))
            status = e.response.get('ResponseMetadata', {}).get('HTTPStatusCode')

            if code in NOT_FOUND_CODES or status == 404:
                raise ObjectNotFound() from e
            if code in ACCESS_DENIED_CODES or status == 403:
                raise AccessDenied() from e
            raise StorageError(f"GetObject s3://{self.bucket_name}/{key} failed: {code}") from e
        except BotoCoreError as e:
            raise StorageError(f"GetObject s3://{self.bucket_name}/{key} failed: {e}") from e

        return StoredObject(response['Body'], response.get('ContentLength'))


class LocalObjectStore:
    """Serves keys from a directory. Used by the CLI and for local runs."""

    def __init__(self, root):
        self.root = os.path.realpath(root)

    def get_object(self, key):
        path = os.path.realpath(os.path.join(self.root, key))
        # Keys must stay inside the root, like keys inside a bucket
        if os.path.commonpath([self.root, path]) != self.root or not os.path.isfile(path):
            raise ObjectNotFound()
        try:
            return StoredObject(open(path, 'rb'), os.path.getsize(path))
        except PermissionError as e:
            raise AccessDenied() from e
