"""Errors raised while turning an upload event into stored objects."""
from typing import Optional


class UploadError(Exception):
    """Base class for every error the upload function raises."""
    pass


class ParseError(UploadError):
    """The request body could not be decoded as multipart/form-data."""
    pass


class MissingHeadersError(UploadError):
    """A file record carries no headers mapping."""

    def __init__(self, filename: Optional[str] = None):
        self.filename = filename
        super().__init__('Missing "headers" from request')


class UnsupportedContentTypeError(UploadError):
    """A file declares a content type with no known extension."""

    def __init__(self, content_type: Optional[str]):
        self.content_type = content_type
        super().__init__(f'Unsupported content type "{content_type}".')


class StorageBackendError(UploadError):
    """Writing an object to S3 failed."""

    def __init__(self, bucket_name: Optional[str], object_key: str, reason: str):
        self.bucket_name = bucket_name
        self.object_key = object_key
        super().__init__(
            f'Failed to store "{object_key}" in S3 bucket "{bucket_name}": {reason}'
        )
