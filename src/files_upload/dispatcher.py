"""
Store parsed files in S3 under random keys.

Every file becomes one PutObject call addressed as ``<bucket>/<uuid4>.<ext>``.
The calls of one batch run concurrently; boto3 is blocking, so each call is
pushed onto the default thread pool with ``asyncio.to_thread``.

Batch semantics are fail-fast: the first failure is raised to the caller
while the other uploads are left to finish on their own, and objects that
were already written stay in the bucket. ``rollback_on_failure`` switches to
an all-or-nothing mode that waits for every upload and deletes the written
objects before raising.
"""

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from files_upload.errors import (
    MissingHeadersError,
    StorageBackendError,
    UnsupportedContentTypeError,
)
from files_upload.s3.delete_objects import delete_s3_object
from files_upload.s3.write_objects import upload_s3_object
from files_upload.schemas import FileRecord

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "text/html": "html",
    "text/css": "css",
    "application/javascript": "javascript",
    "application/json": "json",
}


def get_file_extension(file: FileRecord) -> str:
    """
    Map the declared content type of a file to an extension.

    Only exact matches against ``CONTENT_TYPE_EXTENSIONS`` are accepted; there
    is no generic fallback.

    :raises MissingHeadersError: the record has no headers mapping.
    :raises UnsupportedContentTypeError: the content type is absent or unknown.
    """
    if file.headers is None:
        raise MissingHeadersError(file.filename)

    content_type = file.content_type
    extension = CONTENT_TYPE_EXTENSIONS.get(content_type)
    if extension is None:
        raise UnsupportedContentTypeError(content_type)
    return extension


def generate_object_key(extension: str) -> str:
    # collisions between uuid4 values are not checked
    return f"{uuid.uuid4()}.{extension}"


class UploadDispatcher:
    """Writes file records to one bucket."""

    def __init__(
        self,
        bucket_name: Optional[str],
        s3_client: "S3Client",
        rollback_on_failure: bool = False,
    ):
        self.bucket_name = bucket_name
        self.s3_client = s3_client
        self.rollback_on_failure = rollback_on_failure

    async def store_one(self, file: FileRecord) -> str:
        """
        Upload a single file and return the key it was stored under.

        :raises MissingHeadersError: see ``get_file_extension``.
        :raises UnsupportedContentTypeError: see ``get_file_extension``.
        :raises StorageBackendError: the PutObject call failed.
        """
        extension = get_file_extension(file)
        object_key = generate_object_key(extension)

        try:
            await asyncio.to_thread(
                upload_s3_object,
                bucket_name=self.bucket_name,
                object_key=object_key,
                file_content=file.content,
                s3_client=self.s3_client,
            )
        except Exception as e:
            logger.error(f"Error uploading to S3: {str(e)}")
            raise StorageBackendError(self.bucket_name, object_key, str(e)) from e

        logger.info(f'File uploaded into S3 bucket: "{self.bucket_name}", with key: "{object_key}"')
        return object_key

    async def dispatch_all(self, files: Iterable[FileRecord]) -> List[str]:
        """
        Upload every file concurrently.

        :return: the generated keys, in the order of ``files``.
        :raises UploadError: the first failure of the batch.
        """
        files = list(files)
        logger.info(f"Dispatching {len(files)} file(s) to S3 bucket: {self.bucket_name}")

        if self.rollback_on_failure:
            return await self._dispatch_all_or_nothing(files)

        # gather() raises the first exception; peers keep running and their
        # results are dropped.
        return list(await asyncio.gather(*(self.store_one(file) for file in files)))

    async def _dispatch_all_or_nothing(self, files: List[FileRecord]) -> List[str]:
        results = await asyncio.gather(
            *(self.store_one(file) for file in files),
            return_exceptions=True,
        )
        errors = [result for result in results if isinstance(result, BaseException)]
        if not errors:
            return list(results)

        stored_keys = [result for result in results if isinstance(result, str)]
        logger.warning(
            f"{len(errors)} of {len(files)} upload(s) failed, "
            f"rolling back {len(stored_keys)} stored object(s)"
        )
        await asyncio.gather(*(self._delete_quietly(key) for key in stored_keys))
        raise errors[0]

    async def _delete_quietly(self, object_key: str) -> None:
        try:
            await asyncio.to_thread(
                delete_s3_object,
                bucket_name=self.bucket_name,
                object_key=object_key,
                s3_client=self.s3_client,
            )
            logger.info(f'Rolled back object "{object_key}" in S3 bucket: "{self.bucket_name}"')
        except Exception as e:
            # the original upload error is what the caller needs to see
            logger.error(f'Error rolling back "{object_key}" in S3: {str(e)}')
