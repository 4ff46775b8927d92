"""Functions for writing objects to an S3 bucket."""

from typing import TYPE_CHECKING, Optional

import boto3

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


def upload_s3_object(
    bucket_name: Optional[str],
    object_key: str,
    file_content: bytes,
    s3_client: Optional["S3Client"] = None,
) -> None:
    """
    Upload raw bytes to an S3 bucket.

    No ContentType, ACL or metadata is set; the object is the body and nothing else.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param file_content: The content of the file to upload.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    """
    s3_client = s3_client or boto3.client("s3")
    s3_client.put_object(
        Bucket=bucket_name,
        Key=object_key,
        Body=file_content,
    )
