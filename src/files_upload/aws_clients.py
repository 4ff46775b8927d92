"""AWS client construction."""
import logging
from typing import TYPE_CHECKING, Optional

import boto3

from files_upload.settings import Settings, get_settings

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)


def get_s3_client(settings: Optional[Settings] = None) -> "S3Client":
    """
    Create an S3 client configured from settings.

    A new client is created on every call so each invocation owns its own
    client. boto3 clients are thread-safe, so one client is shared by all
    uploads of an invocation.
    """
    settings = settings or get_settings()

    client_kwargs = {
        "region_name": settings.aws_region,
    }
    if settings.aws_endpoint_url:
        client_kwargs["endpoint_url"] = settings.aws_endpoint_url

    try:
        client = boto3.client("s3", **client_kwargs)
        logger.debug(f"Created s3 client (region={settings.aws_region}, endpoint={settings.aws_endpoint_url})")
        return client
    except Exception as e:
        logger.error(f"Error creating s3 client: {str(e)}")
        raise
