"""Lambda handler that stores multipart uploads in S3."""
import asyncio
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from files_upload.aws_clients import get_s3_client
from files_upload.dispatcher import UploadDispatcher
from files_upload.multipart_parser import parse_multipart_form_data
from files_upload.settings import Settings, get_settings
from files_upload.utils.decorators import async_log_execution_time

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(log_level: str) -> None:
    # The Lambda runtime already attaches a handler to the root logger, in
    # which case basicConfig is a no-op and only the level changes.
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(log_level)


@async_log_execution_time
async def handle_upload_event(
    event: Mapping[str, Any],
    settings: Optional[Settings] = None,
    s3_client: Optional["S3Client"] = None,
) -> Dict[str, int]:
    """
    Parse the files out of the request and store each one in S3.

    Responds 200 when the request carries no files and 201 once every file is
    stored. Parse and storage errors propagate to the runtime.
    """
    settings = settings or get_settings()

    form = await parse_multipart_form_data(event)
    if not form.files:
        logger.info("No files in request, nothing to upload")
        return {"statusCode": HTTPStatus.OK.value}

    dispatcher = UploadDispatcher(
        bucket_name=settings.file_s3_bucket_name,
        s3_client=s3_client or get_s3_client(settings),
        rollback_on_failure=settings.rollback_on_failure,
    )
    await dispatcher.dispatch_all(form.files)

    return {"statusCode": HTTPStatus.CREATED.value}


def upload(event: Dict[str, Any], context: Any) -> Dict[str, int]:
    """Lambda entry point."""
    settings = get_settings()
    configure_logging(settings.log_level)

    request_id = getattr(context, "aws_request_id", None)
    logger.info(f"Handling upload request {request_id}")

    return asyncio.run(handle_upload_event(event, settings=settings))


# Export handler for Lambda runtime
lambda_handler = upload
