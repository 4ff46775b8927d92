from tests.fixtures.aws import mocked_aws, s3_client, upload_settings  # noqa: F401
