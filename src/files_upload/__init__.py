"""Store files from multipart/form-data requests in S3."""
