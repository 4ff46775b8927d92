"""S3 object operations used by the upload dispatcher."""
