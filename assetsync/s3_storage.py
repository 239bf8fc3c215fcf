"""
S3 and CloudFront access for the sync pipeline.
"""

import time

import boto3
import boto3.s3.transfer as transfer
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import ClientError

from .config import DEFAULT_READ_TIMEOUT, DEFAULT_TIMEOUT, MULTIPART_THRESHOLD
from .exceptions import BucketNotFoundError, TransferError
from .logger import logger

# Error codes meaning the bucket is missing or not ours to list
BUCKET_NOT_FOUND_CODES = {"NoSuchBucket", "404", "403", "AccessDenied", "AllAccessDisabled"}

# Upload plan header names mapped to put_object arguments
HEADER_ARGUMENTS = {
    "acl": "ACL",
    "cache_control": "CacheControl",
    "content_disposition": "ContentDisposition",
    "content_encoding": "ContentEncoding",
    "content_language": "ContentLanguage",
    "content_type": "ContentType",
    "expires": "Expires",
    "website_redirect_location": "WebsiteRedirectLocation",
}


def client_config(s3_config):
    """botocore settings shared by the S3 and CloudFront clients."""
    options = {
        "retries": {"max_attempts": 3, "mode": "adaptive"},
        "max_pool_connections": max(10, s3_config.upload_workers),
        "read_timeout": DEFAULT_READ_TIMEOUT,
        "connect_timeout": DEFAULT_TIMEOUT,
    }
    if s3_config.region:
        options["region_name"] = s3_config.region
    if s3_config.endpoint_url:
        options["signature_version"] = "s3v4"
        options["s3"] = {"addressing_style": "path"}  # Path-style for S3-compatible endpoints
    return Config(**options)


def _credentials(s3_config):
    if s3_config.access_key_id and s3_config.secret_access_key:
        return {
            "aws_access_key_id": s3_config.access_key_id,
            "aws_secret_access_key": s3_config.secret_access_key,
        }
    return {}


def create_s3_client(s3_config):
    """Create the S3 client for AWS or a custom endpoint."""
    kwargs = _credentials(s3_config)
    if s3_config.endpoint_url:
        kwargs["endpoint_url"] = s3_config.endpoint_url
        logger.info(f"Using custom S3 endpoint: {s3_config.endpoint_url}")

        # Plain HTTP for local development endpoints
        if "localhost" in s3_config.endpoint_url or "127.0.0.1" in s3_config.endpoint_url:
            logger.warning("Detected localhost endpoint, disabling SSL verification")
            kwargs["use_ssl"] = False
            kwargs["verify"] = False
    else:
        logger.info("Using AWS S3 standard endpoint")

    return boto3.client("s3", config=client_config(s3_config), **kwargs)


def create_cloudfront_client(s3_config):
    """Create the CloudFront client; CloudFront is global, so no region is passed."""
    return boto3.client("cloudfront", **_credentials(s3_config))


def error_code(error):
    return error.response.get("Error", {}).get("Code", "")


def put_object_arguments(plan):
    """Translate upload plan headers into put_object keyword arguments."""
    arguments = {}
    metadata = {}
    for name, value in plan.headers.items():
        if name in HEADER_ARGUMENTS:
            arguments[HEADER_ARGUMENTS[name]] = value
        else:
            metadata[name.replace("_", "-")] = str(value)
    if metadata:
        arguments["Metadata"] = metadata
    if plan.storage_class:
        arguments["StorageClass"] = plan.storage_class
    return arguments


class S3Storage:
    """Remote inventory and writer for one bucket under an assets prefix."""

    def __init__(self, client, bucket_name, prefix="", provider="AWS", log=None):
        self.client = client
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.provider = provider
        self.log = log or logger

    def list_keys(self):
        """All keys under the prefix; fails if the bucket cannot be listed."""
        keys = set()
        list_prefix = f"{self.prefix.rstrip('/')}/" if self.prefix else ""
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=list_prefix):
                keys.update(obj["Key"] for obj in page.get("Contents", []))
        except ClientError as e:
            if error_code(e) in BUCKET_NOT_FOUND_CODES:
                raise BucketNotFoundError(self.bucket_name, self.provider) from e
            raise TransferError("list", self.bucket_name, f"{error_code(e)} - {e}") from e

        self.log.debug(f"Found {len(keys)} remote files in {self.bucket_name}")
        return keys

    def write(self, plan, body, size):
        """Upload an open binary stream under the plan key."""
        arguments = put_object_arguments(plan)
        try:
            if size > MULTIPART_THRESHOLD:
                self._write_multipart(plan.key, body, arguments)
            else:
                self.client.put_object(
                    Bucket=self.bucket_name,
                    Key=plan.key,
                    Body=body,
                    ContentLength=size,
                    **arguments,
                )
        except ClientError as e:
            raise TransferError("upload", plan.key, f"{error_code(e)} - {e}") from e
        except S3UploadFailedError as e:
            raise TransferError("upload", plan.key, str(e)) from e

    def _write_multipart(self, key, body, arguments):
        transfer_config = transfer.TransferConfig(
            multipart_threshold=MULTIPART_THRESHOLD,
            max_concurrency=5,
            multipart_chunksize=MULTIPART_THRESHOLD,
            use_threads=True,
            io_chunksize=1024 * 256,  # 256KB I/O chunks
        )
        self.client.upload_fileobj(
            body, self.bucket_name, key, ExtraArgs=arguments, Config=transfer_config
        )

    def delete(self, key):
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            raise TransferError("delete", key, f"{error_code(e)} - {e}") from e


class CloudFrontInvalidator:
    """Submits invalidation batches to a CloudFront distribution."""

    def __init__(self, client, log=None):
        self.client = client
        self.log = log or logger

    def invalidate(self, distribution_id, paths):
        """Invalidate paths in one batch and return the invalidation id."""
        paths = list(paths)
        try:
            response = self.client.create_invalidation(
                DistributionId=distribution_id,
                InvalidationBatch={
                    "Paths": {"Quantity": len(paths), "Items": paths},
                    "CallerReference": f"assetsync-{time.time()}",
                },
            )
        except ClientError as e:
            raise TransferError("invalidate", distribution_id, f"{error_code(e)} - {e}") from e
        return response["Invalidation"]["Id"]
