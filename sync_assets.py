#!/usr/bin/env python3
"""
Static asset synchronisation (sync_assets.py)

Main entry point: uploads the compiled asset tree to S3, optionally removes
remote files that are gone locally and invalidates CloudFront paths.
"""

import logging
import sys
import time
import traceback
from datetime import datetime

from dotenv import load_dotenv

from assetsync.cli import parse_arguments
from assetsync.config import VERSION
from assetsync.config_validator import ConfigValidator
from assetsync.exceptions import AssetSyncError
from assetsync.file_utils import LocalFilesystem, LocalInventory
from assetsync.logger import format_time, log_step, logger, setup_logger
from assetsync.s3_storage import (
    CloudFrontInvalidator,
    S3Storage,
    create_cloudfront_client,
    create_s3_client,
)
from assetsync.syncer import Syncer


def log_configuration(config):
    """Log the effective configuration in a clean format."""
    logger.info("CONFIGURATION:")
    logger.info(f"Bucket:               {config.s3.bucket_name}")
    logger.info(f"Provider:             {config.s3.provider}")
    logger.info(
        f"Endpoint URL:         {config.s3.endpoint_url if config.s3.endpoint_url else 'AWS S3 Standard'}"
    )
    logger.info(f"Public Path:          {config.public_path}")
    logger.info(f"Assets Prefix:        {config.assets_prefix}")
    logger.info(f"Manifest:             {config.manifest_path if config.manifest else 'disabled'}")
    logger.info(f"Remote Files:         {config.existing_remote_files}")
    logger.info(f"Gzip Compression:     {str(config.gzip_compression)}")
    logger.info(f"Upload Workers:       {config.s3.upload_workers}")
    logger.info(f"CDN Distribution:     {config.cdn_distribution_id or 'none'}")

    # Log if AWS credentials are set in environment variables
    if config.s3.access_key_id and config.s3.secret_access_key:
        logger.info("AWS Credentials:      Found in environment variables")
    else:
        logger.info("AWS Credentials:      Using profile configuration")


def build_syncer(config):
    """Wire the storage, CDN and local collaborators into a Syncer."""
    storage = S3Storage(
        create_s3_client(config.s3),
        config.s3.bucket_name,
        prefix=config.assets_prefix,
        provider=config.s3.provider,
    )
    invalidator = None
    if config.cdn_distribution_id:
        invalidator = CloudFrontInvalidator(create_cloudfront_client(config.s3))

    filesystem = LocalFilesystem(config.public_path)
    inventory = LocalInventory(filesystem, config)
    return Syncer(config, storage, inventory, filesystem, invalidator=invalidator)


def main(argv=None):
    """Main execution function."""
    # Load environment variables from .env file if it exists
    load_dotenv(override=True)
    args = parse_arguments(argv)

    setup_logger(args.log_file, logging.DEBUG if args.verbose else logging.INFO)

    start_time = time.time()
    start_datetime = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    log_step(f"ASSET SYNC v{VERSION}\nStarted at: {start_datetime}")

    try:
        config = ConfigValidator.from_args_and_env(args)
        logger.info("Configuration validated successfully")
    except AssetSyncError as e:
        logger.error(f"Configuration validation failed: {e}")
        return 1

    log_configuration(config)

    try:
        syncer = build_syncer(config)
        if args.dry_run:
            log_step("DRY RUN: NOTHING WILL BE CHANGED")
            uploads, deletions = syncer.preview()
            for path in uploads:
                logger.info(f"Would upload: {path}")
            for path in sorted(deletions):
                logger.info(f"Would delete: {path}")
            logger.info(f"{len(uploads)} file(s) to upload, {len(deletions)} file(s) to delete")
            return 0

        log_step("STEP 1/1: SYNCING ASSETS")
        result = syncer.sync()
    except AssetSyncError as e:
        logger.error(f"Sync failed: {e}")
        return 1

    log_step(f"SYNC COMPLETED in {format_time(time.time() - start_time)}")
    logger.info(f"  Files Uploaded: {len(result.uploaded)}")
    logger.info(f"  Files Skipped:  {len(result.skipped)}")
    logger.info(f"  Files Deleted:  {len(result.deleted)}")
    if result.invalidation_id:
        logger.info(f"  Invalidation:   {result.invalidation_id}")
    return 0


def run(argv=None):
    """Run main() and turn unexpected failures into logged exit codes."""
    try:
        return main(argv)

    except KeyboardInterrupt:
        logger.error("Sync interrupted by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT

    except FileNotFoundError as e:
        logger.error(f"Required file not found: {e}")
        return 1

    except PermissionError as e:
        logger.error(f"Permission denied: {e}")
        logger.error("Please check the permissions of the public path and log file")
        return 1

    except Exception as e:
        logger.error(f"Unexpected error occurred: {e}")
        logger.error(f"Error type: {type(e).__name__}")
        logger.error("Full traceback:")
        for line in traceback.format_exc().splitlines():
            if line.strip():
                logger.error(f"  {line}")
        return 1

    finally:
        sys.stdout.flush()
        sys.stderr.flush()


if __name__ == "__main__":
    sys.exit(run())
