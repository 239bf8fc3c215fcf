"""
Command-line argument parsing for assetsync.
"""

import argparse
import os

from .config import (
    DEFAULT_ACL,
    DEFAULT_ASSETS_PREFIX,
    DEFAULT_LOG_FILE,
    DEFAULT_PROVIDER,
    DEFAULT_PUBLIC_PATH,
    EXISTING_REMOTE_FILES_POLICIES,
)
from .config_validator import split_list

# Repeatable options and the comma separated variable each one defaults to
LIST_OPTIONS = {
    "ignore": "ASSET_SYNC_IGNORED_FILES",
    "ignore_pattern": "ASSET_SYNC_IGNORED_PATTERNS",
    "always_upload": "ASSET_SYNC_ALWAYS_UPLOAD",
    "invalidate": "ASSET_SYNC_INVALIDATE",
}


def _get_env_bool(key: str) -> bool:
    """Get boolean value from environment variable."""
    return os.environ.get(key, "").lower() in ("true", "yes", "1")


def _get_env_list(key: str):
    """Get a comma separated list from environment variable."""
    return split_list(os.environ.get(key))


def parse_arguments(argv=None):
    """Parse command-line arguments with environment variable defaults."""
    parser = argparse.ArgumentParser(
        description="Synchronise compiled static assets with an S3 bucket.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  ASSET_SYNC_BUCKET                 S3 bucket name
  AWS_ENDPOINT_URL                  S3 endpoint URL for S3-compatible storage
  AWS_REGION_NAME                   Bucket region
  AWS_ACCESS_KEY_ID                 Access key (otherwise the AWS profile is used)
  AWS_SECRET_ACCESS_KEY             Secret key
  ASSET_SYNC_PROVIDER               Storage provider (default: AWS)
  ASSET_SYNC_UPLOAD_WORKERS         Parallel upload/delete workers (1-50, default: 1)
  ASSET_SYNC_PUBLIC_PATH            Directory holding the assets prefix
  ASSET_SYNC_PREFIX                 Assets prefix, shared by local and remote paths
  ASSET_SYNC_MANIFEST               Read the file list from the manifest (true/false)
  ASSET_SYNC_MANIFEST_PATH          Manifest location
  ASSET_SYNC_IGNORED_FILES          File names never uploaded (comma separated)
  ASSET_SYNC_IGNORED_PATTERNS       Regexes of paths never uploaded (comma separated)
  ASSET_SYNC_ALWAYS_UPLOAD          Files uploaded on every run (comma separated)
  ASSET_SYNC_CUSTOM_HEADERS         JSON object of path or regex -> headers
  ASSET_SYNC_INVALIDATE             Files to invalidate on the CDN (comma separated)
  ASSET_SYNC_EXISTING_REMOTE_FILES  keep, delete or ignore (default: keep)
  ASSET_SYNC_GZIP_COMPRESSION       Upload .gz twins in place of plain files (true/false)
  ASSET_SYNC_REDUCED_REDUNDANCY     Use reduced redundancy storage on AWS (true/false)
  ASSET_SYNC_CDN_DISTRIBUTION_ID    CloudFront distribution to invalidate
  ASSET_SYNC_ACL                    Canned ACL for uploads (default: public-read)
  ASSET_SYNC_LOG_FILE               Log file location

Repeatable options given on the command line replace the matching list variable;
--no-manifest and --no-gzip-compression override variables set to true.

Examples:
  # Upload new assets, keep everything already in the bucket
  python sync_assets.py --bucket my-bucket

  # Mirror the local tree, deleting stale remote assets
  python sync_assets.py --bucket my-bucket --existing-remote-files delete

  # Show what would change
  python sync_assets.py --bucket my-bucket --dry-run
        """,
    )

    # S3 Configuration
    s3_group = parser.add_argument_group("S3 Configuration")
    s3_group.add_argument(
        "--bucket",
        default=os.environ.get("ASSET_SYNC_BUCKET"),
        help="S3 bucket name (env: ASSET_SYNC_BUCKET)",
    )
    s3_group.add_argument(
        "--endpoint-url",
        default=os.environ.get("AWS_ENDPOINT_URL"),
        help="S3 endpoint URL (env: AWS_ENDPOINT_URL)",
    )
    s3_group.add_argument(
        "--provider",
        default=os.environ.get("ASSET_SYNC_PROVIDER", DEFAULT_PROVIDER),
        help="Storage provider, AWS or any S3-compatible name (env: ASSET_SYNC_PROVIDER)",
    )
    s3_group.add_argument(
        "--acl",
        default=os.environ.get("ASSET_SYNC_ACL", DEFAULT_ACL),
        help="Canned ACL for uploaded objects, empty to omit (env: ASSET_SYNC_ACL)",
    )

    # Asset Configuration
    asset_group = parser.add_argument_group("Asset Configuration")
    asset_group.add_argument(
        "--public-path",
        default=os.environ.get("ASSET_SYNC_PUBLIC_PATH", DEFAULT_PUBLIC_PATH),
        help="Directory containing the assets prefix (env: ASSET_SYNC_PUBLIC_PATH)",
    )
    asset_group.add_argument(
        "--prefix",
        default=os.environ.get("ASSET_SYNC_PREFIX", DEFAULT_ASSETS_PREFIX),
        help="Assets prefix (env: ASSET_SYNC_PREFIX, default: assets)",
    )
    asset_group.add_argument(
        "--manifest",
        action=argparse.BooleanOptionalAction,
        default=_get_env_bool("ASSET_SYNC_MANIFEST"),
        help="List files from the asset manifest (env: ASSET_SYNC_MANIFEST)",
    )
    asset_group.add_argument(
        "--manifest-path",
        default=os.environ.get("ASSET_SYNC_MANIFEST_PATH"),
        help="Manifest location (env: ASSET_SYNC_MANIFEST_PATH)",
    )
    asset_group.add_argument(
        "--ignore",
        action="append",
        default=None,
        metavar="NAME",
        help="File name to ignore, repeatable (env: ASSET_SYNC_IGNORED_FILES)",
    )
    asset_group.add_argument(
        "--ignore-pattern",
        action="append",
        default=None,
        metavar="REGEX",
        help="Path regex to ignore, repeatable (env: ASSET_SYNC_IGNORED_PATTERNS)",
    )
    asset_group.add_argument(
        "--always-upload",
        action="append",
        default=None,
        metavar="PATH",
        help="File uploaded on every run, repeatable (env: ASSET_SYNC_ALWAYS_UPLOAD)",
    )
    asset_group.add_argument(
        "--custom-headers",
        default=os.environ.get("ASSET_SYNC_CUSTOM_HEADERS"),
        metavar="JSON",
        help="JSON object of path or regex -> headers (env: ASSET_SYNC_CUSTOM_HEADERS)",
    )
    asset_group.add_argument(
        "--gzip-compression",
        action=argparse.BooleanOptionalAction,
        default=_get_env_bool("ASSET_SYNC_GZIP_COMPRESSION"),
        help="Upload .gz files in place of their plain twins (env: ASSET_SYNC_GZIP_COMPRESSION)",
    )

    # Remote Configuration
    remote_group = parser.add_argument_group("Remote Configuration")
    remote_group.add_argument(
        "--existing-remote-files",
        choices=EXISTING_REMOTE_FILES_POLICIES,
        default=os.environ.get("ASSET_SYNC_EXISTING_REMOTE_FILES", "keep"),
        help="What to do with remote files missing locally (env: ASSET_SYNC_EXISTING_REMOTE_FILES)",
    )
    remote_group.add_argument(
        "--cdn-distribution-id",
        default=os.environ.get("ASSET_SYNC_CDN_DISTRIBUTION_ID"),
        help="CloudFront distribution to invalidate (env: ASSET_SYNC_CDN_DISTRIBUTION_ID)",
    )
    remote_group.add_argument(
        "--invalidate",
        action="append",
        default=None,
        metavar="PATH",
        help="File to invalidate after the sync, repeatable (env: ASSET_SYNC_INVALIDATE)",
    )

    # Run options
    run_group = parser.add_argument_group("Run Options")
    run_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the files that would be uploaded and deleted, change nothing",
    )
    run_group.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    run_group.add_argument(
        "--log-file",
        default=os.environ.get("ASSET_SYNC_LOG_FILE", DEFAULT_LOG_FILE),
        help="Log file location, empty to disable (env: ASSET_SYNC_LOG_FILE)",
    )

    args = parser.parse_args(argv)

    # Values given on the command line replace the environment list
    for name, env_key in LIST_OPTIONS.items():
        if getattr(args, name) is None:
            setattr(args, name, _get_env_list(env_key))
    return args
