"""
Configuration validation and management for assetsync.
Provides type-safe configuration handling with comprehensive validation.
"""

import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import (
    DEFAULT_ACL,
    DEFAULT_ASSETS_PREFIX,
    DEFAULT_PROVIDER,
    DEFAULT_PUBLIC_PATH,
    DEFAULT_UPLOAD_WORKERS,
    EXISTING_REMOTE_FILES_POLICIES,
    MAX_UPLOAD_WORKERS,
)
from .exceptions import ConfigurationError
from .logger import logger


@dataclass
class S3Config:
    """S3/Object Storage configuration."""

    bucket_name: str
    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    provider: str = DEFAULT_PROVIDER
    upload_workers: int = DEFAULT_UPLOAD_WORKERS

    def __post_init__(self):
        if not self.bucket_name:
            raise ConfigurationError("S3 bucket name cannot be empty")
        if not (1 <= self.upload_workers <= MAX_UPLOAD_WORKERS):
            raise ConfigurationError(
                f"Upload workers must be between 1-{MAX_UPLOAD_WORKERS}, got: {self.upload_workers}"
            )
        # Validate bucket name format
        if not re.match(r"^[a-z0-9][a-z0-9.\-]*[a-z0-9]$", self.bucket_name.lower()):
            logger.warning(f"S3 bucket name may not be valid: {self.bucket_name}")


@dataclass
class AssetSyncConfig:
    """Everything a sync pass reads; never modified by the pipeline."""

    s3: S3Config
    public_path: str = DEFAULT_PUBLIC_PATH
    assets_prefix: str = DEFAULT_ASSETS_PREFIX
    manifest: bool = False
    manifest_path: Optional[str] = None
    ignored_files: List[Any] = field(default_factory=list)
    always_upload: List[str] = field(default_factory=list)
    custom_headers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    invalidate: List[str] = field(default_factory=list)
    existing_remote_files: str = "keep"
    gzip_compression: bool = False
    reduced_redundancy: bool = False
    cdn_distribution_id: Optional[str] = None
    acl: Optional[str] = DEFAULT_ACL

    def __post_init__(self):
        self.assets_prefix = self.assets_prefix.strip("/")
        if self.manifest_path is None:
            self.manifest_path = os.path.join(self.public_path, self.assets_prefix, "manifest.json")
        if self.existing_remote_files not in EXISTING_REMOTE_FILES_POLICIES:
            raise ConfigurationError(
                f"existing_remote_files must be one of {', '.join(EXISTING_REMOTE_FILES_POLICIES)}, "
                f"got: {self.existing_remote_files}"
            )
        for path, headers in self.custom_headers.items():
            if not isinstance(headers, dict):
                raise ConfigurationError(f"Custom headers for {path} must be a mapping")

    @property
    def aws(self) -> bool:
        return self.s3.provider.lower() == "aws"

    @property
    def keep_existing_remote_files(self) -> bool:
        """Both keep and ignore leave extra remote files alone."""
        return self.existing_remote_files in ("keep", "ignore")

    @property
    def ignore_existing_remote_files(self) -> bool:
        return self.existing_remote_files == "ignore"


def split_list(value: Optional[str]) -> List[str]:
    """Split a comma separated option value."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def compile_patterns(patterns: List[str]) -> List[re.Pattern]:
    """Compile ignore patterns, skipping the ones that are not valid regexes."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning(f"Invalid ignore pattern {pattern!r} ignored: {e}")
    return compiled


def parse_custom_headers(value: Optional[str]) -> Dict[str, Dict[str, Any]]:
    """Parse the JSON object of path or pattern -> headers."""
    if not value:
        return {}
    try:
        headers = json.loads(value)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Custom headers are not valid JSON: {e}") from e
    if not isinstance(headers, dict):
        raise ConfigurationError("Custom headers must be a JSON object")
    return headers


class ConfigValidator:
    """Configuration validator and loader."""

    @staticmethod
    def _get_env_bool(key: str, default: bool = False) -> bool:
        """Get boolean value from environment variable."""
        value = os.environ.get(key)
        if value is None:
            return default
        return value.lower() in ("true", "yes", "1", "on")

    @staticmethod
    def _get_env_int(key: str, default: int, min_val: int = None, max_val: int = None) -> int:
        """Get integer value from environment variable with validation."""
        raw = os.environ.get(key, str(default))
        try:
            value = int(raw)
        except ValueError:
            raise ConfigurationError(f"Invalid integer value for {key}: {raw}")
        if min_val is not None and value < min_val:
            raise ConfigurationError(f"{key} must be >= {min_val}, got: {value}")
        if max_val is not None and value > max_val:
            raise ConfigurationError(f"{key} must be <= {max_val}, got: {value}")
        return value

    @classmethod
    def from_args_and_env(cls, args) -> AssetSyncConfig:
        """Create configuration from command line arguments and environment variables."""

        s3_config = S3Config(
            bucket_name=args.bucket,
            endpoint_url=args.endpoint_url,
            region=os.environ.get("AWS_REGION_NAME"),
            access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
            provider=args.provider,
            upload_workers=cls._get_env_int(
                "ASSET_SYNC_UPLOAD_WORKERS", DEFAULT_UPLOAD_WORKERS, 1, MAX_UPLOAD_WORKERS
            ),
        )

        ignored_files = list(args.ignore) + compile_patterns(args.ignore_pattern)

        return AssetSyncConfig(
            s3=s3_config,
            public_path=args.public_path,
            assets_prefix=args.prefix,
            manifest=args.manifest,
            manifest_path=args.manifest_path,
            ignored_files=ignored_files,
            always_upload=list(args.always_upload),
            custom_headers=parse_custom_headers(args.custom_headers),
            invalidate=list(args.invalidate),
            existing_remote_files=args.existing_remote_files,
            gzip_compression=args.gzip_compression,
            reduced_redundancy=cls._get_env_bool("ASSET_SYNC_REDUCED_REDUNDANCY"),
            cdn_distribution_id=args.cdn_distribution_id,
            acl=args.acl or None,
        )
