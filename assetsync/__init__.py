"""
Static asset synchronisation with S3-compatible storage (assetsync)

Uploads compiled assets to a bucket, prunes stale files and invalidates
CloudFront paths.
"""

__version__ = "1.0.0"
__author__ = "assetsync"
__description__ = "Static asset synchronisation with S3-compatible storage"

# Import main components
from .compression import CompressionChoice, percentage_change, select_variant
from .config import VERSION
from .config_validator import AssetSyncConfig, ConfigValidator, S3Config
from .exceptions import AssetSyncError, BucketNotFoundError, ConfigurationError, TransferError
from .file_utils import LocalFilesystem, LocalInventory
from .fingerprint import has_digest, non_fingerprinted
from .logger import log_step, logger, setup_logger
from .metadata import MetadataResolver, UploadPlan, resolve_headers
from .reconciler import (
    ExactName,
    Pattern,
    Reconciler,
    build_ignore_rules,
    compute_deletion_set,
    compute_upload_set,
)
from .s3_storage import CloudFrontInvalidator, S3Storage, create_cloudfront_client, create_s3_client
from .syncer import SyncResult, SyncState, Syncer
