"""
Exception types raised by the asset synchronisation pipeline.
"""


class AssetSyncError(Exception):
    """Base class for all assetsync failures."""


class ConfigurationError(AssetSyncError):
    """Raised for an option value that cannot be interpreted."""


class BucketNotFoundError(AssetSyncError):
    """Raised when the target bucket does not exist or cannot be listed."""

    def __init__(self, bucket_name, provider="AWS"):
        self.bucket_name = bucket_name
        self.provider = provider
        super().__init__(f"{provider} Bucket: {bucket_name} not found.")


class TransferError(AssetSyncError):
    """Raised when a single write, delete or invalidation request fails."""

    def __init__(self, operation, key, reason):
        self.operation = operation
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to {operation} {key}: {reason}")
