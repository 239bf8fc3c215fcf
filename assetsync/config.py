"""
Configuration constants and settings for assetsync.
"""

# Version information
VERSION = "1.0.0"

# One year in seconds, used for max-age and the Expires header of digest assets
ONE_YEAR = 31557600
FINGERPRINT_CACHE_CONTROL = f"public, max-age={ONE_YEAR}"

# Policies for files that exist remotely but not locally
EXISTING_REMOTE_FILES_POLICIES = ("keep", "delete", "ignore")

# Manifest originals that are uploaded alongside their compiled copy
FONT_EXTENSIONS = ("eot", "svg", "ttf", "woff")

# Storage class used for reduced redundancy uploads on AWS
REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"

# Default configuration values
DEFAULT_PUBLIC_PATH = "./public"
DEFAULT_ASSETS_PREFIX = "assets"
DEFAULT_PROVIDER = "AWS"
DEFAULT_ACL = "public-read"
DEFAULT_LOG_FILE = "assetsync.log"

# Performance settings
DEFAULT_UPLOAD_WORKERS = 1
MAX_UPLOAD_WORKERS = 50
MULTIPART_THRESHOLD = 25 * 1024 * 1024  # 25MB
DEFAULT_TIMEOUT = 60
DEFAULT_READ_TIMEOUT = 300
