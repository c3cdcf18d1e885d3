"""
Static constants configuration.

Operational constants (timeouts, limits, token sizes) that don't change based on
environment. Environment-tunable values live in env.py and use these as defaults.
"""

# =============================================================================
# DATABASE
# =============================================================================

DEFAULT_POOL_SIZE = 20
DEFAULT_MAX_OVERFLOW = 40
DEFAULT_POOL_TIMEOUT = 30
DEFAULT_POOL_RECYCLE = 3600  # 1 hour

# =============================================================================
# BLOB STORE
# =============================================================================

DEFAULT_STORE_REGION = "us-east-1"
DEFAULT_STORE_MAX_RETRIES = 3
DEFAULT_STORE_RETRY_BASE_DELAY = 0.5  # seconds, doubled per attempt

# Upload chunking (boto3 TransferConfig)
STORE_MULTIPART_THRESHOLD = 8 * 1024 * 1024  # 8 MB
STORE_MULTIPART_CHUNKSIZE = 8 * 1024 * 1024

# S3 object keys are limited to 1024 bytes of UTF-8
STORE_MAX_OBJECT_NAME_BYTES = 1024

# Bytes read from the head of an upload for content type detection
CONTENT_SNIFF_BYTES = 2048

# =============================================================================
# SESSION TOKENS
# =============================================================================

JWT_ALGORITHM = "HS256"
DEFAULT_JWT_EXPIRY_HOURS = 24

# =============================================================================
# API KEYS
# =============================================================================

DEFAULT_API_KEY_PREFIX = "sgs"
API_KEY_SECRET_BYTES = 32  # 256 bits of entropy
API_KEY_LOOKUP_LENGTH = 12  # stored, indexed leading characters of the token
DEFAULT_API_KEY_HASH_ROUNDS = 12
DEFAULT_API_KEY_MIN_LIFETIME_HOURS = 1
DEFAULT_API_KEY_MAX_LIFETIME_DAYS = 365

# =============================================================================
# SIGNED URLS
# =============================================================================

DEFAULT_SIGNED_URL_MIN_LIFETIME_MINUTES = 5
# 0 disables the upper bound on signed URL lifetime
DEFAULT_SIGNED_URL_MAX_LIFETIME_HOURS = 0
SIGNED_URL_DOWNLOAD_PATH = "/v1/files/download-signed"

# =============================================================================
# COMPENSATION RECONCILER
# =============================================================================

DEFAULT_RECONCILER_INTERVAL_SECONDS = 60
DEFAULT_RECONCILER_BATCH_SIZE = 50
DEFAULT_RECONCILER_MAX_ATTEMPTS = 10

# =============================================================================
# PORTS
# =============================================================================

MIN_PORT = 1
MAX_PORT = 65535
DEFAULT_API_PORT = 8000
