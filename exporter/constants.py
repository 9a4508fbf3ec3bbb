# Path: exporter/constants.py
"""
Exporter Module Constants

Module-wide constants for export package operations.
Endpoint paths and engine-level tuning live in engine/constants.py.

No hardcoded paths - all paths come from .env via config_loader.
"""

# ============================================================================
# JOB STATES (raw values reported by the export server)
# ============================================================================
RAW_STATE_COMPLETE_VALUES: set = {'COMPLETE', 'COMPLETED', 'DONE', 'SUCCEEDED', 'SUCCESS'}
RAW_STATE_FAILED_VALUES: set = {
    'FAILED',
    'ERROR',
    'PACKAGE CREATION FAILED',
    'EXPORT FAILED',
}
RAW_STATE_CANCELLED_VALUES: set = {'CANCELLED', 'CANCELED', 'ABORTED'}
RAW_STATE_QUEUED_VALUES: set = {'QUEUED', 'PENDING', 'NOT STARTED', 'WAITING'}
RAW_STATE_CREATING_PACKAGE: str = 'CREATING PACKAGE'
RAW_STATE_PACKAGE_FAILED: str = 'PACKAGE CREATION FAILED'
RAW_STATE_UNKNOWN: str = 'UNKNOWN'

# ============================================================================
# HTTP STATUS CODES
# ============================================================================
HTTP_OK: int = 200
HTTP_CREATED: int = 201
HTTP_ACCEPTED: int = 202
HTTP_NO_CONTENT: int = 204
HTTP_PARTIAL_CONTENT: int = 206
HTTP_NOT_FOUND: int = 404
HTTP_RANGE_NOT_SATISFIABLE: int = 416
HTTP_TOO_MANY_REQUESTS: int = 429
HTTP_SERVER_ERROR: int = 500
HTTP_BAD_GATEWAY: int = 502
HTTP_SERVICE_UNAVAILABLE: int = 503
HTTP_GATEWAY_TIMEOUT: int = 504
RETRYABLE_STATUS_CODES: list = [
    HTTP_TOO_MANY_REQUESTS,
    HTTP_SERVER_ERROR,
    HTTP_BAD_GATEWAY,
    HTTP_SERVICE_UNAVAILABLE,
    HTTP_GATEWAY_TIMEOUT
]

# ============================================================================
# EXPORT DEFAULTS
# ============================================================================
DEFAULT_EXPORT_PROFILE: str = 'VeryBasic'
DEFAULT_ENTITY_PROVIDER: str = 'sharedo-type'
DEFAULT_CREATED_BY: str = 'system'

# ============================================================================
# POLLING DEFAULTS
# ============================================================================
DEFAULT_POLL_INTERVAL: float = 0.5  # Fixed cadence, seconds
DEFAULT_POLL_TIMEOUT: float = 120.0  # Wall-clock budget for the poll phase
DEFAULT_UNKNOWN_GRACE_POLLS: int = 20  # Consecutive unknown snapshots tolerated
DEFAULT_ETA_WINDOW: int = 5  # Samples used for ETA extrapolation
MAX_REASONABLE_ETA_SECONDS: float = 300.0

# ============================================================================
# DOWNLOAD DEFAULTS
# ============================================================================
DEFAULT_CHUNK_SIZE: int = 8192  # 8KB chunks for streaming
DEFAULT_TIMEOUT: int = 60  # Per-request timeout in seconds
DEFAULT_CONNECT_TIMEOUT: int = 30
DEFAULT_DOWNLOAD_ATTEMPTS: int = 3  # Attempt ceiling for transport failures
DEFAULT_RETRY_DELAY: float = 1.0  # Backoff base: delay = base * 2 ** attempt
DEFAULT_MAX_RETRY_DELAY: float = 60.0
DEFAULT_PROGRESS_STEP: int = 10  # Download progress reported every 10%

# ============================================================================
# DEPENDENCY PRE-CHECK DEFAULTS
# ============================================================================
DEFAULT_DEPENDENCY_ATTEMPTS: int = 3
DEFAULT_DEPENDENCY_RETRY_DELAY: float = 1.0

# ============================================================================
# ARCHIVE SECURITY DEFAULTS
# ============================================================================
DEFAULT_MAX_COMPRESSED_BYTES: int = 100 * 1024 * 1024  # 100MB
DEFAULT_MAX_UNCOMPRESSED_BYTES: int = 500 * 1024 * 1024  # 500MB
DEFAULT_MAX_COMPRESSION_RATIO: float = 100.0  # 100:1
DEFAULT_MAX_FILE_COUNT: int = 10000
DEFAULT_EXTRACTION_TIMEOUT: float = 30.0  # seconds

# ============================================================================
# CACHE DEFAULTS
# ============================================================================
DEFAULT_CACHE_TTL_SECONDS: int = 3600
CACHE_FILE_SUFFIX: str = '.json'

# ============================================================================
# PROGRESS PHASES
# ============================================================================
PHASE_CACHE: str = 'cache'
PHASE_DEPENDENCIES: str = 'dependencies'
PHASE_START: str = 'start'
PHASE_POLL: str = 'poll'
PHASE_DOWNLOAD: str = 'download'
PHASE_EXTRACT: str = 'extract'
PHASE_REORGANIZE: str = 'reorganize'
PHASE_DONE: str = 'done'

# ============================================================================
# IPO LOGGING PREFIXES
# ============================================================================
LOG_INPUT: str = '[INPUT]'
LOG_PROCESS: str = '[PROCESS]'
LOG_OUTPUT: str = '[OUTPUT]'

# ============================================================================
# LOGGING COMPONENTS
# ============================================================================
LOGGER_ROOT: str = 'exporter'
LOGGER_CORE: str = 'exporter.core'
LOGGER_ENGINE: str = 'exporter.engine'
LOGGER_CLI: str = 'exporter.cli'
LOGGER_EXTRACTION: str = 'exporter.extraction'

# ============================================================================
# LOG FORMAT
# ============================================================================
LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT: str = '%Y-%m-%d %H:%M:%S'
LOG_ACTIVITY_FILENAME: str = 'exporter_activity.log'
LOG_ERROR_FILENAME: str = 'errors.log'

# ============================================================================
# WORKSPACE NAMES
# ============================================================================
WORKSPACE_PREFIX: str = 'export-'
ARCHIVE_FILENAME: str = 'package.zip'
EXTRACTED_DIRNAME: str = 'extracted'

# ============================================================================
# ENVIRONMENT VARIABLE KEYS (for reference in config_loader.py)
# ============================================================================

# Server
ENV_BASE_URL: str = 'EXPORTER_BASE_URL'
ENV_API_TOKEN: str = 'EXPORTER_API_TOKEN'
ENV_USER_NAME: str = 'EXPORTER_USER_NAME'
ENV_EXPORT_PROFILE: str = 'EXPORTER_EXPORT_PROFILE'

# Directory Paths
ENV_TEMP_DIR: str = 'EXPORTER_TEMP_DIR'
ENV_LOG_DIR: str = 'EXPORTER_LOG_DIR'
ENV_CACHE_DIR: str = 'EXPORTER_CACHE_DIR'

# Polling
ENV_POLL_INTERVAL: str = 'EXPORTER_POLL_INTERVAL'
ENV_POLL_TIMEOUT: str = 'EXPORTER_POLL_TIMEOUT'
ENV_UNKNOWN_GRACE_POLLS: str = 'EXPORTER_UNKNOWN_GRACE_POLLS'

# Download
ENV_REQUEST_TIMEOUT: str = 'EXPORTER_REQUEST_TIMEOUT'
ENV_CONNECT_TIMEOUT: str = 'EXPORTER_CONNECT_TIMEOUT'
ENV_CHUNK_SIZE: str = 'EXPORTER_CHUNK_SIZE'
ENV_DOWNLOAD_ATTEMPTS: str = 'EXPORTER_DOWNLOAD_ATTEMPTS'
ENV_RETRY_DELAY: str = 'EXPORTER_RETRY_DELAY'
ENV_MAX_RETRY_DELAY: str = 'EXPORTER_MAX_RETRY_DELAY'

# Dependency pre-check
ENV_CHECK_DEPENDENCIES: str = 'EXPORTER_CHECK_DEPENDENCIES'
ENV_DEPENDENCY_ATTEMPTS: str = 'EXPORTER_DEPENDENCY_ATTEMPTS'

# Archive security
ENV_MAX_COMPRESSED_BYTES: str = 'EXPORTER_MAX_COMPRESSED_BYTES'
ENV_MAX_UNCOMPRESSED_BYTES: str = 'EXPORTER_MAX_UNCOMPRESSED_BYTES'
ENV_MAX_COMPRESSION_RATIO: str = 'EXPORTER_MAX_COMPRESSION_RATIO'
ENV_MAX_FILE_COUNT: str = 'EXPORTER_MAX_FILE_COUNT'
ENV_EXTRACTION_TIMEOUT: str = 'EXPORTER_EXTRACTION_TIMEOUT'

# Cache
ENV_USE_CACHE: str = 'EXPORTER_USE_CACHE'
ENV_CACHE_TTL: str = 'EXPORTER_CACHE_TTL'

# Logging
ENV_LOG_LEVEL: str = 'EXPORTER_LOG_LEVEL'
ENV_LOG_CONSOLE: str = 'EXPORTER_LOG_CONSOLE'

# ============================================================================
# EXPORTS
# ============================================================================
__all__ = [
    # Raw job states
    'RAW_STATE_COMPLETE_VALUES',
    'RAW_STATE_FAILED_VALUES',
    'RAW_STATE_CANCELLED_VALUES',
    'RAW_STATE_QUEUED_VALUES',
    'RAW_STATE_CREATING_PACKAGE',
    'RAW_STATE_PACKAGE_FAILED',
    'RAW_STATE_UNKNOWN',

    # HTTP Status Codes
    'HTTP_OK',
    'HTTP_CREATED',
    'HTTP_ACCEPTED',
    'HTTP_NO_CONTENT',
    'HTTP_PARTIAL_CONTENT',
    'HTTP_NOT_FOUND',
    'HTTP_RANGE_NOT_SATISFIABLE',
    'HTTP_TOO_MANY_REQUESTS',
    'HTTP_SERVER_ERROR',
    'HTTP_BAD_GATEWAY',
    'HTTP_SERVICE_UNAVAILABLE',
    'HTTP_GATEWAY_TIMEOUT',
    'RETRYABLE_STATUS_CODES',

    # Defaults
    'DEFAULT_EXPORT_PROFILE',
    'DEFAULT_ENTITY_PROVIDER',
    'DEFAULT_CREATED_BY',
    'DEFAULT_POLL_INTERVAL',
    'DEFAULT_POLL_TIMEOUT',
    'DEFAULT_UNKNOWN_GRACE_POLLS',
    'DEFAULT_ETA_WINDOW',
    'MAX_REASONABLE_ETA_SECONDS',
    'DEFAULT_CHUNK_SIZE',
    'DEFAULT_TIMEOUT',
    'DEFAULT_CONNECT_TIMEOUT',
    'DEFAULT_DOWNLOAD_ATTEMPTS',
    'DEFAULT_RETRY_DELAY',
    'DEFAULT_MAX_RETRY_DELAY',
    'DEFAULT_PROGRESS_STEP',
    'DEFAULT_DEPENDENCY_ATTEMPTS',
    'DEFAULT_DEPENDENCY_RETRY_DELAY',
    'DEFAULT_MAX_COMPRESSED_BYTES',
    'DEFAULT_MAX_UNCOMPRESSED_BYTES',
    'DEFAULT_MAX_COMPRESSION_RATIO',
    'DEFAULT_MAX_FILE_COUNT',
    'DEFAULT_EXTRACTION_TIMEOUT',
    'DEFAULT_CACHE_TTL_SECONDS',
    'CACHE_FILE_SUFFIX',

    # Progress phases
    'PHASE_CACHE',
    'PHASE_DEPENDENCIES',
    'PHASE_START',
    'PHASE_POLL',
    'PHASE_DOWNLOAD',
    'PHASE_EXTRACT',
    'PHASE_REORGANIZE',
    'PHASE_DONE',

    # IPO Logging Prefixes
    'LOG_INPUT',
    'LOG_PROCESS',
    'LOG_OUTPUT',

    # Logging Components
    'LOGGER_ROOT',
    'LOGGER_CORE',
    'LOGGER_ENGINE',
    'LOGGER_CLI',
    'LOGGER_EXTRACTION',
    'LOG_FORMAT',
    'LOG_DATE_FORMAT',
    'LOG_ACTIVITY_FILENAME',
    'LOG_ERROR_FILENAME',

    # Workspace
    'WORKSPACE_PREFIX',
    'ARCHIVE_FILENAME',
    'EXTRACTED_DIRNAME',

    # Environment Variable Keys
    'ENV_BASE_URL',
    'ENV_API_TOKEN',
    'ENV_USER_NAME',
    'ENV_EXPORT_PROFILE',
    'ENV_TEMP_DIR',
    'ENV_LOG_DIR',
    'ENV_CACHE_DIR',
    'ENV_POLL_INTERVAL',
    'ENV_POLL_TIMEOUT',
    'ENV_UNKNOWN_GRACE_POLLS',
    'ENV_REQUEST_TIMEOUT',
    'ENV_CONNECT_TIMEOUT',
    'ENV_CHUNK_SIZE',
    'ENV_DOWNLOAD_ATTEMPTS',
    'ENV_RETRY_DELAY',
    'ENV_MAX_RETRY_DELAY',
    'ENV_CHECK_DEPENDENCIES',
    'ENV_DEPENDENCY_ATTEMPTS',
    'ENV_MAX_COMPRESSED_BYTES',
    'ENV_MAX_UNCOMPRESSED_BYTES',
    'ENV_MAX_COMPRESSION_RATIO',
    'ENV_MAX_FILE_COUNT',
    'ENV_EXTRACTION_TIMEOUT',
    'ENV_USE_CACHE',
    'ENV_CACHE_TTL',
    'ENV_LOG_LEVEL',
    'ENV_LOG_CONSOLE',
]
