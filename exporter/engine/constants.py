# Path: exporter/engine/constants.py
"""
Exporter Engine Constants

Centralized constants for job control, status probing and downloads.
NO HARDCODED VALUES in engine modules - all endpoint paths here.
"""

# ============================================================================
# JOB ENDPOINTS
# ============================================================================

# Start / cancel an export job (POST / DELETE {job_id})
ENDPOINT_START_EXPORT = '/api/modeller/importexport/export/package'
ENDPOINT_CANCEL_EXPORT = '/api/modeller/importexport/export/package/{job_id}'

# Dependency pre-check
ENDPOINT_DEPENDENCIES = '/api/modeller/importexport/export/added'

# Current user (createdBy resolution)
ENDPOINT_CURRENT_USER = '/api/users/me'

# ============================================================================
# STATUS ENDPOINTS (probed in this order)
# ============================================================================
STRATEGY_MODELLER = 'modeller'
STRATEGY_PACKAGE = 'package'
STRATEGY_PANEL = 'panel'
STRATEGY_LEGACY = 'legacy'
STRATEGY_CONFIGURATION = 'configuration'
STRATEGY_LIST = 'list'

STATUS_ENDPOINTS = {
    STRATEGY_MODELLER: '/api/modeller/importexport/export/package/{job_id}/progress/',
    STRATEGY_PACKAGE: '/api/package/export/{job_id}',
    STRATEGY_PANEL: '/api/package/export-panel/{job_id}',
    STRATEGY_LEGACY: '/api/exports/{job_id}/status',
    STRATEGY_CONFIGURATION: '/api/configuration/export/{job_id}',
    STRATEGY_LIST: '/api/package/exports',
}

DOWNLOAD_ENDPOINTS = {
    STRATEGY_MODELLER: '/modeller/__importexport/export/package/{job_id}/download',
    STRATEGY_PACKAGE: '/api/package/export/{job_id}/download',
    STRATEGY_PANEL: '/api/package/export-panel/{job_id}/download',
    STRATEGY_LEGACY: '/api/exports/{job_id}/download',
    STRATEGY_CONFIGURATION: '/api/configuration/export/{job_id}/download',
    STRATEGY_LIST: '/api/package/export/{job_id}/download',
}

# ============================================================================
# REQUEST BODY VALUES
# ============================================================================
SELECTOR_SYSTEM_NAME = 'sharedo-type'

# ============================================================================
# HTTP HEADERS
# ============================================================================
HEADER_AUTHORIZATION = 'Authorization'
HEADER_ACCEPT = 'Accept'
HEADER_CONTENT_TYPE = 'Content-Type'
HEADER_RANGE = 'Range'
HEADER_CONTENT_RANGE = 'Content-Range'
HEADER_CONTENT_LENGTH = 'Content-Length'
HEADER_USER_EMAIL = 'X-User-Email'
HEADER_CREATED_BY = 'X-Created-By'

BEARER_PREFIX = 'Bearer '
ACCEPT_JSON = 'application/json'
ACCEPT_ARCHIVE = 'application/zip, application/octet-stream'
CONTENT_TYPE_JSON = 'application/json'

# ============================================================================
# CONNECTION SETTINGS
# ============================================================================
MAX_CONCURRENT_CONNECTIONS = 10
FORCE_CLOSE_CONNECTIONS = False

# Status probes use a shorter request timeout than downloads (seconds)
STATUS_REQUEST_TIMEOUT = 15

# Null statuses reported right after job creation are expected
EXPECTED_INITIAL_UNKNOWN_POLLS = 5
