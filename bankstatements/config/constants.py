"""
Static constants configuration.

Operational defaults (timeouts, polling, size thresholds) and the lookback
policies used by windowed statement pagination.
"""

# =============================================================================
# OPERATIONAL DEFAULTS
# =============================================================================

# Default Timeouts (seconds)
DEFAULT_HTTP_TIMEOUT = 30

# Request throttle for bank endpoints
DEFAULT_REQUESTS_PER_SECOND = 5.0

# Generate-then-poll
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_POLL_MAX_ATTEMPTS = 30

# Document validation
DEFAULT_MIN_DOCUMENT_BYTES = 10 * 1024  # 10 KiB
PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF-"

# Content types that say nothing about the payload and must be sniffed
UNRELIABLE_CONTENT_TYPES = frozenset(
  {
    "",
    "application/octet-stream",
    "binary/octet-stream",
    "application/download",
    "application/force-download",
  }
)

# =============================================================================
# LOOKBACK POLICIES
# =============================================================================

# Institutions that answer "statements for period P" are enumerated over a
# bounded set of periods. The bounds are the values observed in each
# institution's own web client.
TRAILING_MONTHS = 12
TRAILING_YEARS = 7

# =============================================================================
# SESSION TOKENS
# =============================================================================

# A decrypted bearer token is considered stale this many seconds before exp
TOKEN_EXPIRY_BUFFER_SECONDS = 60

# Prefixes some institutions prepend to JSON bodies to defeat JSON hijacking
XSSI_PREFIXES = (")]}',", ")]}'", "while(1);", "for(;;);")
