"""Application-wide constants.

This module centralizes magic numbers and configuration constants
that are used across multiple modules. For environment-specific
configuration, see config.py.
"""

# =============================================================================
# Scan Status
# =============================================================================

# Shown for buckets that have no scan job yet
SCAN_STATUS_NEVER_SCANNED: str = "never_scanned"

# =============================================================================
# Catalog Layout
# =============================================================================

# Delimiter between key segments; folder keys always end with it
KEY_DELIMITER: str = "/"

# =============================================================================
# Content Limits
# =============================================================================

# Error message max length (for truncation before persisting)
ERROR_MESSAGE_MAX_LENGTH: int = 500

# =============================================================================
# Locking
# =============================================================================

# Redis key guarding full sweeps across worker processes
FULL_SWEEP_LOCK_KEY: str = "bucketmirror:full-sweep"
