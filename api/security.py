"""Security utilities for the API layer: headers, TLS and audit logging."""

import os
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from loguru import logger

from clerk.backends import validate_api_key_format


def validate_environment_security() -> Dict[str, Any]:
    """Validate security configuration from environment variables.

    A missing API key is reported as a warning: the application still starts
    and surfaces the missing key to the judge through ``/status``.

    Returns:
        Dictionary with validation results and warnings
    """
    warnings = []
    errors = []

    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        warnings.append("GOOGLE_API_KEY is not set - case analysis is unavailable")
    elif not validate_api_key_format(api_key):
        warnings.append("GOOGLE_API_KEY has invalid format or is a placeholder")

    credential_check = os.getenv("CREDENTIAL_CHECK_ENABLED", "true").lower()
    if credential_check not in ("true", "false"):
        errors.append("CREDENTIAL_CHECK_ENABLED must be 'true' or 'false'")

    timeout = os.getenv("ANALYSIS_TIMEOUT_SECONDS", "0")
    try:
        if float(timeout) < 0:
            errors.append("ANALYSIS_TIMEOUT_SECONDS must not be negative")
    except ValueError:
        errors.append("ANALYSIS_TIMEOUT_SECONDS must be a number")

    cors_origins = os.getenv("CORS_ORIGINS", "")
    if "*" in cors_origins:
        warnings.append(
            "CORS_ORIGINS includes wildcard (*). This is insecure for production."
        )

    tls_enabled = os.getenv("TLS_ENABLED", "false").lower() == "true"
    if not tls_enabled:
        warnings.append(
            "TLS is not enabled. Keep the API bound to localhost or use HTTPS."
        )

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if log_level == "DEBUG":
        warnings.append(
            "LOG_LEVEL is set to DEBUG. Model replies and prompts may be written to logs."
        )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings
    }


def get_security_headers() -> Dict[str, str]:
    """Get recommended security headers for API responses.

    Returns:
        Dictionary of security headers
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Content-Security-Policy": "default-src 'self'",
        "Referrer-Policy": "strict-origin-when-cross-origin"
    }


def get_tls_config() -> Optional[Dict[str, str]]:
    """Get TLS/SSL configuration from environment.

    Returns:
        Dictionary with cert and key paths, or None if TLS is not enabled
    """
    tls_enabled = os.getenv("TLS_ENABLED", "false").lower() == "true"

    if not tls_enabled:
        return None

    cert_path = os.getenv("TLS_CERT_PATH")
    key_path = os.getenv("TLS_KEY_PATH")

    if not cert_path or not key_path:
        logger.warning("TLS_ENABLED is true but certificate paths are not configured")
        return None

    if not os.path.isfile(cert_path):
        logger.error(f"TLS certificate not found: {cert_path}")
        return None

    if not os.path.isfile(key_path):
        logger.error(f"TLS key not found: {key_path}")
        return None

    return {
        "certfile": cert_path,
        "keyfile": key_path
    }


def log_audit_event(event_type: str, details: Optional[Dict[str, Any]] = None):
    """Log corpus-changing events for the audit trail.

    Args:
        event_type: Type of event (e.g., "decisions_uploaded", "decision_deleted")
        details: Optional additional details
    """
    audit_entry = {
        "event_type": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": details or {}
    }

    logger.info(f"AUDIT: {event_type}", **audit_entry)
