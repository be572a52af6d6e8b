"""
Log sanitization for values that arrive from HTTP callers.
"""

import re
from typing import Any, Optional


def sanitize_for_log(value: Any, max_length: int = 100) -> str:
    """
    Sanitize a value for safe logging.

    Strips control characters and newlines so request input cannot forge
    log lines, and truncates long values.

    Args:
        value: The value to sanitize
        max_length: Maximum length of the output (default 100)

    Returns:
        Sanitized string safe for logging
    """
    sanitized = re.sub(r"[\x00-\x1f\x7f-\x9f\r\n\t]", "", str(value))

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized


def sanitize_label(value: Optional[str]) -> str:
    """
    Sanitize a Kubernetes object name (namespace, pod) for logging.

    Kubernetes names are DNS labels/subdomains: lowercase alphanumerics,
    '-' and '.'. Anything else is dropped.
    """
    if not value:
        return "*"
    return re.sub(r"[^a-z0-9.-]", "", value.lower())[:253] or "?"
