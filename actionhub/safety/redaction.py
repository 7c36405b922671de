"""
Header Redaction

Masks secret header values before a resolved request is returned to a
caller or persisted to the audit log.
"""

from collections.abc import Iterable, Mapping

MASK = "****"

SENSITIVE_HEADERS = frozenset({"authorization", "x-api-key", "api-key", "token"})


def is_sensitive(name: str, extra: Iterable[str] = ()) -> bool:
    """Case-insensitive check against the built-in and extra header names."""
    lowered = name.lower()
    return lowered in SENSITIVE_HEADERS or lowered in {e.lower() for e in extra}


def redact_headers(
    headers: Mapping[str, str],
    extra: Iterable[str] = (),
) -> dict[str, str]:
    """
    Copy headers with sensitive values replaced by MASK.

    Args:
        headers: Outbound headers with real values
        extra: Additional header names to mask, e.g. those a credential added
    """
    extra_names = {name.lower() for name in extra}
    return {
        name: MASK if is_sensitive(name, extra_names) else value
        for name, value in headers.items()
    }
