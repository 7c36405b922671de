"""
Template Resolution

`{{name}}` placeholder substitution for URLs, headers, bodies, commands and
composite step parameters.

Unknown placeholders are left verbatim so a later pass (or the reader of a
resolved request) can see what was never supplied.
"""

import json
import re
from enum import Enum
from typing import Any
from urllib.parse import quote

PLACEHOLDER = re.compile(r"\{\{([A-Za-z0-9_]+)\}\}")

# encodeURIComponent leaves these unescaped on top of quote()'s defaults
_URI_COMPONENT_SAFE = "!*'()"


class TemplateMode(str, Enum):
    """How a substituted value is written into the template."""

    RAW = "raw"
    URL_ENCODED = "url_encoded"


def stringify(value: Any) -> str:
    """Render a parameter value the way it appears in a resolved template."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def resolve(
    template: str | None,
    params: dict[str, Any],
    mode: TemplateMode = TemplateMode.RAW,
) -> str | None:
    """
    Substitute `{{key}}` tokens from params.

    Args:
        template: Template text; None passes through as None
        params: Values by placeholder name
        mode: RAW writes values as-is, URL_ENCODED percent-encodes them

    Returns:
        The resolved text
    """
    if template is None:
        return None

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in params:
            return match.group(0)
        text = stringify(params[key])
        if mode == TemplateMode.URL_ENCODED:
            return quote(text, safe=_URI_COMPONENT_SAFE)
        return text

    return PLACEHOLDER.sub(_replace, template)


def resolve_mapping(values: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
    """Raw-resolve every string value of a mapping; other values are kept."""
    return {
        key: resolve(value, params) if isinstance(value, str) else value
        for key, value in values.items()
    }
