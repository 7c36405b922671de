"""
Parameter Validation

Applies an action's declared parameter schema to caller input.
"""

from typing import Any

from actionhub.core.exceptions import MissingParametersError
from actionhub.core.types import ParameterSpec


class ParameterValidator:
    """
    Fills defaults and reports missing required parameters.

    Supplied values are never type-checked or coerced; parameters the
    schema does not declare pass through unchanged.
    """

    def validate(
        self,
        specs: list[ParameterSpec],
        supplied: dict[str, Any] | None,
    ) -> dict[str, Any]:
        """
        Resolve the effective parameter map.

        Raises:
            MissingParametersError: Listing every missing name in schema order
        """
        resolved = dict(supplied or {})
        missing: list[str] = []

        for spec in specs:
            if spec.name in resolved:
                continue
            if spec.default_value is not None:
                resolved[spec.name] = spec.default_value
            elif spec.required:
                missing.append(spec.name)

        if missing:
            raise MissingParametersError(missing)

        return resolved
