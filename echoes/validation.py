"""Structured response validation at the generator boundary.

Generator output is untrusted. validate_response() converts it into a
StructuredResponse or reports a GenerationFailure of kind "validation";
it never raises for bad input, so callers handle it exactly like any other
failed round-trip.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from echoes.models import GenerationFailure, StructuredResponse

logger = logging.getLogger(__name__)


def validate_response(raw: Any) -> StructuredResponse | GenerationFailure:
    """Validate a mapping, or JSON text/bytes, as a StructuredResponse."""
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return StructuredResponse.model_validate_json(raw)
        if not isinstance(raw, dict):
            return GenerationFailure(
                kind="validation",
                message=f"expected an object, got {type(raw).__name__}",
            )
        return StructuredResponse.model_validate(raw)
    except ValidationError as e:
        message = _summarise(e)
        logger.debug("generator output rejected: %s", message)
        return GenerationFailure(kind="validation", message=message)


def _summarise(error: ValidationError) -> str:
    """Field paths and reasons only; the offending payload is never echoed."""
    parts = []
    for err in error.errors(include_input=False, include_url=False):
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "invalid generator output (" + "; ".join(parts) + ")"
