# =============================================================================
# Schema Collaborator Output
# =============================================================================
# The schema-inference collaborator (an LLM) answers with free-form text that
# contains a JSON object, sometimes sprinkled with Mongo shell literals.
# This module turns that answer into a SchemaDescriptor.
# =============================================================================

import json
import logging
import re
from typing import Any, Dict, Protocol, Union

from pydantic import ValidationError

from libs.errors import SchemaUnavailable
from libs.models import SchemaDescriptor

__all__ = [
    "SchemaProposer",
    "ProposedSchema",
    "extract_json_object",
    "parse_schema_response",
    "coerce_proposed_schema",
]

logger = logging.getLogger(__name__)

ProposedSchema = Union[SchemaDescriptor, Dict[str, Any], str]

_MONGO_SHELL_LITERALS = [
    (re.compile(r"""ISODate\(["'](.+?)["']\)"""), r'"\1"'),
    (re.compile(r"""ObjectId\(["'](.+?)["']\)"""), r'"\1"'),
    (re.compile(r"""NumberDecimal\(["']?(.+?)["']?\)"""), r"\1"),
    (re.compile(r"""NumberLong\(["']?(.+?)["']?\)"""), r"\1"),
    (re.compile(r"""NumberInt\(["']?(.+?)["']?\)"""), r"\1"),
]


class SchemaProposer(Protocol):
    """
    Schema-inference collaborator.

    Receives the payload of ``TabularMetadata.to_collaborator_payload()`` and
    returns a descriptor, a descriptor-shaped dict, or raw response text.
    """

    def propose_schema(self, metadata: Dict[str, Any]) -> ProposedSchema: ...


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Extract the JSON object spanning the first "{" to the last "}".

    Raises:
        ValueError: If no object boundaries exist or the JSON is invalid
    """
    cleaned = text.strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ValueError("No valid JSON object boundaries found in response")

    cleaned = cleaned[start : end + 1]
    for pattern, replacement in _MONGO_SHELL_LITERALS:
        cleaned = pattern.sub(replacement, cleaned)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Could not parse collaborator JSON: {cleaned[:200]}")
        raise ValueError(f"Invalid JSON in response: {e}") from e

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def parse_schema_response(text: str) -> SchemaDescriptor:
    """
    Turn collaborator response text into a SchemaDescriptor.

    Raises:
        SchemaUnavailable: If the text holds no usable schema
    """
    try:
        payload = extract_json_object(text)
    except ValueError as e:
        raise SchemaUnavailable(f"Schema response could not be parsed: {e}") from e
    return coerce_proposed_schema(payload)


def coerce_proposed_schema(proposed: ProposedSchema) -> SchemaDescriptor:
    """
    Accept whatever a SchemaProposer returned and validate it.

    Raises:
        SchemaUnavailable: If nothing was proposed or it does not validate
    """
    if proposed is None:
        raise SchemaUnavailable("Schema proposer returned nothing")
    if isinstance(proposed, SchemaDescriptor):
        return proposed
    if isinstance(proposed, str):
        return parse_schema_response(proposed)
    try:
        return SchemaDescriptor.model_validate(proposed)
    except ValidationError as e:
        raise SchemaUnavailable(f"Proposed schema is invalid: {e}") from e
