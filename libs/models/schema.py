# =============================================================================
# Schema Descriptor Models
# =============================================================================
# Declarative target-collection shape: field types, constraints, indexes and
# validation rules. Produced by the schema-inference collaborator or supplied
# by the caller, then reused unchanged across every page of an import.
# =============================================================================

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from libs.normalization import normalize_header

__all__ = [
    "FieldType",
    "FieldSpec",
    "IndexSpec",
    "SchemaDescriptor",
    "resolve_field_type",
]


class FieldType(str, Enum):
    """Declared field types understood by the coercion engine."""

    DATE = "date"
    INT = "int"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    STRING = "string"


# Aliases seen in collaborator output (lowercased)
_TYPE_ALIASES: dict[str, FieldType] = {
    "date": FieldType.DATE,
    "datetime": FieldType.DATE,
    "timestamp": FieldType.DATE,
    "int": FieldType.INT,
    "integer": FieldType.INT,
    "long": FieldType.INT,
    "double": FieldType.DOUBLE,
    "float": FieldType.DOUBLE,
    "decimal": FieldType.DOUBLE,
    "number": FieldType.DOUBLE,
    "boolean": FieldType.BOOLEAN,
    "bool": FieldType.BOOLEAN,
    "string": FieldType.STRING,
    "str": FieldType.STRING,
    "text": FieldType.STRING,
}


def resolve_field_type(declared: str) -> Optional[FieldType]:
    """
    Map a declared type name onto a FieldType.

    Returns None for types without a converter (e.g. "object", "array");
    values of such fields are stored as-is.
    """
    return _TYPE_ALIASES.get(declared.strip().lower())


class FieldSpec(BaseModel):
    """
    One declared field of the target collection.

    Attributes:
        name: Normalized field name (same form as RawRecord keys)
        type: Declared type, lowercased (aliases are kept verbatim)
        required: Whether the field is required by the validator
        unique: Whether values must be unique
        indexed: Whether a single-field index is wanted
        description: Free-form description from the collaborator
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Normalized field name")
    type: str = Field("string", description="Declared type name")
    required: bool = Field(False, description="Field is required")
    unique: bool = Field(False, description="Field values are unique")
    indexed: bool = Field(False, alias="index", description="Field is indexed")
    description: str = Field("", description="Field description")

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return normalize_header(v)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> str:
        if v is None:
            return FieldType.STRING.value
        if isinstance(v, FieldType):
            return v.value
        return str(v).strip().lower() or FieldType.STRING.value

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> str:
        return "" if v is None else str(v)


class IndexSpec(BaseModel):
    """
    Secondary index declaration.

    ``kind`` is the collaborator's index type: ascending (default),
    descending, unique, text, hashed or 2dsphere. Unknown kinds fall back to
    an ascending index.
    """

    model_config = ConfigDict(populate_by_name=True)

    fields: list[str] = Field(..., min_length=1, description="Indexed field names")
    kind: str = Field("ascending", alias="type", description="Index kind")

    @field_validator("fields", mode="before")
    @classmethod
    def normalize_fields(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, dict):
            # {"field": 1} key-pattern form
            v = list(v.keys())
        return [normalize_header(str(name)) for name in v]

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> str:
        if v is None:
            return "ascending"
        return str(v).strip().lower() or "ascending"


class SchemaDescriptor(BaseModel):
    """
    Target collection shape.

    Field names are normalized on construction, so a descriptor built from
    original header text ("Order ID") and one built from normalized names
    ("order_id") are identical. Fields are kept as an ordered list.

    Accepts both the snake_case collaborator payload::

        {"collection_name": ..., "schema": {name: {...}}, "indexes": [...],
         "validation_rules": {...}}

    and the camelCase request payload (``collectionName``, ``fields``,
    ``validationRules``).
    """

    model_config = ConfigDict(populate_by_name=True)

    collection_name: str = Field(..., min_length=1, description="Target collection")
    fields: list[FieldSpec] = Field(default_factory=list, description="Declared fields")
    indexes: list[IndexSpec] = Field(default_factory=list, description="Secondary indexes")
    validation_rules: dict[str, Any] = Field(
        default_factory=dict, description="MongoDB validator document"
    )

    @model_validator(mode="before")
    @classmethod
    def accept_collaborator_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "collectionName" in data and "collection_name" not in data:
            data["collection_name"] = data.pop("collectionName")
        if "schema" in data and "fields" not in data:
            data["fields"] = data.pop("schema")
        if "validationRules" in data and "validation_rules" not in data:
            data["validation_rules"] = data.pop("validationRules")
        if data.get("validation_rules") is None:
            data["validation_rules"] = {}
        if data.get("indexes") is None:
            data["indexes"] = []
        return data

    @field_validator("collection_name")
    @classmethod
    def validate_collection_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("collection_name cannot be empty")
        if "$" in v or "\x00" in v:
            raise ValueError(f"Invalid collection name '{v}'")
        if v.startswith("system."):
            raise ValueError(f"Collection name '{v}' is reserved")
        return v

    @field_validator("fields", mode="before")
    @classmethod
    def fields_from_mapping(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, dict):
            fields = []
            for name, spec in v.items():
                if isinstance(spec, str):
                    spec = {"type": spec}
                fields.append({**(spec or {}), "name": name})
            return fields
        return v

    @field_validator("fields")
    @classmethod
    def drop_duplicate_fields(cls, v: list[FieldSpec]) -> list[FieldSpec]:
        # Two declared names may normalize to the same key; the last one wins
        by_name: dict[str, FieldSpec] = {}
        for spec in v:
            by_name.pop(spec.name, None)
            by_name[spec.name] = spec
        return list(by_name.values())

    @field_validator("validation_rules")
    @classmethod
    def normalize_validation_rules(cls, v: dict[str, Any]) -> dict[str, Any]:
        json_schema = v.get("$jsonSchema")
        if not isinstance(json_schema, dict):
            return v
        json_schema = dict(json_schema)
        if isinstance(json_schema.get("required"), list):
            json_schema["required"] = list(
                dict.fromkeys(normalize_header(str(n)) for n in json_schema["required"])
            )
        if isinstance(json_schema.get("properties"), dict):
            json_schema["properties"] = {
                normalize_header(str(name)): rule
                for name, rule in json_schema["properties"].items()
            }
        return {**v, "$jsonSchema": json_schema}

    def field_names(self) -> list[str]:
        """Declared field names in declaration order."""
        return [spec.name for spec in self.fields]

    def get_field(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def with_collection_name(self, collection_name: str) -> "SchemaDescriptor":
        """Return a copy targeting another collection."""
        return SchemaDescriptor.model_validate(
            {**self.model_dump(), "collection_name": collection_name}
        )
