"""
Policy model records.

These pydantic models are the in-memory representation of a gateway policy
document and, through their camelCase aliases, the JSON interchange shape
shared with UIs and storage layers.

Python attributes are snake_case (``api_id``, ``include_base``); JSON uses
camelCase (``apiId``, ``includeBase``). Both spellings are accepted on input.
"""

from collections.abc import Iterator
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from apim_policy.domain.enums import (
    SECTION_ORDER,
    DetectionSource,
    PolicyScope,
    PolicySectionName,
)

NAMED_VALUE_TYPE = "named-value"


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to the JSON interchange shape (camelCase, no nulls)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ============================================================================
# Named values
# ============================================================================


class NamedValueReference(CamelModel):
    """Indirection to a gateway-managed secret or configuration value."""

    type: Literal["named-value"] = NAMED_VALUE_TYPE
    name: str
    key_vault: bool | None = None


StringOrNamedValue = Union[str, NamedValueReference]


def is_named_value_dict(value: Any) -> bool:
    """True for a JSON object shaped like a NamedValueReference."""
    return isinstance(value, dict) and value.get("type") == NAMED_VALUE_TYPE and "name" in value


def coerce_named_values(value: Any) -> Any:
    """Turn named-value shaped dicts (at any depth) into NamedValueReference."""
    if isinstance(value, NamedValueReference):
        return value
    if is_named_value_dict(value):
        return NamedValueReference.model_validate(value)
    if isinstance(value, dict):
        return {k: coerce_named_values(v) for k, v in value.items()}
    if isinstance(value, list):
        return [coerce_named_values(v) for v in value]
    return value


# ============================================================================
# Policy items (tagged union on ``type``)
# ============================================================================


class CatalogPolicyItem(CamelModel):
    """Built-in policy referenced by catalog id, with its parameters."""

    type: Literal["catalog"] = "catalog"
    policy_id: str
    order: int = 0
    configuration: dict[str, Any] = Field(default_factory=dict)
    attributes: dict[str, StringOrNamedValue] | None = None
    text: str | None = Field(
        default=None, description="Simple element text content, if any"
    )

    @field_validator("configuration", mode="before")
    @classmethod
    def parse_named_values(cls, v: Any) -> Any:
        """Accept named-value references given as plain JSON objects."""
        if v is None:
            return {}
        return coerce_named_values(v)


class FragmentPolicyItem(CamelModel):
    """Reference to an externally stored policy fragment."""

    type: Literal["fragment"] = "fragment"
    fragment_id: str
    order: int = 0


class CustomXmlPolicyItem(CamelModel):
    """Opaque, already-valid XML block."""

    type: Literal["custom-xml"] = "custom-xml"
    xml: str
    order: int = 0


class CustomExpressionItem(CamelModel):
    """
    Inline policy expression.

    ``context`` is normally one of ExpressionContext's values; any other
    value is kept as-is and rendered like a condition.
    """

    type: Literal["expression"] = "expression"
    expression: str
    context: str | None = None
    order: int = 0
    target_element: str | None = None
    target_attribute: str | None = None


PolicyItem = Annotated[
    Union[CatalogPolicyItem, FragmentPolicyItem, CustomXmlPolicyItem, CustomExpressionItem],
    Field(discriminator="type"),
]


# ============================================================================
# Sections and the root model
# ============================================================================


class PolicySection(CamelModel):
    """One pipeline phase: the base marker flag and its ordered items."""

    items: list[PolicyItem] = Field(default_factory=list)
    include_base: bool | None = None

    def sorted_items(self) -> list[PolicyItem]:
        """Items in ascending ``order``; ties keep insertion position."""
        return sorted(self.items, key=lambda item: item.order)


class PolicySections(CamelModel):
    """Up to four named section slots."""

    inbound: PolicySection | None = None
    backend: PolicySection | None = None
    outbound: PolicySection | None = None
    on_error: PolicySection | None = None

    def get(self, section: PolicySectionName | str) -> PolicySection | None:
        """Look up a section by its element name (``on-error``, not ``onError``)."""
        return getattr(self, PolicySectionName(section).field_name)

    def present(self) -> Iterator[tuple[PolicySectionName, PolicySection]]:
        """Yield present sections in document order."""
        for name in SECTION_ORDER:
            section = getattr(self, name.field_name)
            if section is not None:
                yield name, section


class PolicyMetadata(CamelModel):
    name: str | None = None
    description: str | None = None
    version: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tags: list[str] | None = None


class PolicyModel(CamelModel):
    """
    Root value of a policy document.

    ``api_id`` is expected for api/operation scope and ``operation_id`` only
    for operation scope; the validator reports violations rather than the
    model rejecting them, since parsed documents start without scope ids.
    """

    scope: PolicyScope
    api_id: str | None = None
    operation_id: str | None = None
    sections: PolicySections = Field(default_factory=PolicySections)
    metadata: PolicyMetadata | None = None


# ============================================================================
# send-request configuration
# ============================================================================


class SendRequestConfiguration(CamelModel):
    """
    Structured view of a send-request item's ``configuration``.

    ``set_url`` wins for <set-url>. Without it, ``url`` fills <set-url> and is
    also emitted as the <set-backend-service> base URL.
    """

    url: StringOrNamedValue | None = None
    method: str | None = None
    mode: str | None = None
    headers: dict[str, StringOrNamedValue] | None = None
    body: StringOrNamedValue | None = None
    timeout: int | None = None
    ignore_errors: bool | None = None
    response_variable_name: str | None = None
    set_url: StringOrNamedValue | None = None

    def to_configuration(self) -> dict[str, Any]:
        """Configuration map (camelCase keys) for a CatalogPolicyItem."""
        config: dict[str, Any] = {}
        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            if value is not None:
                config[field.alias or name] = value
        return config


# ============================================================================
# Validation results
# ============================================================================


class ValidationIssue(CamelModel):
    """A validation error or warning at a location in the model."""

    path: str
    message: str
    code: str


class ValidationResult(CamelModel):
    valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)


# ============================================================================
# Detection and collaborator records
# ============================================================================


class PolicyDetectionResult(CamelModel):
    """Merged outcome of looking a policy up in the cache and the live gateway."""

    exists: bool = False
    policy_xml: str | None = None
    policy_model: PolicyModel | None = None
    source: DetectionSource = DetectionSource.DATABASE
    cached_policy_xml: str | None = Field(
        default=None,
        description="Cached document when it differs from the live gateway document",
    )


class NamedValueInfo(CamelModel):
    name: str
    value: str | None = None
    secret: bool | None = None
    key_vault: bool | None = None
    key_vault_secret_id: str | None = None
    tags: list[str] | None = None


class PolicyFragmentInfo(CamelModel):
    id: str
    name: str | None = None
    description: str | None = None
    content: str | None = None
    format: Literal["xml", "rawxml"] | None = None


# ============================================================================
# Wizard
# ============================================================================


class WizardStep(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    order: int
    required: bool = False


class WizardInstanceState(CamelModel):
    """
    Snapshot of a wizard session.

    Frozen: transitions in ``apim_policy.compiler.wizard`` return new states.
    ``current_step`` is an index that may run past the last defined step,
    which callers read as "finished".
    """

    model_config = ConfigDict(frozen=True)

    current_step: int = 0
    policy_model: PolicyModel
    completed_steps: tuple[str, ...] = ()
    validation_result: ValidationResult | None = None
