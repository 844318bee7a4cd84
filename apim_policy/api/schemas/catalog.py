"""
Pydantic schemas for the policy catalog endpoints.

Catalog entries are frozen dataclasses internally; these schemas are their
JSON shape (camelCase, templates reduced to a flag).
"""

from typing import Any

from pydantic import Field

from apim_policy.compiler.catalog import PolicyCatalogEntry, PolicyParameter
from apim_policy.domain.enums import ParameterType, PolicyCategory, PolicySectionName
from apim_policy.domain.models import CamelModel


class PolicyParameterResponse(CamelModel):
    type: ParameterType
    required: bool = False
    default: Any = None
    description: str | None = None
    enum: list[str] | None = None
    min: float | None = None
    max: float | None = None
    pattern: str | None = None

    @classmethod
    def from_parameter(cls, parameter: PolicyParameter) -> "PolicyParameterResponse":
        return cls(
            type=parameter.type,
            required=parameter.required,
            default=parameter.default,
            description=parameter.description,
            enum=list(parameter.enum) if parameter.enum is not None else None,
            min=parameter.min,
            max=parameter.max,
            pattern=parameter.pattern,
        )


class PolicyCatalogEntryResponse(CamelModel):
    """One catalog entry as returned by the API."""

    id: str = Field(..., examples=["rate-limit"])
    name: str = Field(..., examples=["Rate Limit"])
    category: PolicyCategory
    description: str | None = None
    supported_sections: list[PolicySectionName]
    parameters: dict[str, PolicyParameterResponse] = Field(default_factory=dict)
    has_template: bool = Field(
        default=False, description="Whether the policy renders through a custom XML template"
    )

    @classmethod
    def from_entry(cls, entry: PolicyCatalogEntry) -> "PolicyCatalogEntryResponse":
        return cls(
            id=entry.id,
            name=entry.name,
            category=entry.category,
            description=entry.description,
            supported_sections=list(entry.supported_sections),
            parameters={
                name: PolicyParameterResponse.from_parameter(parameter)
                for name, parameter in entry.parameters.items()
            },
            has_template=entry.xml_template is not None,
        )
