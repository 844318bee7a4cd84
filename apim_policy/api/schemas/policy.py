"""Pydantic schemas for the policy document endpoints."""

from pydantic import Field

from apim_policy.domain.enums import PolicyScope
from apim_policy.domain.models import CamelModel


class PolicyXmlResponse(CamelModel):
    xml: str = Field(..., description="Generated <policies> document")


class PolicyParseRequest(CamelModel):
    """Policy XML to parse, with the scope it belongs to when the caller knows it."""

    xml: str = Field(
        ...,
        min_length=1,
        description="Policy document with a <policies> root",
        examples=[
            '<policies><inbound><base /><rate-limit calls="100" renewal-period="60" />'
            "</inbound></policies>"
        ],
    )
    scope: PolicyScope | None = Field(
        default=None, description="Scope for the parsed model (defaults to DEFAULT_PARSED_SCOPE)"
    )
    api_id: str | None = None
    operation_id: str | None = None
