"""
Pydantic schemas for API request/response validation.

Policy models themselves (PolicyModel, ValidationResult, WizardStep) are
served as-is from ``apim_policy.domain.models``.
"""

# Re-export schemas for convenient imports.
from .catalog import PolicyCatalogEntryResponse as PolicyCatalogEntryResponse
from .catalog import PolicyParameterResponse as PolicyParameterResponse
from .policy import PolicyParseRequest as PolicyParseRequest
from .policy import PolicyXmlResponse as PolicyXmlResponse
