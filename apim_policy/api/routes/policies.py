"""
FastAPI routes for policy documents.

This is the remote surface used by ``RemotePolicyCompiler``:
- POST /policies/xml: PolicyModel JSON to XML
- POST /policies/parse: XML to PolicyModel JSON
- POST /policies/validate: PolicyModel JSON to ValidationResult

Validation findings are returned with 200; only unusable input is an error.
"""

import logging

from fastapi import APIRouter, status

from apim_policy.api.schemas.policy import PolicyParseRequest, PolicyXmlResponse
from apim_policy.compiler.validator import validate
from apim_policy.compiler.xml_generator import to_xml
from apim_policy.compiler.xml_parser import from_xml
from apim_policy.domain.models import PolicyModel, ValidationResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/policies", tags=["Policies"])


@router.post(
    "/xml",
    response_model=PolicyXmlResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate policy XML",
)
def generate_xml(policy_model: PolicyModel) -> PolicyXmlResponse:
    xml = to_xml(policy_model)
    logger.info(
        "Generated policy XML",
        extra={"scope": policy_model.scope.value, "api_id": policy_model.api_id, "size": len(xml)},
    )
    return PolicyXmlResponse(xml=xml)


@router.post(
    "/parse",
    response_model=PolicyModel,
    response_model_exclude_none=True,
    summary="Parse policy XML",
    description="""
    Parse a `<policies>` document into a policy model.

    The XML carries no scope, so pass `scope`/`apiId`/`operationId` when known.
    Returns 400 when the document is not well-formed or has no `<policies>` root.
    """,
)
def parse_xml(request: PolicyParseRequest) -> PolicyModel:
    return from_xml(
        request.xml,
        scope=request.scope,
        api_id=request.api_id,
        operation_id=request.operation_id,
    )


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate a policy model",
)
def validate_policy(policy_model: PolicyModel) -> ValidationResult:
    result = validate(policy_model)
    logger.info(
        "Validated policy model",
        extra={
            "scope": policy_model.scope.value,
            "valid": result.valid,
            "errors": len(result.errors),
            "warnings": len(result.warnings),
        },
    )
    return result
