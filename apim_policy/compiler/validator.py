"""
Policy Model Validation.

Checks a PolicyModel for structural and semantic correctness before it
reaches a live gateway:
- Scope ids match the scope (api/operation)
- Catalog policies exist and are placed in a section that supports them
- Required catalog parameters are present
- Fragment, custom XML and expression items are well-formed
- send-request configuration is usable (url, method, timeout, variable name)
- Named value references are well-formed
- Variable names are not assigned twice

Findings are returned as data and never raised. ``valid`` is true iff there
are no errors; warnings never affect it. The model is not modified.
"""

import logging
import re
import time
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from apim_policy.compiler.catalog import PolicyCatalogEntry, get_policy_by_id
from apim_policy.compiler.escaping import EXPRESSION_PREFIX, NAMED_VALUE_PREFIX
from apim_policy.compiler.xml_parser import protect_expressions
from apim_policy.core.observability import record_compiler_operation
from apim_policy.domain.enums import (
    SECTION_ORDER,
    ExpressionContext,
    HttpMethod,
    PolicyScope,
    PolicySectionName,
    ValidationCode,
)
from apim_policy.domain.models import (
    CatalogPolicyItem,
    CustomExpressionItem,
    CustomXmlPolicyItem,
    FragmentPolicyItem,
    NamedValueReference,
    PolicyItem,
    PolicyModel,
    PolicySection,
    ValidationIssue,
    ValidationResult,
)

logger = logging.getLogger(__name__)

VALID_HTTP_METHODS = frozenset(method.value for method in HttpMethod)
VARIABLE_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
NAMED_VALUE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

SET_VARIABLE_POLICY = "set-variable"
SEND_REQUEST_POLICY = "send-request"


@dataclass
class _Findings:
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    def error(self, path: str, message: str, code: ValidationCode) -> None:
        self.errors.append(ValidationIssue(path=path, message=message, code=code.value))

    def warning(self, path: str, message: str, code: ValidationCode) -> None:
        self.warnings.append(ValidationIssue(path=path, message=message, code=code.value))


def validate(policy_model: PolicyModel) -> ValidationResult:
    """
    Validate a policy model.

    Args:
        policy_model: The model to check

    Returns:
        ValidationResult with errors and warnings, each carrying a stable code

    Example:
        >>> model = PolicyModel(scope="api", api_id="orders", sections={
        ...     "outbound": {"items": [{"type": "catalog", "policyId": "rate-limit",
        ...                             "configuration": {"calls": 10, "renewal-period": 60}}]}
        ... })
        >>> [e.code for e in validate(model).errors]
        ['UNSUPPORTED_SECTION']
    """
    start_time = time.time()
    findings = _Findings()

    _validate_scope(policy_model, findings)

    present = list(policy_model.sections.present())
    if not present:
        findings.warning("sections", "No policy sections defined", ValidationCode.EMPTY_SECTIONS)

    for section_name, section in present:
        _validate_section(section_name, section, findings)

    findings.warnings.extend(check_duplicate_variable_names(policy_model))

    result = ValidationResult(
        valid=not findings.errors, errors=findings.errors, warnings=findings.warnings
    )

    duration = time.time() - start_time
    logger.debug(
        "Validated policy model: %d errors, %d warnings, duration=%.4fs",
        len(result.errors),
        len(result.warnings),
        duration,
    )
    record_compiler_operation("validate", "success", duration)

    return result


def _validate_scope(policy_model: PolicyModel, findings: _Findings) -> None:
    scope = policy_model.scope

    if scope == PolicyScope.API and not policy_model.api_id:
        findings.error(
            "apiId", 'API ID is required when scope is "api"', ValidationCode.REQUIRED_FIELD
        )

    if scope == PolicyScope.OPERATION and (
        not policy_model.api_id or not policy_model.operation_id
    ):
        findings.error(
            "operationId",
            'Both API ID and Operation ID are required when scope is "operation"',
            ValidationCode.REQUIRED_FIELD,
        )

    if scope != PolicyScope.OPERATION and policy_model.operation_id:
        findings.error(
            "operationId",
            f'Operation ID is only allowed when scope is "operation" (scope: {scope.value})',
            ValidationCode.UNEXPECTED_FIELD,
        )


def _validate_section(
    section_name: PolicySectionName, section: PolicySection, findings: _Findings
) -> None:
    base_path = f"sections.{section_name.value}.items"

    # Only explicitly given orders count; defaulted items legitimately share 0
    explicit_orders = [item.order for item in section.items if "order" in item.model_fields_set]
    duplicates = sorted({order for order in explicit_orders if explicit_orders.count(order) > 1})
    if duplicates:
        findings.warning(
            base_path,
            f"Duplicate order values found: {', '.join(map(str, duplicates))}",
            ValidationCode.DUPLICATE_ORDER,
        )

    for index, item in enumerate(section.items):
        _validate_item(f"{base_path}[{index}]", section_name, item, findings)


def _validate_item(
    path: str, section_name: PolicySectionName, item: PolicyItem, findings: _Findings
) -> None:
    if isinstance(item, CatalogPolicyItem):
        _validate_catalog_item(path, section_name, item, findings)
    elif isinstance(item, FragmentPolicyItem):
        if not item.fragment_id.strip():
            findings.error(
                f"{path}.fragmentId", "Fragment ID is required", ValidationCode.REQUIRED_FIELD
            )
    elif isinstance(item, CustomXmlPolicyItem):
        _validate_custom_xml(path, item, findings)
    elif isinstance(item, CustomExpressionItem):
        _validate_expression(path, item, findings)


# ============================================================================
# Catalog items
# ============================================================================


def _validate_catalog_item(
    path: str, section_name: PolicySectionName, item: CatalogPolicyItem, findings: _Findings
) -> None:
    if not item.policy_id.strip():
        findings.error(
            f"{path}.policyId",
            "Policy ID is required for catalog policy items",
            ValidationCode.REQUIRED_FIELD,
        )
        return

    for ref_path, reference in _named_value_references(item):
        _validate_named_value_reference(f"{path}.{ref_path}", reference, findings)

    entry = get_policy_by_id(item.policy_id)
    if entry is None:
        findings.error(
            f"{path}.policyId",
            f"Unknown policy: {item.policy_id}",
            ValidationCode.UNKNOWN_POLICY,
        )
        return

    if not entry.supports_section(section_name):
        supported = ", ".join(section.value for section in entry.supported_sections)
        findings.error(
            f"{path}.policyId",
            f"Policy '{item.policy_id}' is not supported in the {section_name.value} section "
            f"(supported: {supported})",
            ValidationCode.UNSUPPORTED_SECTION,
        )

    if item.policy_id == SEND_REQUEST_POLICY:
        _validate_send_request(f"{path}.configuration", item.configuration, findings)
    else:
        _validate_parameters(f"{path}.configuration", entry, item, findings)


def _validate_parameters(
    path: str, entry: PolicyCatalogEntry, item: CatalogPolicyItem, findings: _Findings
) -> None:
    attributes = item.attributes or {}

    for name in entry.required_parameters:
        value = item.configuration.get(name, attributes.get(name))
        if value is None or value == "":
            findings.error(
                f"{path}.{name}",
                f"Required parameter '{name}' is missing for policy '{entry.id}'",
                ValidationCode.MISSING_PARAMETER,
            )

    for name, value in item.configuration.items():
        param = entry.parameters.get(name)
        if param is None or param.enum is None or not isinstance(value, str):
            continue
        if _is_dynamic(value) or value in param.enum:
            continue
        findings.warning(
            f"{path}.{name}",
            f"Value '{value}' for '{name}' should be one of: {', '.join(param.enum)}",
            ValidationCode.INVALID_PARAMETER_VALUE,
        )


def _validate_send_request(
    path: str, config: dict[str, Any], findings: _Findings
) -> None:
    """Check the url, method, timeout and response variable of a send-request item."""
    url = config.get("setUrl") or config.get("url")
    url_path = f"{path}.setUrl" if config.get("setUrl") else f"{path}.url"

    if not url:
        findings.error(
            f"{path}.url", "URL is required for send-request policy", ValidationCode.REQUIRED_FIELD
        )
    elif isinstance(url, str) and not _is_dynamic(url) and not _looks_like_url(url):
        findings.warning(
            url_path,
            "URL does not appear to be a valid URL or expression",
            ValidationCode.INVALID_URL,
        )

    method = config.get("method")
    if method and method not in VALID_HTTP_METHODS:
        findings.error(
            f"{path}.method",
            f"Invalid HTTP method: {method}. "
            f"Must be one of: {', '.join(m.value for m in HttpMethod)}",
            ValidationCode.INVALID_HTTP_METHOD,
        )

    timeout = config.get("timeout")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, int) or timeout < 0
    ):
        findings.error(
            f"{path}.timeout",
            "Timeout must be a non-negative integer",
            ValidationCode.INVALID_TIMEOUT,
        )

    variable = config.get("responseVariableName")
    if variable and not (isinstance(variable, str) and VARIABLE_NAME_PATTERN.match(variable)):
        findings.error(
            f"{path}.responseVariableName",
            "Response variable name must be a valid identifier",
            ValidationCode.INVALID_VARIABLE_NAME,
        )


def _validate_named_value_reference(
    path: str, reference: NamedValueReference, findings: _Findings
) -> None:
    if not reference.name.strip():
        findings.error(
            f"{path}.name", "Named value name is required", ValidationCode.REQUIRED_FIELD
        )
        return

    if not NAMED_VALUE_NAME_PATTERN.match(reference.name):
        findings.warning(
            f"{path}.name",
            "Named value name should contain only alphanumeric characters, "
            "hyphens, and underscores",
            ValidationCode.INVALID_NAMED_VALUE_NAME,
        )


def _named_value_references(item: CatalogPolicyItem) -> Iterator[tuple[str, NamedValueReference]]:
    """Every NamedValueReference in an item's configuration and attributes, with its path."""
    yield from _walk_references("configuration", item.configuration)
    # Parsed items carry literal values in both maps; only attribute-only references are new
    for key, value in (item.attributes or {}).items():
        if isinstance(value, NamedValueReference) and item.configuration.get(key) != value:
            yield f"attributes.{key}", value


def _walk_references(path: str, value: Any) -> Iterator[tuple[str, NamedValueReference]]:
    if isinstance(value, NamedValueReference):
        yield path, value
    elif isinstance(value, dict):
        for key, child in value.items():
            yield from _walk_references(f"{path}.{key}", child)
    elif isinstance(value, list):
        for index, child in enumerate(value):
            yield from _walk_references(f"{path}[{index}]", child)


# ============================================================================
# Other item kinds
# ============================================================================


def _validate_custom_xml(path: str, item: CustomXmlPolicyItem, findings: _Findings) -> None:
    xml = item.xml.strip()
    if not xml:
        findings.error(
            f"{path}.xml",
            "XML content is required for custom XML policy items",
            ValidationCode.REQUIRED_FIELD,
        )
        return

    if not xml.startswith("<") or ">" not in xml:
        findings.error(f"{path}.xml", "Invalid XML format", ValidationCode.INVALID_XML)
        return

    # Content may hold several sibling elements, so check it under a wrapper
    try:
        ET.fromstring(f"<custom-xml>{protect_expressions(xml)}</custom-xml>")
    except ET.ParseError:
        findings.warning(
            f"{path}.xml", "XML may have unbalanced tags", ValidationCode.UNBALANCED_TAGS
        )


def _validate_expression(path: str, item: CustomExpressionItem, findings: _Findings) -> None:
    expression = item.expression.strip()
    if not expression:
        findings.error(
            f"{path}.expression",
            "Expression is required for custom expression items",
            ValidationCode.REQUIRED_FIELD,
        )
        return

    if item.context == ExpressionContext.ATTRIBUTE.value and not expression.startswith(
        EXPRESSION_PREFIX
    ):
        findings.warning(
            f"{path}.expression",
            "Attribute expressions should typically start with @(",
            ValidationCode.EXPRESSION_FORMAT,
        )

    if expression.count("(") != expression.count(")"):
        findings.error(
            f"{path}.expression",
            "Unbalanced parentheses in expression",
            ValidationCode.INVALID_EXPRESSION,
        )


# ============================================================================
# Cross-section checks
# ============================================================================


def check_duplicate_variable_names(policy_model: PolicyModel) -> list[ValidationIssue]:
    """
    Warn when a context variable is assigned more than once.

    Scans set-variable ``name`` and send-request ``responseVariableName``
    across all sections in document order; the first assignment is not
    reported, each later one is.
    """
    warnings: list[ValidationIssue] = []
    seen: set[str] = set()

    for section_name in SECTION_ORDER:
        section = policy_model.sections.get(section_name)
        if section is None:
            continue

        for index, item in enumerate(section.items):
            if not isinstance(item, CatalogPolicyItem):
                continue

            if item.policy_id == SET_VARIABLE_POLICY:
                key, label = "name", "variable name"
            elif item.policy_id == SEND_REQUEST_POLICY:
                key, label = "responseVariableName", "response variable name"
            else:
                continue

            name = item.configuration.get(key)
            if not isinstance(name, str) or not name:
                continue

            if name in seen:
                warnings.append(
                    ValidationIssue(
                        path=f"sections.{section_name.value}.items[{index}].configuration.{key}",
                        message=f"Duplicate {label}: {name}",
                        code=ValidationCode.DUPLICATE_VARIABLE_NAME.value,
                    )
                )
            else:
                seen.add(name)

    return warnings


def _is_dynamic(value: str) -> bool:
    """Expressions and named-value tokens are resolved by the gateway, not checked here."""
    return value.startswith(EXPRESSION_PREFIX) or value.startswith(NAMED_VALUE_PREFIX)


def _looks_like_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)
