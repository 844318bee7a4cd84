"""
XML Generator for gateway policy documents.

Converts a PolicyModel into the vendor's ``<policies>`` XML document.

Generation is deterministic and total over a well-typed model:
- Sections are always emitted in document order (inbound, backend, outbound, on-error)
- Absent sections become placeholders, so the output is always a complete document
- Items inside a section are emitted by ascending ``order`` (stable for ties)
- Unknown catalog ids are not an error; they fall back to the generic renderer

The output is the contract with deployment tooling, so the same model must
always produce byte-identical XML.
"""

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from apim_policy.compiler.catalog import get_policy_by_id
from apim_policy.compiler.escaping import (
    escape_attribute,
    escape_xml,
    format_attribute_value,
    format_text_value,
    unescape_xml,
)
from apim_policy.core.observability import record_compiler_operation
from apim_policy.domain.enums import ExpressionContext, PolicySectionName
from apim_policy.domain.models import (
    CatalogPolicyItem,
    CustomExpressionItem,
    CustomXmlPolicyItem,
    FragmentPolicyItem,
    PolicyItem,
    PolicyModel,
    PolicySection,
    SendRequestConfiguration,
)

__all__ = ["escape_xml", "to_xml", "unescape_xml"]

logger = logging.getLogger(__name__)

SECTION_INDENT = "  "
ITEM_INDENT = "    "

# Placeholder emitted for each section the model does not define
_ABSENT_SECTIONS: dict[PolicySectionName, str] = {
    PolicySectionName.INBOUND: "  <inbound />\n",
    PolicySectionName.BACKEND: "  <backend>\n    <forward-request />\n  </backend>\n",
    PolicySectionName.OUTBOUND: "  <outbound />\n",
    PolicySectionName.ON_ERROR: "  <on-error />\n",
}


def to_xml(policy_model: PolicyModel) -> str:
    """
    Convert a PolicyModel to policy XML.

    Args:
        policy_model: The model to serialise

    Returns:
        The ``<policies>`` document, without a trailing newline

    Example:
        >>> model = PolicyModel(
        ...     scope="api",
        ...     api_id="orders",
        ...     sections={"inbound": {"items": [
        ...         {"type": "catalog", "policyId": "rate-limit",
        ...          "configuration": {"calls": 100, "renewal-period": 60}}
        ...     ]}},
        ... )
        >>> print(to_xml(model))
        <policies>
          <inbound>
            <base />
            <rate-limit calls="100" renewal-period="60" />
          </inbound>
          <backend>
            <forward-request />
          </backend>
          <outbound />
          <on-error />
        </policies>
    """
    start_time = time.time()

    parts = ["<policies>\n"]
    for name, placeholder in _ABSENT_SECTIONS.items():
        section = policy_model.sections.get(name)
        parts.append(placeholder if section is None else _generate_section(name, section))
    parts.append("</policies>")
    xml = "".join(parts)

    duration = time.time() - start_time
    document_bytes = len(xml.encode("utf-8"))
    logger.debug(
        "Generated policy XML: scope=%s, duration=%.4fs, size=%d bytes",
        policy_model.scope.value,
        duration,
        document_bytes,
    )
    record_compiler_operation("generate", "success", duration, document_bytes)

    return xml


def _generate_section(name: PolicySectionName, section: PolicySection) -> str:
    lines = [f"{SECTION_INDENT}<{name.value}>\n"]

    # <base /> is on unless explicitly switched off
    if section.include_base is not False:
        lines.append(f"{ITEM_INDENT}<base />\n")

    for item in section.sorted_items():
        lines.append(generate_item(item, ITEM_INDENT))

    lines.append(f"{SECTION_INDENT}</{name.value}>\n")
    return "".join(lines)


def generate_item(item: PolicyItem, indent: str = ITEM_INDENT) -> str:
    """Render one policy item, including its trailing newline."""
    if isinstance(item, CatalogPolicyItem):
        return _generate_catalog_item(item, indent)
    if isinstance(item, FragmentPolicyItem):
        fragment_id = escape_attribute(item.fragment_id)
        return f'{indent}<include-fragment fragment-id="{fragment_id}" />\n'
    if isinstance(item, CustomXmlPolicyItem):
        return _generate_custom_xml(item, indent)
    if isinstance(item, CustomExpressionItem):
        return _generate_expression(item, indent)
    raise TypeError(f"Unsupported policy item: {type(item).__name__}")


# ============================================================================
# Catalog items
# ============================================================================


def _generate_catalog_item(item: CatalogPolicyItem, indent: str) -> str:
    if item.policy_id == "send-request":
        return _generate_send_request(_send_request_config(item.configuration), indent)

    entry = get_policy_by_id(item.policy_id)
    if entry is not None and entry.xml_template is not None:
        configuration = dict(item.configuration)
        # Parsed elements keep their body in ``text``; templates read it as ``value``
        if item.text is not None:
            configuration.setdefault("value", item.text)
        return entry.xml_template(configuration, indent)

    return _generate_generic(item.policy_id, item.configuration, item.attributes, item.text, indent)


def _generate_generic(
    policy_id: str,
    configuration: Mapping[str, Any],
    attributes: Mapping[str, Any] | None,
    text: str | None,
    indent: str,
) -> str:
    """
    Render ``<policy-id a="..." />`` from configuration then explicit attributes.

    An attribute present in both maps is written once, with the explicit
    attribute's value, at the configuration's position.
    """
    rendered: dict[str, str] = {}
    for key, value in configuration.items():
        if value is None or value == "":
            continue
        rendered[key] = _format_configuration_value(value)
    for key, value in (attributes or {}).items():
        rendered[key] = format_attribute_value(value)

    attrs = "".join(f' {key}="{value}"' for key, value in rendered.items())
    if text:
        return f"{indent}<{policy_id}{attrs}>{format_text_value(text)}</{policy_id}>\n"
    return f"{indent}<{policy_id}{attrs} />\n"


def _format_configuration_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(_format_configuration_value(v) for v in value)
    if isinstance(value, dict):
        return escape_attribute(json.dumps(value, sort_keys=True, default=str))
    return format_attribute_value(value)


def _send_request_config(configuration: Mapping[str, Any]) -> SendRequestConfiguration:
    """
    Read a send-request configuration, dropping fields that do not fit the schema.

    The validator reports bad values; generation still has to produce a document.
    """
    try:
        return SendRequestConfiguration.model_validate(configuration)
    except PydanticValidationError as e:
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
        logger.warning("Ignoring invalid send-request fields: %s", sorted(map(str, invalid)))
        return SendRequestConfiguration.model_validate(
            {key: value for key, value in configuration.items() if key not in invalid}
        )


def _generate_send_request(config: SendRequestConfiguration, indent: str) -> str:
    attrs = []
    if config.mode:
        attrs.append(f' mode="{escape_attribute(config.mode)}"')
    if config.response_variable_name:
        variable_name = escape_attribute(config.response_variable_name)
        attrs.append(f' response-variable-name="{variable_name}"')
    if config.timeout is not None:
        attrs.append(f' timeout="{config.timeout}"')
    if config.ignore_errors:
        attrs.append(' ignore-error="true"')

    inner = f"{indent}  "
    lines = [f"{indent}<send-request{''.join(attrs)}>\n"]

    request_url = config.set_url or config.url
    if request_url:
        lines.append(f"{inner}<set-url>{format_text_value(request_url)}</set-url>\n")

    if config.method:
        lines.append(f"{inner}<set-method>{escape_xml(config.method)}</set-method>\n")

    if config.headers:
        lines.append(f"{inner}<set-headers>\n")
        for name, value in config.headers.items():
            lines.append(
                f'{inner}  <header name="{escape_attribute(name)}" '
                f'value="{format_attribute_value(value)}" />\n'
            )
        lines.append(f"{inner}</set-headers>\n")

    if config.body:
        lines.append(f"{inner}<set-body>{format_text_value(config.body)}</set-body>\n")

    # Without a separate set_url, url is also the backend base URL
    if config.url and not config.set_url:
        lines.append(
            f'{inner}<set-backend-service base-url="{format_attribute_value(config.url)}" />\n'
        )

    lines.append(f"{indent}</send-request>\n")
    return "".join(lines)


# ============================================================================
# Other item kinds
# ============================================================================


def _generate_custom_xml(item: CustomXmlPolicyItem, indent: str) -> str:
    return "\n".join(f"{indent}{line}" for line in item.xml.split("\n")) + "\n"


def _generate_expression(item: CustomExpressionItem, indent: str) -> str:
    """
    Render an inline expression by context.

    Contexts other than attribute/value (including None and unrecognised
    values) are rendered like ``condition``.
    """
    if item.context == ExpressionContext.ATTRIBUTE.value:
        if item.target_element and item.target_attribute:
            value = escape_attribute(item.expression)
            return f'{indent}<{item.target_element} {item.target_attribute}="{value}" />\n'
    elif item.context == ExpressionContext.VALUE.value:
        if item.target_element:
            text = escape_xml(item.expression)
            return f"{indent}<{item.target_element}>{text}</{item.target_element}>\n"
    elif item.context not in (None, ExpressionContext.CONDITION.value):
        logger.debug("Unrecognised expression context %r rendered as condition", item.context)

    return f"{indent}@({item.expression})\n"
