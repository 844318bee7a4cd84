"""
XML Parser for gateway policy documents.

Parses existing ``<policies>`` XML into a PolicyModel.

The input may be hand-authored and may never have passed through the
generator, so parsing is heuristic rather than a strict inverse:
- ``include-fragment`` / ``include`` become fragment items
- ``send-request`` with its known nested children becomes a structured item
- leaf elements (attributes and/or text) become catalog items
- anything else is kept as custom XML (whitespace is normalised, not preserved)

The catalog is deliberately not consulted: unknown elements are data, not errors.
"""

import copy
import logging
import re
import time
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Any

from apim_policy.compiler.escaping import parse_named_value_token
from apim_policy.core.config import settings
from apim_policy.core.errors import ParseError
from apim_policy.core.observability import record_compiler_operation
from apim_policy.domain.enums import PolicyScope, PolicySectionName
from apim_policy.domain.models import (
    CatalogPolicyItem,
    CustomXmlPolicyItem,
    FragmentPolicyItem,
    PolicyItem,
    PolicyModel,
    PolicySection,
    PolicySections,
    StringOrNamedValue,
)

logger = logging.getLogger(__name__)

ROOT_TAG = "policies"
BASE_TAG = "base"
FRAGMENT_TAGS = frozenset({"include-fragment", "include"})
SEND_REQUEST_TAG = "send-request"

# Nested elements of send-request that map onto SendRequestConfiguration
_SEND_REQUEST_LEAF_CHILDREN = frozenset(
    {"set-url", "set-method", "set-body", "set-backend-service"}
)
_SEND_REQUEST_HEADERS = "set-headers"
_SEND_REQUEST_HEADER = "header"


class ElementKind(str, Enum):
    """How a section child element is represented in the model."""

    FRAGMENT = "fragment"
    SEND_REQUEST = "send-request"
    CATALOG = "catalog"
    CUSTOM_XML = "custom-xml"


# ============================================================================
# Classification
# ============================================================================


def classify_element(element: ET.Element) -> ElementKind:
    """
    Decide how a section child is modelled.

    This is the only place the "simple element vs. unmodeled structure"
    decision is made.

    Args:
        element: A direct child of a section element

    Returns:
        The ElementKind for the element
    """
    if element.tag in FRAGMENT_TAGS:
        return ElementKind.FRAGMENT

    children = list(element)

    if element.tag == SEND_REQUEST_TAG:
        if all(_is_send_request_child(child) for child in children):
            return ElementKind.SEND_REQUEST
        # Unknown nested policies (authentication, set-header, ...) would be lost
        return ElementKind.CUSTOM_XML

    if not children:
        return ElementKind.CATALOG

    return ElementKind.CUSTOM_XML


def _is_send_request_child(child: ET.Element) -> bool:
    if child.tag in _SEND_REQUEST_LEAF_CHILDREN:
        return len(child) == 0
    if child.tag == _SEND_REQUEST_HEADERS:
        return all(header.tag == _SEND_REQUEST_HEADER and len(header) == 0 for header in child)
    return False


# ============================================================================
# Expression protection
# ============================================================================

_SCAN_PATTERN = re.compile(r"<!\[CDATA\[|<!--|@[({]")
_ENTITY_PATTERN = re.compile(r"&(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#x[0-9A-Fa-f]+);")
_CLOSERS = {"(": ")", "{": "}"}
_SKIP_UNTIL = {"<![CDATA[": "]]>", "<!--": "-->"}


def protect_expressions(xml: str) -> str:
    """
    Escape markup characters inside ``@(...)`` and ``@{...}`` expressions.

    Gateway documents commonly carry raw quotes and generics such as
    ``GetValueOrDefault<string>("x")`` inside expressions, which a strict XML
    parser rejects. Balanced expression bodies (string literals skipped) have
    ``< > " '`` and bare ``&`` replaced by entities; the XML parser turns them
    back into the original characters. Unbalanced expressions, CDATA and
    comments are left untouched.
    """
    parts: list[str] = []
    pos = 0
    while True:
        match = _SCAN_PATTERN.search(xml, pos)
        if match is None:
            parts.append(xml[pos:])
            return "".join(parts)

        start = match.start()
        token = match.group()
        parts.append(xml[pos:start])

        if token in _SKIP_UNTIL:
            end = xml.find(_SKIP_UNTIL[token], match.end())
            end = len(xml) if end == -1 else end + len(_SKIP_UNTIL[token])
            parts.append(xml[start:end])
            pos = end
            continue

        end = _find_expression_end(xml, start + 1)
        if end is None:
            parts.append(token)
            pos = match.end()
            continue

        parts.append(_escape_expression(xml[start:end]))
        pos = end


def _find_expression_end(xml: str, open_pos: int) -> int | None:
    """
    Index just past the bracket closing the one at ``open_pos``.

    Returns None when the expression is unbalanced or runs into a closing tag.
    """
    opener = xml[open_pos]
    closer = _CLOSERS[opener]
    depth = 0
    pos = open_pos
    length = len(xml)

    while pos < length:
        char = xml[pos]
        if char in ('"', "'"):
            pos = _skip_string_literal(xml, pos)
            if pos is None:
                return None
            continue
        if char == "<" and xml.startswith("</", pos):
            return None
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return pos + 1
        pos += 1

    return None


def _skip_string_literal(xml: str, quote_pos: int) -> int | None:
    quote = xml[quote_pos]
    pos = quote_pos + 1
    while pos < len(xml):
        char = xml[pos]
        if char == "\\":
            pos += 2
            continue
        if char == quote:
            return pos + 1
        if char == "\n" and quote == "'":
            return None
        pos += 1
    return None


def _escape_expression(expression: str) -> str:
    escaped: list[str] = []
    pos = 0
    while pos < len(expression):
        char = expression[pos]
        if char == "&":
            entity = _ENTITY_PATTERN.match(expression, pos)
            if entity:
                escaped.append(entity.group())
                pos = entity.end()
                continue
            escaped.append("&amp;")
        elif char == "<":
            escaped.append("&lt;")
        elif char == ">":
            escaped.append("&gt;")
        elif char == '"':
            escaped.append("&quot;")
        elif char == "'":
            escaped.append("&apos;")
        else:
            escaped.append(char)
        pos += 1
    return "".join(escaped)


# ============================================================================
# Parsing
# ============================================================================


def from_xml(
    xml: str,
    scope: PolicyScope | str | None = None,
    api_id: str | None = None,
    operation_id: str | None = None,
) -> PolicyModel:
    """
    Parse policy XML into a PolicyModel.

    The XML carries no scope marker, so ``scope`` defaults to the configured
    DEFAULT_PARSED_SCOPE (``api``); callers that know the real scope pass it.

    Args:
        xml: The policy document
        scope: Scope to assign to the parsed model
        api_id: API id to assign to the parsed model
        operation_id: Operation id to assign to the parsed model

    Returns:
        The parsed PolicyModel

    Raises:
        ParseError: If the document is not well-formed XML or lacks a <policies> root

    Example:
        >>> model = from_xml(
        ...     '<policies><inbound><base/>'
        ...     '<rate-limit calls="100" renewal-period="60"/></inbound></policies>'
        ... )
        >>> model.sections.inbound.items[0].policy_id
        'rate-limit'
    """
    start_time = time.time()
    document_bytes = len(xml.encode("utf-8")) if isinstance(xml, str) else 0

    try:
        root = _parse_document(xml)
        sections = _parse_sections(root)
        model = PolicyModel(
            scope=scope or settings.default_parsed_scope,
            api_id=api_id,
            operation_id=operation_id,
            sections=sections,
        )
    except ParseError as e:
        duration = time.time() - start_time
        logger.warning("Failed to parse policy XML: %s", e.message)
        record_compiler_operation("parse", "error", duration, document_bytes)
        raise

    duration = time.time() - start_time
    logger.debug(
        "Parsed policy XML: sections=%s, duration=%.4fs, size=%d bytes",
        [name.value for name, _ in model.sections.present()],
        duration,
        document_bytes,
    )
    record_compiler_operation("parse", "success", duration, document_bytes)
    return model


async def from_xml_async(
    xml: str,
    scope: PolicyScope | str | None = None,
    api_id: str | None = None,
    operation_id: str | None = None,
) -> PolicyModel:
    """Awaitable form of from_xml, for callers that parse alongside I/O."""
    return from_xml(xml, scope=scope, api_id=api_id, operation_id=operation_id)


def _parse_document(xml: str) -> ET.Element:
    if not isinstance(xml, str) or not xml.strip():
        raise ParseError("Policy XML is empty")

    try:
        root = ET.fromstring(protect_expressions(xml))
    except ET.ParseError as e:
        line, column = e.position
        raise ParseError(
            f"Failed to parse XML: {e}", details={"line": line, "column": column}
        ) from e

    if root.tag != ROOT_TAG:
        raise ParseError(
            "Invalid policy XML: missing <policies> root element", details={"root": root.tag}
        )
    return root


def _parse_sections(root: ET.Element) -> PolicySections:
    sections: dict[str, PolicySection] = {}

    for child in root:
        try:
            name = PolicySectionName(child.tag)
        except ValueError:
            logger.debug("Ignoring unknown element <%s> under <policies>", child.tag)
            continue

        if name.field_name in sections:
            logger.warning("Duplicate <%s> section ignored", name.value)
            continue

        sections[name.field_name] = _parse_section(child)

    return PolicySections(**sections)


def _parse_section(element: ET.Element) -> PolicySection:
    items: list[PolicyItem] = []
    include_base = False
    order = 0
    preceding_whitespace = element.text

    for child in element:
        if child.tag == BASE_TAG:
            include_base = True
        else:
            items.append(parse_element(child, order, _line_indent(preceding_whitespace)))
            order += 1
        preceding_whitespace = child.tail

    return PolicySection(items=items, include_base=include_base)


def parse_element(element: ET.Element, order: int, indent: str = "") -> PolicyItem:
    """
    Build the policy item for one section child.

    Args:
        element: The section child
        order: Order to assign to the item
        indent: Indentation the element had in the source document; it is
                removed from re-serialised custom XML so regeneration is stable
    """
    kind = classify_element(element)

    if kind is ElementKind.FRAGMENT:
        fragment_id = element.get("fragment-id") or element.get("fragmentId") or ""
        return FragmentPolicyItem(fragment_id=fragment_id, order=order)

    if kind is ElementKind.SEND_REQUEST:
        return CatalogPolicyItem(
            policy_id=SEND_REQUEST_TAG,
            order=order,
            configuration=_parse_send_request(element),
        )

    if kind is ElementKind.CATALOG:
        return _parse_catalog_element(element, order)

    return CustomXmlPolicyItem(xml=serialize_element(element, indent), order=order)


def _parse_catalog_element(element: ET.Element, order: int) -> CatalogPolicyItem:
    configuration: dict[str, Any] = {}
    attributes: dict[str, StringOrNamedValue] = {}

    for key, value in element.attrib.items():
        reference = parse_named_value_token(value)
        if reference is not None:
            attributes[key] = reference
        else:
            configuration[key] = value
            attributes[key] = value

    text = (element.text or "").strip() or None

    return CatalogPolicyItem(
        policy_id=element.tag,
        order=order,
        configuration=configuration,
        attributes=attributes or None,
        text=text,
    )


def _parse_send_request(element: ET.Element) -> dict[str, Any]:
    """Rebuild a send-request configuration (camelCase keys) from its attributes and children."""
    config: dict[str, Any] = {}

    if element.get("mode"):
        config["mode"] = element.get("mode")
    if element.get("response-variable-name"):
        config["responseVariableName"] = element.get("response-variable-name")

    timeout = element.get("timeout")
    if timeout:
        try:
            config["timeout"] = int(timeout)
        except ValueError:
            logger.warning("Ignoring non-integer send-request timeout %r", timeout)

    ignore_error = element.get("ignore-error")
    if ignore_error is not None:
        config["ignoreErrors"] = ignore_error.strip().lower() == "true"

    for child in element:
        text = (child.text or "").strip()
        if child.tag == "set-url" and text:
            config["setUrl"] = _string_or_named_value(text)
        elif child.tag == "set-method" and text:
            config["method"] = text
        elif child.tag == _SEND_REQUEST_HEADERS:
            headers = {
                header.get("name"): _string_or_named_value(header.get("value"))
                for header in child
                if header.get("name") and header.get("value") is not None
            }
            if headers:
                config["headers"] = headers
        elif child.tag == "set-body" and text:
            config["body"] = _string_or_named_value(text)
        elif child.tag == "set-backend-service" and child.get("base-url"):
            config["url"] = _string_or_named_value(child.get("base-url"))

    # A url written both as <set-url> and as the backend base URL is a single url
    if "url" in config and config.get("setUrl") == config["url"]:
        del config["setUrl"]

    return config


def _string_or_named_value(value: str) -> StringOrNamedValue:
    return parse_named_value_token(value) or value


# ============================================================================
# Custom XML re-serialisation
# ============================================================================


def serialize_element(element: ET.Element, indent: str = "") -> str:
    """
    Serialise an element (without its tail) for a custom-xml item.

    ``indent`` is stripped from the start of every line after the first.
    """
    detached = copy.copy(element)
    detached.tail = None
    lines = ET.tostring(detached, encoding="unicode").split("\n")
    if indent:
        lines = [lines[0]] + [
            line[len(indent) :] if line.startswith(indent) else line for line in lines[1:]
        ]
    return "\n".join(lines)


def _line_indent(whitespace: str | None) -> str:
    """Indentation on the last line of the whitespace preceding an element."""
    if not whitespace or "\n" not in whitespace:
        return ""
    last_line = whitespace.rsplit("\n", 1)[1]
    return last_line if not last_line.strip() else ""
