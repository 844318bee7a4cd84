"""
XML text helpers shared by the generator and the catalog templates.

Named values are written as ``${{name}}``. Strings beginning with ``@(`` are
live policy expressions and are written without escaping; the parser
re-escapes expression bodies before handing a document to ElementTree.
"""

import re
from collections.abc import Callable
from typing import Any

from apim_policy.domain.models import NamedValueReference

NAMED_VALUE_PREFIX = "${{"
NAMED_VALUE_SUFFIX = "}}"
EXPRESSION_PREFIX = "@("

NAMED_VALUE_PATTERN = re.compile(r"^\$\{\{(?P<name>.*)\}\}$", re.DOTALL)

_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)

_ATTRIBUTE_WHITESPACE = (
    ("\t", "&#9;"),
    ("\n", "&#10;"),
    ("\r", "&#13;"),
)


def escape_xml(value: Any) -> str:
    """Escape the five XML special characters. Non-strings are str()-ed first."""
    text = value if isinstance(value, str) else str(value)
    for raw, entity in _ESCAPES:
        text = text.replace(raw, entity)
    return text


def unescape_xml(value: str) -> str:
    """Inverse of escape_xml for text that escape_xml produced."""
    for raw, entity in reversed(_ESCAPES):
        value = value.replace(entity, raw)
    return value


def escape_attribute(value: Any) -> str:
    """
    escape_xml for attribute values.

    Tab, line feed and carriage return are also written as character
    references; XML attribute normalisation turns the raw characters into
    spaces when the document is read back.
    """
    text = escape_xml(value)
    for raw, reference in _ATTRIBUTE_WHITESPACE:
        text = text.replace(raw, reference)
    return text


def named_value_token(name: str) -> str:
    return f"{NAMED_VALUE_PREFIX}{name}{NAMED_VALUE_SUFFIX}"


def parse_named_value_token(value: str) -> NamedValueReference | None:
    """Return the reference for a ``${{name}}`` token, or None for other text."""
    match = NAMED_VALUE_PATTERN.match(value)
    if not match:
        return None
    return NamedValueReference(name=match.group("name"))


def format_scalar(value: Any) -> str:
    """Text form of a configuration scalar (booleans as true/false)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_attribute_value(value: Any) -> str:
    """
    Render a value for use inside an attribute.

    Named values become ``${{name}}``, ``@(...)`` expressions pass through
    untouched, everything else goes through escape_attribute.
    """
    return _format_value(value, escape_attribute)


def format_text_value(value: Any) -> str:
    """Like format_attribute_value, for element text (line breaks kept raw)."""
    return _format_value(value, escape_xml)


def _format_value(value: Any, escape: Callable[[Any], str]) -> str:
    if isinstance(value, NamedValueReference):
        return named_value_token(value.name)
    if isinstance(value, str) and value.startswith(EXPRESSION_PREFIX):
        return value
    return escape(format_scalar(value))
