"""
Domain enums for the policy document compiler.

These enums give type-safe names to the closed vocabularies of the
gateway policy model and are used for validation and JSON interchange.
"""

from enum import Enum


class PolicyScope(str, Enum):
    """Level at which a policy document applies."""

    GLOBAL = "global"
    PRODUCT = "product"
    API = "api"
    OPERATION = "operation"


class PolicySectionName(str, Enum):
    """
    Pipeline phase names as they appear in the XML document.

    Note: the model field for ON_ERROR is ``on_error`` (JSON ``onError``)
    while the element name is ``on-error``.
    """

    INBOUND = "inbound"
    BACKEND = "backend"
    OUTBOUND = "outbound"
    ON_ERROR = "on-error"

    @property
    def field_name(self) -> str:
        """Attribute name of this section on ``PolicySections``."""
        return self.value.replace("-", "_")


# Fixed document order of the sections inside <policies>
SECTION_ORDER: tuple[PolicySectionName, ...] = (
    PolicySectionName.INBOUND,
    PolicySectionName.BACKEND,
    PolicySectionName.OUTBOUND,
    PolicySectionName.ON_ERROR,
)


class PolicyCategory(str, Enum):
    """Catalog grouping of policy kinds."""

    ACCESS_CONTROL = "access-control"
    TRANSFORMATION = "transformation"
    BACKEND = "backend"
    OBSERVABILITY = "observability"
    CACHING = "caching"
    SECURITY = "security"
    AI_GATEWAY = "ai-gateway"
    ADVANCED = "advanced"


class PolicyItemType(str, Enum):
    """Discriminator of the PolicyItem tagged union."""

    CATALOG = "catalog"
    FRAGMENT = "fragment"
    CUSTOM_XML = "custom-xml"
    EXPRESSION = "expression"


class ExpressionContext(str, Enum):
    """Where an inline expression item is rendered."""

    ATTRIBUTE = "attribute"
    VALUE = "value"
    CONDITION = "condition"


class HttpMethod(str, Enum):
    """HTTP methods accepted by send-request."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class SendRequestMode(str, Enum):
    """send-request ``mode`` attribute."""

    NEW = "new"
    COPY = "copy"


class ParameterType(str, Enum):
    """Type of a catalog parameter."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class DetectionSource(str, Enum):
    """Which store a detected policy document came from."""

    DATABASE = "database"
    APIM_API = "apim-api"
    BOTH = "both"


class ValidationCode(str, Enum):
    """
    Stable codes carried by validation errors and warnings.
    Callers match on these values, so they must never be renamed.
    """

    REQUIRED_FIELD = "REQUIRED_FIELD"
    UNEXPECTED_FIELD = "UNEXPECTED_FIELD"
    UNKNOWN_POLICY = "UNKNOWN_POLICY"
    UNSUPPORTED_SECTION = "UNSUPPORTED_SECTION"
    MISSING_PARAMETER = "MISSING_PARAMETER"
    INVALID_PARAMETER_VALUE = "INVALID_PARAMETER_VALUE"
    EMPTY_SECTIONS = "EMPTY_SECTIONS"
    DUPLICATE_ORDER = "DUPLICATE_ORDER"
    INVALID_XML = "INVALID_XML"
    UNBALANCED_TAGS = "UNBALANCED_TAGS"
    EXPRESSION_FORMAT = "EXPRESSION_FORMAT"
    INVALID_EXPRESSION = "INVALID_EXPRESSION"
    INVALID_URL = "INVALID_URL"
    INVALID_HTTP_METHOD = "INVALID_HTTP_METHOD"
    INVALID_TIMEOUT = "INVALID_TIMEOUT"
    INVALID_VARIABLE_NAME = "INVALID_VARIABLE_NAME"
    INVALID_NAMED_VALUE_NAME = "INVALID_NAMED_VALUE_NAME"
    DUPLICATE_VARIABLE_NAME = "DUPLICATE_VARIABLE_NAME"
