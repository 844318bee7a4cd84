"""
Policy Catalog.

Static registry of every known gateway policy kind: where it may be placed
and which parameters it takes. It is the single source of truth for both
XML generation (templates) and validation (parameter schemas).

The catalog is built once at import time into id and category indexes and is
never mutated afterwards, so lookups are O(1) and safe to share.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from apim_policy.compiler.escaping import escape_attribute, format_scalar, format_text_value
from apim_policy.domain.enums import ParameterType, PolicyCategory, PolicySectionName

XmlTemplate = Callable[[Mapping[str, Any], str], str]

_ALL_SECTIONS = (
    PolicySectionName.INBOUND,
    PolicySectionName.OUTBOUND,
    PolicySectionName.BACKEND,
    PolicySectionName.ON_ERROR,
)
_INBOUND = (PolicySectionName.INBOUND,)


@dataclass(frozen=True)
class PolicyParameter:
    """Schema of one catalog parameter."""

    type: ParameterType
    required: bool = False
    default: Any = None
    description: str | None = None
    enum: tuple[str, ...] | None = None
    min: float | None = None
    max: float | None = None
    pattern: str | None = None


@dataclass(frozen=True)
class PolicyCatalogEntry:
    """
    One known policy kind.

    ``xml_template`` is set only for policies whose XML cannot be expressed
    as flat attributes; it receives the item configuration and the current
    indentation and returns the complete element (with trailing newline).
    """

    id: str
    name: str
    category: PolicyCategory
    supported_sections: tuple[PolicySectionName, ...]
    description: str | None = None
    parameters: Mapping[str, PolicyParameter] = field(default_factory=dict)
    xml_template: XmlTemplate | None = None

    def supports_section(self, section: PolicySectionName | str) -> bool:
        return PolicySectionName(section) in self.supported_sections

    @property
    def required_parameters(self) -> tuple[str, ...]:
        return tuple(name for name, param in self.parameters.items() if param.required)


def _param(type_: ParameterType, **kwargs: Any) -> PolicyParameter:
    if "enum" in kwargs and kwargs["enum"] is not None:
        kwargs["enum"] = tuple(kwargs["enum"])
    return PolicyParameter(type=type_, **kwargs)


_S = ParameterType.STRING
_N = ParameterType.NUMBER
_B = ParameterType.BOOLEAN
_A = ParameterType.ARRAY


# ============================================================================
# Templates
# ============================================================================


def _cors_template(config: Mapping[str, Any], indent: str) -> str:
    """<cors> with nested allowed-origins/methods/headers and expose-headers lists."""
    allow_credentials = config.get("allow-credentials")
    attrs = ""
    if allow_credentials is not None:
        attrs = f' allow-credentials="{format_scalar(bool(allow_credentials))}"'

    lines = [f"{indent}<cors{attrs}>"]
    for list_name, child in (
        ("allowed-origins", "origin"),
        ("allowed-methods", "method"),
        ("allowed-headers", "header"),
        ("expose-headers", "header"),
    ):
        values = config.get(list_name)
        if not values:
            continue
        if isinstance(values, str):
            values = [values]
        lines.append(f"{indent}  <{list_name}>")
        lines.extend(
            f"{indent}    <{child}>{format_text_value(value)}</{child}>" for value in values
        )
        lines.append(f"{indent}  </{list_name}>")
    lines.append(f"{indent}</cors>")
    return "\n".join(lines) + "\n"


def _set_body_template(config: Mapping[str, Any], indent: str) -> str:
    """<set-body> carries its value as element text."""
    attrs = ""
    template = config.get("template")
    if template:
        attrs = f' template="{escape_attribute(template)}"'
    value = config.get("value")
    if value is None or value == "":
        return f"{indent}<set-body{attrs} />\n"
    return f"{indent}<set-body{attrs}>{format_text_value(value)}</set-body>\n"


# ============================================================================
# Entries by category
# ============================================================================


def _access_control_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.ACCESS_CONTROL
    return [
        PolicyCatalogEntry(
            id="check-header",
            name="Check Header",
            category=category,
            description="Enforces that a request has a specified HTTP header",
            supported_sections=_INBOUND,
            parameters={
                "name": _param(_S, required=True, description="Header name"),
                "failed-check-httpcode": _param(
                    _N, default=401, description="HTTP status code to return on failure"
                ),
                "failed-check-error-message": _param(_S, description="Error message to return"),
                "ignore-case": _param(_B, default=True, description="Ignore case when comparing"),
            },
        ),
        PolicyCatalogEntry(
            id="validate-jwt",
            name="Validate JWT",
            category=category,
            description=(
                "Enforces existence and validity of a JWT extracted from either a specified "
                "HTTP header or a specified query parameter"
            ),
            supported_sections=_INBOUND,
            parameters={
                "header-name": _param(_S, description="HTTP header name containing the token"),
                "query-parameter-name": _param(
                    _S, description="Query parameter name containing the token"
                ),
                "require-expiration-time": _param(_B, default=True),
                "require-scheme": _param(_S, default="Bearer"),
                "require-signed-tokens": _param(_B, default=True),
            },
        ),
        PolicyCatalogEntry(
            id="ip-filter",
            name="IP Filter",
            category=category,
            description="Filters (allows/blocks) calls from specific IP addresses and/or ranges",
            supported_sections=_INBOUND,
            parameters={
                "action": _param(
                    _S, required=True, enum=["allow", "forbid"], description="Action to take"
                ),
                "address-range-variable-name": _param(
                    _S, description="Variable name containing IP ranges"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="quota-by-key",
            name="Quota By Key",
            category=category,
            description=(
                "Enforces a renewable or lifetime call volume and/or bandwidth quota per key"
            ),
            supported_sections=_INBOUND,
            parameters={
                "counter-key": _param(
                    _S, required=True, description="Expression to use as quota key"
                ),
                "calls": _param(_N, description="Maximum number of calls"),
                "bandwidth": _param(_N, description="Maximum bandwidth in kilobytes"),
                "renewal-period": _param(_N, description="Renewal period in seconds"),
            },
        ),
        PolicyCatalogEntry(
            id="rate-limit-by-key",
            name="Rate Limit By Key",
            category=category,
            description="Prevents API usage spikes by limiting the call rate per key",
            supported_sections=_INBOUND,
            parameters={
                "counter-key": _param(
                    _S, required=True, description="Expression to use as rate limit key"
                ),
                "calls": _param(_N, required=True, description="Maximum number of calls"),
                "renewal-period": _param(
                    _N, required=True, description="Renewal period in seconds"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="rate-limit",
            name="Rate Limit",
            category=category,
            description="Prevents API usage spikes by limiting the call rate per subscription",
            supported_sections=_INBOUND,
            parameters={
                "calls": _param(_N, required=True, description="Maximum number of calls"),
                "renewal-period": _param(
                    _N, required=True, description="Renewal period in seconds"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="quota",
            name="Quota",
            category=category,
            description=(
                "Enforces a renewable or lifetime call volume and/or bandwidth quota "
                "per subscription"
            ),
            supported_sections=_INBOUND,
            parameters={
                "calls": _param(_N, description="Maximum number of calls"),
                "bandwidth": _param(_N, description="Maximum bandwidth in kilobytes"),
                "renewal-period": _param(_N, description="Renewal period in seconds"),
            },
        ),
    ]


def _transformation_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.TRANSFORMATION
    exists_action = _param(
        _S, enum=["override", "skip", "append", "delete"], default="override"
    )
    return [
        PolicyCatalogEntry(
            id="set-header",
            name="Set Header",
            category=category,
            description="Assigns, adds or removes a request and/or response header",
            supported_sections=(
                PolicySectionName.INBOUND,
                PolicySectionName.OUTBOUND,
                PolicySectionName.BACKEND,
            ),
            parameters={
                "name": _param(_S, required=True, description="Header name"),
                "exists-action": exists_action,
            },
        ),
        PolicyCatalogEntry(
            id="set-query-parameter",
            name="Set Query Parameter",
            category=category,
            description="Adds, replaces value of, or deletes request query parameter",
            supported_sections=_INBOUND,
            parameters={
                "name": _param(_S, required=True, description="Query parameter name"),
                "exists-action": exists_action,
            },
        ),
        PolicyCatalogEntry(
            id="set-body",
            name="Set Body",
            category=category,
            description="Sets the body for the request and response",
            supported_sections=(
                PolicySectionName.INBOUND,
                PolicySectionName.OUTBOUND,
                PolicySectionName.BACKEND,
            ),
            parameters={
                "value": _param(_S, description="Body content or expression"),
                "template": _param(_S, enum=["liquid"], description="Body template engine"),
            },
            xml_template=_set_body_template,
        ),
        PolicyCatalogEntry(
            id="rewrite-uri",
            name="Rewrite URI",
            category=category,
            description="Converts a request URL from its public form to the backend form",
            supported_sections=_INBOUND,
            parameters={
                "template": _param(_S, description="URI template"),
                "copy-unmatched-params": _param(_B, default=True),
            },
        ),
        PolicyCatalogEntry(
            id="xml-to-json",
            name="XML to JSON",
            category=category,
            description="Converts request or response body from XML to JSON",
            supported_sections=(PolicySectionName.INBOUND, PolicySectionName.OUTBOUND),
            parameters={
                "apply": _param(_S, enum=["always", "content-type-xml"], default="always"),
            },
        ),
        PolicyCatalogEntry(
            id="json-to-xml",
            name="JSON to XML",
            category=category,
            description="Converts request or response body from JSON to XML",
            supported_sections=(PolicySectionName.INBOUND, PolicySectionName.OUTBOUND),
            parameters={
                "apply": _param(_S, enum=["always", "content-type-json"], default="always"),
            },
        ),
        PolicyCatalogEntry(
            id="find-and-replace",
            name="Find and Replace",
            category=category,
            description="Finds a request or response substring and replaces it",
            supported_sections=(PolicySectionName.INBOUND, PolicySectionName.OUTBOUND),
            parameters={
                "from": _param(_S, required=True, description="Text to find"),
                "to": _param(_S, required=True, description="Replacement text"),
            },
        ),
        PolicyCatalogEntry(
            id="set-status",
            name="Set Status",
            category=category,
            description="Sets HTTP status code to the specified value",
            supported_sections=(PolicySectionName.OUTBOUND, PolicySectionName.ON_ERROR),
            parameters={
                "code": _param(_N, required=True, description="HTTP status code"),
                "reason": _param(_S, description="Status reason phrase"),
            },
        ),
    ]


def _backend_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.BACKEND
    return [
        PolicyCatalogEntry(
            id="set-backend-service",
            name="Set Backend Service",
            category=category,
            description="Changes the backend service for an incoming request",
            supported_sections=_INBOUND,
            parameters={
                "base-url": _param(_S, description="Base URL of the backend service"),
                "service-url": _param(_S, description="Service URL"),
                "backend-id": _param(_S, description="Backend ID"),
            },
        ),
        PolicyCatalogEntry(
            # Generated from SendRequestConfiguration, not from these flat parameters
            id="send-request",
            name="Send Request",
            category=category,
            description="Sends the provided request to the specified URL",
            supported_sections=_ALL_SECTIONS,
            parameters={
                "mode": _param(
                    _S, enum=["new", "copy"], default="new", description="Request mode"
                ),
                "response-variable-name": _param(
                    _S, description="Variable name to store response"
                ),
                "timeout": _param(_N, description="Timeout in seconds"),
                "ignore-error": _param(_B, default=False, description="Ignore errors"),
            },
        ),
        PolicyCatalogEntry(
            id="set-variable",
            name="Set Variable",
            category=category,
            description="Saves a value in a named context variable for later access",
            supported_sections=_ALL_SECTIONS,
            parameters={
                "name": _param(_S, required=True, description="Variable name"),
                "value": _param(_S, description="Variable value"),
            },
        ),
        PolicyCatalogEntry(
            id="forward-request",
            name="Forward Request",
            category=category,
            description="Forwards the request to the backend service",
            supported_sections=(PolicySectionName.BACKEND,),
            parameters={
                "timeout": _param(_N, description="Timeout in seconds"),
            },
        ),
        PolicyCatalogEntry(
            id="wait",
            name="Wait",
            category=category,
            description=(
                "Waits for enclosed send-request, cache-lookup-value, or choose policies "
                "to complete before proceeding"
            ),
            supported_sections=(
                PolicySectionName.INBOUND,
                PolicySectionName.OUTBOUND,
                PolicySectionName.BACKEND,
            ),
        ),
    ]


def _observability_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.OBSERVABILITY
    return [
        PolicyCatalogEntry(
            id="log-to-eventhub",
            name="Log to Event Hub",
            category=category,
            description="Sends messages to an Event Hub defined by a Logger entity",
            supported_sections=_ALL_SECTIONS,
            parameters={
                "logger-id": _param(_S, required=True, description="Logger ID"),
                "partition-key": _param(_S, description="Partition key expression"),
            },
        ),
        PolicyCatalogEntry(
            id="log-to-application-insights",
            name="Log to Application Insights",
            category=category,
            description="Sends telemetry data to Azure Application Insights",
            supported_sections=_ALL_SECTIONS,
            parameters={
                "instrumentation-key": _param(_S, description="Instrumentation key"),
                "instrumentation-key-name": _param(
                    _S, description="Named value containing instrumentation key"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="trace",
            name="Trace",
            category=category,
            description="Adds custom traces into the Application Insights telemetry",
            supported_sections=_ALL_SECTIONS,
            parameters={
                "source": _param(_S, description="Trace source"),
                "severity": _param(
                    _S, enum=["verbose", "information", "error"], default="information"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="emit-metrics",
            name="Emit Metrics",
            category=category,
            description="Emits custom metrics to Application Insights",
            supported_sections=_ALL_SECTIONS,
            parameters={
                "name": _param(_S, required=True, description="Metric name"),
                "value": _param(_N, required=True, description="Metric value"),
            },
        ),
    ]


def _caching_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.CACHING
    return [
        PolicyCatalogEntry(
            id="cache-lookup",
            name="Cache Lookup",
            category=category,
            description="Returns a valid cached response when available",
            supported_sections=_INBOUND,
            parameters={
                "vary-by-developer": _param(_B, default=False),
                "vary-by-developer-groups": _param(_B, default=False),
                "downstream-caching-type": _param(
                    _S, enum=["none", "private", "public"], default="none"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="cache-store",
            name="Cache Store",
            category=category,
            description="Caches response according to the specified cache control configuration",
            supported_sections=(PolicySectionName.OUTBOUND,),
            parameters={
                "duration": _param(_N, required=True, description="Cache duration in seconds"),
                "vary-by-developer": _param(_B, default=False),
                "vary-by-developer-groups": _param(_B, default=False),
            },
        ),
        PolicyCatalogEntry(
            id="cache-remove-value",
            name="Cache Remove Value",
            category=category,
            description="Removes a cached item by key",
            supported_sections=(
                PolicySectionName.INBOUND,
                PolicySectionName.OUTBOUND,
                PolicySectionName.BACKEND,
            ),
            parameters={
                "key": _param(_S, required=True, description="Cache key"),
            },
        ),
        PolicyCatalogEntry(
            id="cache-lookup-value",
            name="Cache Lookup Value",
            category=category,
            description="Performs cache lookup and returns a cached value when available",
            supported_sections=(
                PolicySectionName.INBOUND,
                PolicySectionName.OUTBOUND,
                PolicySectionName.BACKEND,
            ),
            parameters={
                "key": _param(_S, required=True, description="Cache key"),
                "variable-name": _param(
                    _S, required=True, description="Variable name to store value"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="cache-store-value",
            name="Cache Store Value",
            category=category,
            description="Cache store by key",
            supported_sections=(
                PolicySectionName.INBOUND,
                PolicySectionName.OUTBOUND,
                PolicySectionName.BACKEND,
            ),
            parameters={
                "key": _param(_S, required=True, description="Cache key"),
                "value": _param(_S, required=True, description="Value to cache"),
                "duration": _param(_N, description="Cache duration in seconds"),
            },
        ),
    ]


def _security_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.SECURITY
    return [
        PolicyCatalogEntry(
            id="validate-jwt",
            name="Validate JWT",
            category=category,
            description="Enforces existence and validity of a JWT",
            supported_sections=_INBOUND,
            parameters={
                "header-name": _param(_S, description="HTTP header name"),
                "query-parameter-name": _param(_S, description="Query parameter name"),
                "require-expiration-time": _param(_B, default=True),
                "require-scheme": _param(_S, default="Bearer"),
                "require-signed-tokens": _param(_B, default=True),
            },
        ),
        PolicyCatalogEntry(
            id="validate-azure-ad-token",
            name="Validate Azure AD Token",
            category=category,
            description="Validates Azure AD bearer token",
            supported_sections=_INBOUND,
            parameters={
                "tenant-id": _param(_S, required=True, description="Azure AD tenant ID"),
                "audience": _param(_S, required=True, description="Expected audience"),
            },
        ),
        PolicyCatalogEntry(
            id="authenticate-basic",
            name="Authenticate Basic",
            category=category,
            description="Authenticate with a backend service using Basic authentication",
            supported_sections=_INBOUND,
            parameters={
                "username": _param(_S, required=True, description="Username"),
                "password": _param(_S, required=True, description="Password"),
            },
        ),
        PolicyCatalogEntry(
            id="authenticate-certificate",
            name="Authenticate Certificate",
            category=category,
            description="Authenticate with a backend service using a client certificate",
            supported_sections=_INBOUND,
            parameters={
                "thumbprint": _param(_S, description="Certificate thumbprint"),
                "certificate-id": _param(_S, description="Certificate ID"),
            },
        ),
        PolicyCatalogEntry(
            id="authenticate-managed-identity",
            name="Authenticate Managed Identity",
            category=category,
            description="Authenticate with a backend service using a managed identity",
            supported_sections=_INBOUND,
            parameters={
                "identity": _param(_S, description="Managed identity"),
                "ignore-error": _param(_B, default=False),
            },
        ),
        PolicyCatalogEntry(
            id="cross-domain",
            name="Cross Domain",
            category=category,
            description="Makes the API accessible from Flash and Silverlight browser clients",
            supported_sections=_INBOUND,
        ),
        PolicyCatalogEntry(
            id="cors",
            name="CORS",
            category=category,
            description="Adds cross-origin resource sharing (CORS) support",
            supported_sections=(PolicySectionName.INBOUND, PolicySectionName.OUTBOUND),
            parameters={
                "allowed-origins": _param(_A, description="Allowed origins"),
                "allowed-methods": _param(_A, description="Allowed HTTP methods"),
                "allowed-headers": _param(_A, description="Allowed headers"),
                "expose-headers": _param(_A, description="Exposed headers"),
                "allow-credentials": _param(_B, default=False),
            },
            xml_template=_cors_template,
        ),
    ]


def _ai_gateway_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.AI_GATEWAY
    return [
        PolicyCatalogEntry(
            id="ai-gateway-token-limit",
            name="AI Gateway Token Limit",
            category=category,
            description="Enforces token limits for AI Gateway requests",
            supported_sections=_INBOUND,
            parameters={
                "max-tokens": _param(_N, required=True, description="Maximum tokens allowed"),
                "token-count-variable": _param(
                    _S, description="Variable name to store token count"
                ),
            },
        ),
        PolicyCatalogEntry(
            id="ai-gateway-content-safety",
            name="AI Gateway Content Safety",
            category=category,
            description="Validates content safety for AI Gateway requests",
            supported_sections=_INBOUND,
            parameters={
                "safety-level": _param(
                    _S,
                    enum=["low", "medium", "high"],
                    default="medium",
                    description="Content safety level",
                ),
            },
        ),
        PolicyCatalogEntry(
            id="ai-gateway-semantic-cache",
            name="AI Gateway Semantic Cache",
            category=category,
            description="Enables semantic caching for AI Gateway requests",
            supported_sections=(PolicySectionName.INBOUND, PolicySectionName.BACKEND),
            parameters={
                "cache-key": _param(_S, description="Cache key for semantic matching"),
                "ttl": _param(_N, description="Time to live in seconds"),
            },
        ),
    ]


def _advanced_policies() -> list[PolicyCatalogEntry]:
    category = PolicyCategory.ADVANCED
    return [
        PolicyCatalogEntry(
            id="include-fragment",
            name="Include Fragment",
            category=category,
            description="Includes policy statements from a specified policy fragment",
            supported_sections=_ALL_SECTIONS,
            parameters={
                "fragment-id": _param(_S, required=True, description="Fragment ID"),
            },
        ),
        PolicyCatalogEntry(
            id="choose",
            name="Choose",
            category=category,
            description="Conditionally applies policy statements based on Boolean expressions",
            supported_sections=_ALL_SECTIONS,
        ),
        PolicyCatalogEntry(
            id="return-response",
            name="Return Response",
            category=category,
            description="Aborts pipeline execution and returns a response to the caller",
            supported_sections=_ALL_SECTIONS,
        ),
        PolicyCatalogEntry(
            id="mock-response",
            name="Mock Response",
            category=category,
            description="Aborts pipeline execution and returns a mocked response",
            supported_sections=_INBOUND,
            parameters={
                "status-code": _param(_N, required=True, description="HTTP status code"),
            },
        ),
    ]


# ============================================================================
# Registry
# ============================================================================


class PolicyCatalog:
    """
    Read-only index over catalog entries.

    When an id is listed under more than one category (validate-jwt), the
    first entry wins for id lookup; category listings keep every entry.
    """

    def __init__(self, entries: list[PolicyCatalogEntry]) -> None:
        self._entries: tuple[PolicyCatalogEntry, ...] = tuple(entries)

        by_id: dict[str, PolicyCatalogEntry] = {}
        by_category: dict[PolicyCategory, list[PolicyCatalogEntry]] = {
            category: [] for category in PolicyCategory
        }
        for entry in self._entries:
            by_id.setdefault(entry.id, entry)
            by_category[entry.category].append(entry)

        self._by_id = MappingProxyType(by_id)
        self._by_category = MappingProxyType(
            {category: tuple(items) for category, items in by_category.items()}
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, policy_id: object) -> bool:
        return policy_id in self._by_id

    def all(self) -> list[PolicyCatalogEntry]:
        return list(self._entries)

    def by_category(self, category: PolicyCategory | str) -> list[PolicyCatalogEntry]:
        return list(self._by_category[PolicyCategory(category)])

    def by_id(self, policy_id: str) -> PolicyCatalogEntry | None:
        return self._by_id.get(policy_id)

    def categories(self) -> list[PolicyCategory]:
        return [category for category, items in self._by_category.items() if items]

    def for_section(self, section: PolicySectionName | str) -> list[PolicyCatalogEntry]:
        section = PolicySectionName(section)
        return [entry for entry in self._entries if section in entry.supported_sections]

    def search(self, text: str) -> list[PolicyCatalogEntry]:
        """Case-insensitive substring match on id, name and description."""
        needle = text.strip().lower()
        if not needle:
            return self.all()
        return [
            entry
            for entry in self._entries
            if needle in entry.id.lower()
            or needle in entry.name.lower()
            or needle in (entry.description or "").lower()
        ]


catalog = PolicyCatalog(
    [
        *_access_control_policies(),
        *_transformation_policies(),
        *_backend_policies(),
        *_observability_policies(),
        *_caching_policies(),
        *_security_policies(),
        *_ai_gateway_policies(),
        *_advanced_policies(),
    ]
)


def get_all_policies() -> list[PolicyCatalogEntry]:
    """All catalog entries in category order."""
    return catalog.all()


def get_policies_by_category(category: PolicyCategory | str) -> list[PolicyCatalogEntry]:
    """Entries of one category. Raises ValueError for an unknown category."""
    return catalog.by_category(category)


def get_policy_by_id(policy_id: str) -> PolicyCatalogEntry | None:
    """Entry for a policy id, or None when the id is not in the catalog."""
    return catalog.by_id(policy_id)


def get_categories() -> list[PolicyCategory]:
    return catalog.categories()


def get_policies_for_section(section: PolicySectionName | str) -> list[PolicyCatalogEntry]:
    return catalog.for_section(section)


def search_policies(text: str) -> list[PolicyCatalogEntry]:
    return catalog.search(text)
