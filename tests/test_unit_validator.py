"""
Tests for policy model validation.

These tests verify:
- Scope id rules
- Catalog checks (unknown policy, unsupported section, required parameters, enums)
- send-request configuration checks
- Named value reference checks
- Fragment, custom XML and expression item checks
- Cross-section duplicate variable detection
- valid is true iff there are no errors
"""

import pytest

from apim_policy.compiler.validator import check_duplicate_variable_names, validate
from apim_policy.domain.enums import ValidationCode
from apim_policy.domain.models import PolicyModel


def _model(scope: str = "api", api_id: str | None = "orders-api", **sections) -> PolicyModel:
    data = {"scope": scope, "sections": sections}
    if api_id is not None:
        data["apiId"] = api_id
    return PolicyModel.model_validate(data)


def _inbound(*items: dict) -> PolicyModel:
    return _model(inbound={"items": list(items)})


def _codes(issues) -> list[str]:
    return [issue.code for issue in issues]


def _send_request(**configuration) -> dict:
    return {"type": "catalog", "policyId": "send-request", "configuration": configuration}


# =============================================================================
# Scope
# =============================================================================


class TestScopeRules:
    """Test apiId / operationId requirements."""

    @pytest.mark.anyio
    async def test_global_scope_needs_no_ids(self):
        result = validate(_model(scope="global", api_id=None, inbound={"items": []}))

        assert result.valid is True
        assert result.errors == []

    @pytest.mark.anyio
    async def test_api_scope_requires_api_id(self):
        result = validate(_model(api_id=None, inbound={"items": []}))

        assert result.valid is False
        assert _codes(result.errors) == [ValidationCode.REQUIRED_FIELD.value]
        assert result.errors[0].path == "apiId"

    @pytest.mark.anyio
    async def test_operation_scope_requires_both_ids(self):
        result = validate(_model(scope="operation", inbound={"items": []}))

        assert _codes(result.errors) == ["REQUIRED_FIELD"]
        assert result.errors[0].path == "operationId"

    @pytest.mark.anyio
    async def test_operation_scope_valid(self):
        model = PolicyModel.model_validate(
            {
                "scope": "operation",
                "apiId": "orders-api",
                "operationId": "get-order",
                "sections": {"inbound": {"items": []}},
            }
        )
        assert validate(model).valid is True

    @pytest.mark.anyio
    async def test_operation_id_outside_operation_scope(self):
        model = PolicyModel.model_validate(
            {"scope": "api", "apiId": "orders-api", "operationId": "get-order"}
        )
        result = validate(model)

        assert "UNEXPECTED_FIELD" in _codes(result.errors)

    @pytest.mark.anyio
    async def test_no_sections_warns(self):
        result = validate(_model())

        assert result.valid is True
        assert _codes(result.warnings) == ["EMPTY_SECTIONS"]


# =============================================================================
# Catalog items
# =============================================================================


class TestCatalogItems:
    """Test catalog lookups and parameter checks."""

    @pytest.mark.anyio
    async def test_valid_rate_limit(self, rate_limit_model):
        result = validate(rate_limit_model)

        assert result.valid is True
        assert result.errors == []
        assert result.warnings == []

    @pytest.mark.anyio
    async def test_unsupported_section_is_exactly_one_error(self):
        model = _model(
            outbound={
                "items": [
                    {
                        "type": "catalog",
                        "policyId": "rate-limit",
                        "configuration": {"calls": 10, "renewal-period": 60},
                    }
                ]
            }
        )
        result = validate(model)

        assert result.valid is False
        assert len(result.errors) == 1
        assert result.errors[0].code == "UNSUPPORTED_SECTION"
        assert result.errors[0].path == "sections.outbound.items[0].policyId"

    @pytest.mark.anyio
    async def test_unknown_policy(self):
        result = validate(_inbound({"type": "catalog", "policyId": "no-such-policy"}))

        assert _codes(result.errors) == ["UNKNOWN_POLICY"]

    @pytest.mark.anyio
    async def test_empty_policy_id(self):
        result = validate(_inbound({"type": "catalog", "policyId": "  "}))

        assert _codes(result.errors) == ["REQUIRED_FIELD"]
        assert result.errors[0].path.endswith(".policyId")

    @pytest.mark.anyio
    async def test_missing_required_parameter(self):
        result = validate(
            _inbound({"type": "catalog", "policyId": "rate-limit", "configuration": {"calls": 5}})
        )

        assert _codes(result.errors) == ["MISSING_PARAMETER"]
        assert result.errors[0].path == "sections.inbound.items[0].configuration.renewal-period"

    @pytest.mark.anyio
    async def test_missing_parameter_reported_in_unsupported_section_too(self):
        model = _model(
            outbound={"items": [{"type": "catalog", "policyId": "rate-limit"}]}
        )
        result = validate(model)

        assert _codes(result.errors) == [
            "UNSUPPORTED_SECTION",
            "MISSING_PARAMETER",
            "MISSING_PARAMETER",
        ]

    @pytest.mark.anyio
    async def test_required_parameter_from_attributes(self):
        result = validate(
            _inbound(
                {
                    "type": "catalog",
                    "policyId": "check-header",
                    "attributes": {"name": {"type": "named-value", "name": "header-name"}},
                }
            )
        )
        assert result.valid is True

    @pytest.mark.anyio
    async def test_empty_required_parameter_is_missing(self):
        result = validate(
            _inbound(
                {"type": "catalog", "policyId": "check-header", "configuration": {"name": ""}}
            )
        )
        assert _codes(result.errors) == ["MISSING_PARAMETER"]

    @pytest.mark.anyio
    async def test_enum_mismatch_is_warning(self):
        result = validate(
            _inbound(
                {"type": "catalog", "policyId": "ip-filter", "configuration": {"action": "deny"}}
            )
        )

        assert result.valid is True
        assert _codes(result.warnings) == ["INVALID_PARAMETER_VALUE"]

    @pytest.mark.anyio
    async def test_enum_expression_not_checked(self):
        result = validate(
            _inbound(
                {
                    "type": "catalog",
                    "policyId": "ip-filter",
                    "configuration": {"action": "@(context.Variables[\"action\"])"},
                }
            )
        )
        assert result.warnings == []


# =============================================================================
# send-request
# =============================================================================


class TestSendRequest:
    """Test send-request configuration checks."""

    @pytest.mark.anyio
    async def test_valid(self):
        result = validate(
            _inbound(
                _send_request(
                    url="https://auth.example.com/token",
                    method="POST",
                    timeout=20,
                    responseVariableName="tokenResponse",
                )
            )
        )

        assert result.valid is True
        assert result.warnings == []

    @pytest.mark.anyio
    async def test_url_required(self):
        result = validate(_inbound(_send_request(method="GET")))

        assert _codes(result.errors) == ["REQUIRED_FIELD"]
        assert result.errors[0].path == "sections.inbound.items[0].configuration.url"

    @pytest.mark.anyio
    async def test_set_url_satisfies_url(self):
        assert validate(_inbound(_send_request(setUrl="https://a.example"))).valid is True

    @pytest.mark.anyio
    async def test_named_value_url_accepted(self):
        result = validate(
            _inbound(_send_request(url={"type": "named-value", "name": "token-url"}))
        )

        assert result.valid is True
        assert result.warnings == []

    @pytest.mark.anyio
    async def test_expression_url_accepted(self):
        result = validate(_inbound(_send_request(url='@(context.Variables["target"])')))
        assert result.warnings == []

    @pytest.mark.anyio
    async def test_relative_url_warns(self):
        result = validate(_inbound(_send_request(url="/token")))

        assert result.valid is True
        assert _codes(result.warnings) == ["INVALID_URL"]

    @pytest.mark.anyio
    async def test_invalid_method(self):
        result = validate(_inbound(_send_request(url="https://a.example", method="FETCH")))
        assert _codes(result.errors) == ["INVALID_HTTP_METHOD"]

    @pytest.mark.anyio
    @pytest.mark.parametrize("timeout", [-1, "20", True, 1.5])
    async def test_invalid_timeout(self, timeout):
        result = validate(_inbound(_send_request(url="https://a.example", timeout=timeout)))
        assert _codes(result.errors) == ["INVALID_TIMEOUT"]

    @pytest.mark.anyio
    async def test_zero_timeout_allowed(self):
        assert validate(_inbound(_send_request(url="https://a.example", timeout=0))).valid

    @pytest.mark.anyio
    async def test_invalid_response_variable_name(self):
        result = validate(
            _inbound(_send_request(url="https://a.example", responseVariableName="1-bad"))
        )
        assert _codes(result.errors) == ["INVALID_VARIABLE_NAME"]

    @pytest.mark.anyio
    async def test_flat_catalog_parameters_not_applied(self):
        # send-request has no flat required parameters; url is the only requirement
        result = validate(_inbound(_send_request(url="https://a.example", mode="sideways")))
        assert result.warnings == []


# =============================================================================
# Named values
# =============================================================================


class TestNamedValues:
    """Test NamedValueReference checks."""

    @pytest.mark.anyio
    async def test_empty_name_is_error(self):
        result = validate(
            _inbound(
                {
                    "type": "catalog",
                    "policyId": "set-header",
                    "configuration": {
                        "name": "X-Key",
                        "value": {"type": "named-value", "name": ""},
                    },
                }
            )
        )

        assert _codes(result.errors) == ["REQUIRED_FIELD"]
        assert result.errors[0].path == "sections.inbound.items[0].configuration.value.name"

    @pytest.mark.anyio
    async def test_odd_characters_warn(self):
        result = validate(
            _inbound(
                {
                    "type": "catalog",
                    "policyId": "set-header",
                    "configuration": {"name": "X-Key"},
                    "attributes": {"value": {"type": "named-value", "name": "my key!"}},
                }
            )
        )

        assert result.valid is True
        assert _codes(result.warnings) == ["INVALID_NAMED_VALUE_NAME"]
        assert result.warnings[0].path == "sections.inbound.items[0].attributes.value.name"

    @pytest.mark.anyio
    async def test_nested_reference_in_send_request_headers(self):
        result = validate(
            _inbound(
                _send_request(
                    url="https://a.example",
                    headers={"Authorization": {"type": "named-value", "name": " "}},
                )
            )
        )

        assert _codes(result.errors) == ["REQUIRED_FIELD"]
        assert result.errors[0].path == (
            "sections.inbound.items[0].configuration.headers.Authorization.name"
        )


# =============================================================================
# Other item kinds
# =============================================================================


class TestOtherItems:
    """Test fragment, custom XML and expression items."""

    @pytest.mark.anyio
    async def test_fragment_requires_id(self):
        result = validate(_inbound({"type": "fragment", "fragmentId": ""}))
        assert _codes(result.errors) == ["REQUIRED_FIELD"]

    @pytest.mark.anyio
    async def test_fragment_valid(self):
        assert validate(_inbound({"type": "fragment", "fragmentId": "common-auth"})).valid

    @pytest.mark.anyio
    async def test_custom_xml_required(self):
        result = validate(_inbound({"type": "custom-xml", "xml": "  "}))
        assert _codes(result.errors) == ["REQUIRED_FIELD"]

    @pytest.mark.anyio
    async def test_custom_xml_must_be_markup(self):
        result = validate(_inbound({"type": "custom-xml", "xml": "just text"}))
        assert _codes(result.errors) == ["INVALID_XML"]

    @pytest.mark.anyio
    async def test_custom_xml_unbalanced_warns(self):
        result = validate(_inbound({"type": "custom-xml", "xml": "<choose><when>"}))

        assert result.valid is True
        assert _codes(result.warnings) == ["UNBALANCED_TAGS"]

    @pytest.mark.anyio
    async def test_custom_xml_sibling_elements(self):
        result = validate(_inbound({"type": "custom-xml", "xml": "<a /><b>@(1 < 2)</b>"}))

        assert result.errors == []
        assert result.warnings == []

    @pytest.mark.anyio
    async def test_expression_required(self):
        result = validate(_inbound({"type": "expression", "expression": ""}))
        assert _codes(result.errors) == ["REQUIRED_FIELD"]

    @pytest.mark.anyio
    async def test_attribute_expression_format_warning(self):
        result = validate(
            _inbound(
                {"type": "expression", "expression": "context.Request", "context": "attribute"}
            )
        )

        assert result.valid is True
        assert _codes(result.warnings) == ["EXPRESSION_FORMAT"]

    @pytest.mark.anyio
    async def test_unbalanced_parentheses(self):
        result = validate(
            _inbound(
                {"type": "expression", "expression": "@(context.Request", "context": "value"}
            )
        )
        assert _codes(result.errors) == ["INVALID_EXPRESSION"]


# =============================================================================
# Section-level and cross-section checks
# =============================================================================


class TestDuplicates:
    """Test duplicate order and variable name warnings."""

    @pytest.mark.anyio
    async def test_duplicate_explicit_order_warns_once(self):
        result = validate(
            _inbound(
                {"type": "fragment", "fragmentId": "a", "order": 1},
                {"type": "fragment", "fragmentId": "b", "order": 1},
                {"type": "fragment", "fragmentId": "c", "order": 1},
            )
        )

        assert _codes(result.warnings) == ["DUPLICATE_ORDER"]
        assert result.warnings[0].message == "Duplicate order values found: 1"

    @pytest.mark.anyio
    async def test_default_orders_not_counted(self):
        result = validate(
            _inbound(
                {"type": "fragment", "fragmentId": "a"},
                {"type": "fragment", "fragmentId": "b"},
            )
        )
        assert result.warnings == []

    @pytest.mark.anyio
    async def test_duplicate_set_variable_is_exactly_one_warning(self):
        set_variable = {
            "type": "catalog",
            "policyId": "set-variable",
            "configuration": {"name": "userId", "value": "1"},
        }
        model = _model(inbound={"items": [set_variable]}, outbound={"items": [set_variable]})

        duplicates = check_duplicate_variable_names(model)
        assert len(duplicates) == 1
        assert duplicates[0].code == "DUPLICATE_VARIABLE_NAME"
        assert duplicates[0].path == "sections.outbound.items[0].configuration.name"

        result = validate(model)
        assert result.valid is True
        assert _codes(result.warnings) == ["DUPLICATE_VARIABLE_NAME"]

    @pytest.mark.anyio
    async def test_response_variable_collides_with_set_variable(self):
        model = _model(
            inbound={
                "items": [
                    _send_request(url="https://a.example", responseVariableName="token"),
                    {
                        "type": "catalog",
                        "policyId": "set-variable",
                        "configuration": {"name": "token"},
                    },
                ]
            }
        )
        duplicates = check_duplicate_variable_names(model)

        assert [issue.message for issue in duplicates] == ["Duplicate variable name: token"]

    @pytest.mark.anyio
    async def test_distinct_names(self):
        model = _inbound(
            {"type": "catalog", "policyId": "set-variable", "configuration": {"name": "a"}},
            {"type": "catalog", "policyId": "set-variable", "configuration": {"name": "b"}},
        )
        assert check_duplicate_variable_names(model) == []


class TestPurity:
    """Validation never changes the model."""

    @pytest.mark.anyio
    async def test_model_unchanged(self):
        model = _inbound(
            {"type": "catalog", "policyId": "rate-limit", "order": 2},
            {"type": "custom-xml", "xml": "<a>"},
        )
        before = model.model_dump()

        validate(model)

        assert model.model_dump() == before
