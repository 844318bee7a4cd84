"""
Tests for the policy XML generator.

These tests verify:
- Document skeleton (section order, placeholders, <base />)
- Deterministic output for the same model
- Catalog items (generic attributes, templates, named values, expressions)
- send-request nested body
- Fragment, custom XML and expression items
"""

import pytest

from apim_policy.compiler.escaping import escape_attribute
from apim_policy.compiler.xml_generator import escape_xml, generate_item, to_xml, unescape_xml
from apim_policy.domain.models import (
    CatalogPolicyItem,
    CustomExpressionItem,
    CustomXmlPolicyItem,
    FragmentPolicyItem,
    NamedValueReference,
    PolicyModel,
)
from tests.policy_samples import RATE_LIMIT_XML


def _model(**sections) -> PolicyModel:
    return PolicyModel.model_validate({"scope": "api", "apiId": "orders-api", "sections": sections})


def _catalog(policy_id: str, **kwargs) -> CatalogPolicyItem:
    return CatalogPolicyItem(policy_id=policy_id, **kwargs)


# =============================================================================
# Escaping
# =============================================================================


class TestEscaping:
    """Test the five-character XML escape."""

    @pytest.mark.anyio
    async def test_escape_all_special_characters(self):
        assert escape_xml("<a href=\"x\">'b' & c</a>") == (
            "&lt;a href=&quot;x&quot;&gt;&apos;b&apos; &amp; c&lt;/a&gt;"
        )

    @pytest.mark.anyio
    async def test_ampersand_escaped_first(self):
        assert escape_xml("&lt;") == "&amp;lt;"

    @pytest.mark.anyio
    async def test_non_string_values(self):
        assert escape_xml(100) == "100"

    @pytest.mark.anyio
    async def test_unescape_reverses_escape(self):
        text = "if (a < b && c > \"d\") { 'e' }"
        assert unescape_xml(escape_xml(text)) == text

    @pytest.mark.anyio
    async def test_escape_xml_leaves_whitespace(self):
        assert escape_xml("a\nb\tc") == "a\nb\tc"

    @pytest.mark.anyio
    async def test_attribute_whitespace_becomes_character_references(self):
        assert escape_attribute("a\nb\tc\r") == "a&#10;b&#9;c&#13;"
        assert escape_attribute("<\n>") == "&lt;&#10;&gt;"

    @pytest.mark.anyio
    async def test_multiline_attribute_value_is_kept(self):
        item = _catalog("set-variable", configuration={"name": "v", "value": "a\nb"})

        assert generate_item(item, "") == '<set-variable name="v" value="a&#10;b" />\n'

    @pytest.mark.anyio
    async def test_multiline_element_text_is_kept(self):
        item = _catalog("set-body", configuration={"value": "line one\nline two"})

        assert generate_item(item, "") == "<set-body>line one\nline two</set-body>\n"


# =============================================================================
# Document skeleton
# =============================================================================


class TestDocument:
    """Test section order, placeholders and the base marker."""

    @pytest.mark.anyio
    async def test_single_rate_limit_document(self, rate_limit_model):
        assert to_xml(rate_limit_model) == RATE_LIMIT_XML

    @pytest.mark.anyio
    async def test_empty_model_has_all_placeholders(self):
        assert to_xml(PolicyModel(scope="global")) == (
            "<policies>\n"
            "  <inbound />\n"
            "  <backend>\n"
            "    <forward-request />\n"
            "  </backend>\n"
            "  <outbound />\n"
            "  <on-error />\n"
            "</policies>"
        )

    @pytest.mark.anyio
    async def test_sections_in_document_order(self):
        model = _model(
            onError={"items": []},
            outbound={"items": []},
            backend={"items": []},
            inbound={"items": []},
        )
        xml = to_xml(model)

        names = ("inbound", "backend", "outbound", "on-error")
        positions = [xml.index(f"<{name}>") for name in names]
        assert positions == sorted(positions)

    @pytest.mark.anyio
    async def test_explicit_backend_replaces_placeholder(self):
        xml = to_xml(_model(backend={"items": []}))

        assert "  <backend>\n    <base />\n  </backend>\n" in xml
        assert "forward-request" not in xml

    @pytest.mark.anyio
    async def test_include_base_false_omits_base(self):
        xml = to_xml(_model(outbound={"includeBase": False, "items": []}))
        assert "  <outbound>\n  </outbound>\n" in xml

    @pytest.mark.anyio
    async def test_include_base_defaults_to_true(self):
        xml = to_xml(_model(outbound={"items": []}))
        assert "  <outbound>\n    <base />\n  </outbound>\n" in xml

    @pytest.mark.anyio
    async def test_items_sorted_by_order(self):
        model = _model(
            inbound={
                "items": [
                    {"type": "catalog", "policyId": "third", "order": 3},
                    {"type": "catalog", "policyId": "first", "order": 1},
                    {"type": "catalog", "policyId": "second", "order": 2},
                ]
            }
        )
        xml = to_xml(model)

        assert xml.index("<first") < xml.index("<second") < xml.index("<third")

    @pytest.mark.anyio
    async def test_equal_orders_keep_insertion_position(self):
        model = _model(
            inbound={
                "items": [
                    {"type": "catalog", "policyId": "alpha", "order": 1},
                    {"type": "catalog", "policyId": "beta", "order": 1},
                ]
            }
        )
        xml = to_xml(model)

        assert xml.index("<alpha") < xml.index("<beta")

    @pytest.mark.anyio
    async def test_deterministic(self, rate_limit_model):
        assert to_xml(rate_limit_model) == to_xml(rate_limit_model.model_copy(deep=True))

    @pytest.mark.anyio
    async def test_no_trailing_newline(self, rate_limit_model):
        assert to_xml(rate_limit_model).endswith("</policies>")


# =============================================================================
# Catalog items
# =============================================================================


class TestCatalogItems:
    """Test generic attribute rendering and templates."""

    @pytest.mark.anyio
    async def test_named_value_in_attributes(self):
        item = _catalog(
            "set-header",
            attributes={
                "name": "X-Api-Key",
                "value": NamedValueReference(name="backend-api-key"),
            },
        )
        xml = generate_item(item, "")

        assert 'value="${{backend-api-key}}"' in xml
        assert xml == '<set-header name="X-Api-Key" value="${{backend-api-key}}" />\n'

    @pytest.mark.anyio
    async def test_named_value_dict_in_configuration(self):
        model = _model(
            inbound={
                "items": [
                    {
                        "type": "catalog",
                        "policyId": "set-header",
                        "configuration": {
                            "name": "X-Api-Key",
                            "value": {"type": "named-value", "name": "backend-api-key"},
                        },
                    }
                ]
            }
        )
        assert 'value="${{backend-api-key}}"' in to_xml(model)

    @pytest.mark.anyio
    async def test_attribute_values_are_escaped(self):
        xml = generate_item(_catalog("check-header", configuration={"name": 'a"b<c'}), "")
        assert xml == '<check-header name="a&quot;b&lt;c" />\n'

    @pytest.mark.anyio
    async def test_expression_attribute_passes_through(self):
        item = _catalog(
            "rate-limit-by-key",
            configuration={
                "calls": 10,
                "renewal-period": 60,
                "counter-key": "@(context.Request.IpAddress)",
            },
        )
        xml = generate_item(item, "")
        assert 'counter-key="@(context.Request.IpAddress)"' in xml

    @pytest.mark.anyio
    async def test_booleans_render_lowercase(self):
        xml = generate_item(_catalog("check-header", configuration={"ignore-case": False}), "")
        assert 'ignore-case="false"' in xml

    @pytest.mark.anyio
    async def test_empty_and_none_values_skipped(self):
        configuration = {"name": "X", "failed-check-error-message": "", "x": None}
        xml = generate_item(_catalog("check-header", configuration=configuration), "")
        assert xml == '<check-header name="X" />\n'

    @pytest.mark.anyio
    async def test_list_values_joined(self):
        xml = generate_item(_catalog("custom", configuration={"ids": ["a", "b"]}), "")
        assert xml == '<custom ids="a,b" />\n'

    @pytest.mark.anyio
    async def test_attributes_override_configuration_in_place(self):
        item = _catalog(
            "set-header",
            configuration={"name": "X-Old", "exists-action": "override"},
            attributes={"name": "X-New"},
        )
        xml = generate_item(item, "")

        assert xml == '<set-header name="X-New" exists-action="override" />\n'

    @pytest.mark.anyio
    async def test_text_renders_as_element_body(self):
        xml = generate_item(_catalog("set-method", text="POST"), "")
        assert xml == "<set-method>POST</set-method>\n"

    @pytest.mark.anyio
    async def test_unknown_policy_uses_generic_renderer(self):
        xml = generate_item(_catalog("my-custom-policy", configuration={"level": 3}), "    ")
        assert xml == '    <my-custom-policy level="3" />\n'

    @pytest.mark.anyio
    async def test_cors_uses_template(self):
        item = _catalog("cors", configuration={"allowed-origins": ["*"]})
        xml = generate_item(item, "")

        assert xml.startswith("<cors>\n")
        assert "<origin>*</origin>" in xml

    @pytest.mark.anyio
    async def test_set_body_uses_text(self):
        xml = generate_item(_catalog("set-body", text="hello"), "")
        assert xml == "<set-body>hello</set-body>\n"


# =============================================================================
# send-request
# =============================================================================


class TestSendRequest:
    """Test the nested send-request body."""

    @pytest.mark.anyio
    async def test_full_send_request(self):
        item = _catalog(
            "send-request",
            configuration={
                "mode": "new",
                "responseVariableName": "tokenResponse",
                "timeout": 20,
                "ignoreErrors": True,
                "url": "https://auth.example.com/token",
                "method": "POST",
                "headers": {"Content-Type": "application/json"},
                "body": '{"grant_type":"client_credentials"}',
            },
        )
        xml = generate_item(item, "")

        assert xml == (
            '<send-request mode="new" response-variable-name="tokenResponse" '
            'timeout="20" ignore-error="true">\n'
            "  <set-url>https://auth.example.com/token</set-url>\n"
            "  <set-method>POST</set-method>\n"
            "  <set-headers>\n"
            '    <header name="Content-Type" value="application/json" />\n'
            "  </set-headers>\n"
            "  <set-body>{&quot;grant_type&quot;:&quot;client_credentials&quot;}</set-body>\n"
            '  <set-backend-service base-url="https://auth.example.com/token" />\n'
            "</send-request>\n"
        )

    @pytest.mark.anyio
    async def test_set_url_suppresses_backend_service(self):
        item = _catalog(
            "send-request",
            configuration={
                "url": "https://base.example.com",
                "setUrl": "https://other.example.com",
            },
        )
        xml = generate_item(item, "")

        assert "<set-url>https://other.example.com</set-url>" in xml
        assert "set-backend-service" not in xml

    @pytest.mark.anyio
    async def test_named_value_header(self):
        item = _catalog(
            "send-request",
            configuration={
                "url": "https://api.example.com",
                "headers": {"Authorization": {"type": "named-value", "name": "api-token"}},
            },
        )
        xml = generate_item(item, "")
        assert '<header name="Authorization" value="${{api-token}}" />' in xml

    @pytest.mark.anyio
    async def test_snake_case_keys_accepted(self):
        item = _catalog(
            "send-request",
            configuration={"url": "https://a.example", "response_variable_name": "resp"},
        )
        assert 'response-variable-name="resp"' in generate_item(item, "")

    @pytest.mark.anyio
    async def test_invalid_field_dropped(self):
        item = _catalog(
            "send-request",
            configuration={"url": "https://a.example", "timeout": "soon"},
        )
        xml = generate_item(item, "")

        assert "timeout" not in xml
        assert "<set-url>https://a.example</set-url>" in xml

    @pytest.mark.anyio
    async def test_empty_send_request(self):
        assert generate_item(_catalog("send-request"), "") == "<send-request>\n</send-request>\n"


# =============================================================================
# Other item kinds
# =============================================================================


class TestOtherItems:
    """Test fragments, custom XML and expressions."""

    @pytest.mark.anyio
    async def test_fragment(self):
        xml = generate_item(FragmentPolicyItem(fragment_id="common-auth"), "    ")
        assert xml == '    <include-fragment fragment-id="common-auth" />\n'

    @pytest.mark.anyio
    async def test_custom_xml_indented_per_line(self):
        item = CustomXmlPolicyItem(xml="<choose>\n  <otherwise />\n</choose>")
        xml = generate_item(item, "    ")

        assert xml == "    <choose>\n      <otherwise />\n    </choose>\n"

    @pytest.mark.anyio
    async def test_attribute_expression(self):
        item = CustomExpressionItem(
            expression='@(context.Variables["x"])',
            context="attribute",
            target_element="set-variable",
            target_attribute="value",
        )
        xml = generate_item(item, "")

        assert xml == '<set-variable value="@(context.Variables[&quot;x&quot;])" />\n'

    @pytest.mark.anyio
    async def test_value_expression(self):
        item = CustomExpressionItem(
            expression="@(1 < 2)", context="value", target_element="set-body"
        )
        assert generate_item(item, "") == "<set-body>@(1 &lt; 2)</set-body>\n"

    @pytest.mark.anyio
    async def test_condition_expression(self):
        item = CustomExpressionItem(
            expression='context.Request.Method == "GET"', context="condition"
        )
        assert generate_item(item, "") == '@(context.Request.Method == "GET")\n'

    @pytest.mark.anyio
    async def test_unrecognised_context_rendered_as_condition(self):
        item = CustomExpressionItem(expression="true", context="somewhere-else")
        assert generate_item(item, "  ") == "  @(true)\n"

    @pytest.mark.anyio
    async def test_attribute_expression_without_target_falls_back(self):
        item = CustomExpressionItem(expression="x", context="attribute")
        assert generate_item(item, "") == "@(x)\n"
