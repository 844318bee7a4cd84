"""
Tests for policy detection.

These tests verify:
- Source selection between the cache and the live gateway
- Divergent documents keep the cached copy
- Failing adapters are treated as empty
- Unparseable documents are returned without a model
- Both sources are read concurrently
"""

from unittest.mock import AsyncMock, patch

import anyio
import pytest

from apim_policy.compiler.detection import detect_policy
from apim_policy.core.errors import AdapterError
from apim_policy.domain.enums import DetectionSource, PolicyScope
from tests.policy_samples import MIXED_POLICY_XML, RATE_LIMIT_XML


class TestSourceSelection:
    """Which document is returned for each combination of sources."""

    @pytest.mark.anyio
    async def test_no_adapters(self):
        result = await detect_policy("api", "orders-api")

        assert result.exists is False
        assert result.policy_xml is None
        assert result.policy_model is None

    @pytest.mark.anyio
    async def test_nothing_stored(self, db_adapter, apim_adapter):
        result = await detect_policy(
            "api", "orders-api", apim_adapter=apim_adapter, db_adapter=db_adapter
        )
        assert result.exists is False

    @pytest.mark.anyio
    async def test_database_only(self, db_adapter, apim_adapter):
        await db_adapter.save_policy(PolicyScope.API, "orders-api", None, RATE_LIMIT_XML)

        result = await detect_policy(
            "api", "orders-api", apim_adapter=apim_adapter, db_adapter=db_adapter
        )

        assert result.exists is True
        assert result.source == DetectionSource.DATABASE
        assert result.policy_xml == RATE_LIMIT_XML
        assert result.cached_policy_xml is None

    @pytest.mark.anyio
    async def test_gateway_only(self, db_adapter, apim_adapter):
        await apim_adapter.set_policy(PolicyScope.API, "orders-api", None, RATE_LIMIT_XML)

        result = await detect_policy(
            "api", "orders-api", apim_adapter=apim_adapter, db_adapter=db_adapter
        )

        assert result.source == DetectionSource.APIM_API
        assert result.policy_model.sections.inbound.items[0].policy_id == "rate-limit"

    @pytest.mark.anyio
    async def test_both_identical(self, db_adapter, apim_adapter):
        await db_adapter.save_policy(PolicyScope.API, "orders-api", None, RATE_LIMIT_XML)
        await apim_adapter.set_policy(PolicyScope.API, "orders-api", None, RATE_LIMIT_XML)

        result = await detect_policy(
            "api", "orders-api", apim_adapter=apim_adapter, db_adapter=db_adapter
        )

        assert result.source == DetectionSource.BOTH
        assert result.cached_policy_xml is None

    @pytest.mark.anyio
    async def test_both_different_prefers_gateway(self, db_adapter, apim_adapter):
        await db_adapter.save_policy(PolicyScope.API, "orders-api", None, RATE_LIMIT_XML)
        await apim_adapter.set_policy(PolicyScope.API, "orders-api", None, MIXED_POLICY_XML)

        result = await detect_policy(
            "api", "orders-api", apim_adapter=apim_adapter, db_adapter=db_adapter
        )

        assert result.source == DetectionSource.BOTH
        assert result.policy_xml == MIXED_POLICY_XML
        assert result.cached_policy_xml == RATE_LIMIT_XML

    @pytest.mark.anyio
    async def test_model_carries_scope_and_ids(self, apim_adapter):
        await apim_adapter.set_policy(
            PolicyScope.OPERATION, "orders-api", "get-order", RATE_LIMIT_XML
        )

        result = await detect_policy(
            PolicyScope.OPERATION, "orders-api", "get-order", apim_adapter=apim_adapter
        )

        assert result.policy_model.scope == PolicyScope.OPERATION
        assert result.policy_model.api_id == "orders-api"
        assert result.policy_model.operation_id == "get-order"

    @pytest.mark.anyio
    async def test_documents_keyed_by_scope(self, apim_adapter):
        await apim_adapter.set_policy(PolicyScope.GLOBAL, None, None, RATE_LIMIT_XML)

        result = await detect_policy("api", "orders-api", apim_adapter=apim_adapter)

        assert result.exists is False


class TestFailures:
    """Adapter failures and bad documents."""

    @pytest.mark.anyio
    async def test_failing_gateway_falls_back_to_cache(self, db_adapter):
        await db_adapter.save_policy(PolicyScope.API, "orders-api", None, RATE_LIMIT_XML)
        apim_adapter = AsyncMock()
        apim_adapter.get_policy.side_effect = AdapterError("gateway unreachable")

        result = await detect_policy(
            "api", "orders-api", apim_adapter=apim_adapter, db_adapter=db_adapter
        )

        assert result.exists is True
        assert result.source == DetectionSource.DATABASE
        apim_adapter.get_policy.assert_awaited_once_with(PolicyScope.API, "orders-api", None)

    @pytest.mark.anyio
    async def test_both_failing(self):
        failing = AsyncMock()
        failing.get_policy.side_effect = RuntimeError("boom")

        result = await detect_policy("global", apim_adapter=failing, db_adapter=failing)

        assert result.exists is False

    @pytest.mark.anyio
    async def test_failure_is_logged(self, db_adapter):
        apim_adapter = AsyncMock()
        apim_adapter.get_policy.side_effect = AdapterError("gateway unreachable")

        with patch("apim_policy.compiler.detection.logger") as mock_logger:
            await detect_policy("global", apim_adapter=apim_adapter, db_adapter=db_adapter)

        mock_logger.warning.assert_called_once()
        assert "apim-api" in mock_logger.warning.call_args[0]

    @pytest.mark.anyio
    async def test_unparseable_document_returned_without_model(self, db_adapter):
        await db_adapter.save_policy(PolicyScope.GLOBAL, None, None, "<policies><inbound>")

        result = await detect_policy("global", db_adapter=db_adapter)

        assert result.exists is True
        assert result.policy_xml == "<policies><inbound>"
        assert result.policy_model is None

    @pytest.mark.anyio
    async def test_invalid_scope_rejected(self):
        with pytest.raises(ValueError):
            await detect_policy("tenant")


class TestConcurrency:
    """Database and gateway lookups overlap."""

    @pytest.mark.anyio
    async def test_lookups_run_concurrently(self):
        db_started = anyio.Event()
        apim_started = anyio.Event()

        async def db_lookup(*args):
            db_started.set()
            await apim_started.wait()
            return RATE_LIMIT_XML

        async def apim_lookup(*args):
            apim_started.set()
            await db_started.wait()
            return RATE_LIMIT_XML

        db_adapter = AsyncMock()
        db_adapter.get_policy.side_effect = db_lookup
        apim_adapter = AsyncMock()
        apim_adapter.get_policy.side_effect = apim_lookup

        # Sequential lookups would each wait for the other forever
        with anyio.fail_after(2):
            result = await detect_policy(
                "api", "orders-api", apim_adapter=apim_adapter, db_adapter=db_adapter
            )

        assert result.source == DetectionSource.BOTH
        assert result.policy_xml == RATE_LIMIT_XML
