"""
Pytest configuration and shared fixtures.

Provides:
- Test environment variables (set before the app is imported)
- FastAPI TestClient
- Policy model builders for the common scopes
- In-memory collaborator adapters
"""

from __future__ import annotations

import os
import sys
from collections.abc import Generator
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

# Add project root to path for imports
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("OBSERVABILITY_STRUCTURED_LOGS", "false")
os.environ.setdefault("METRICS_TOKEN", "test-metrics-token")
os.environ.setdefault("COMPILER_MODE", "auto")

import pytest  # noqa: E402 (import after env setup)
from fastapi.testclient import TestClient  # noqa: E402 (import after env setup)

from apim_policy.adapters.memory import (  # noqa: E402 (import after env setup)
    InMemoryApimApiAdapter,
    InMemoryDatabaseAdapter,
)
from apim_policy.domain.models import PolicyModel  # noqa: E402 (import after env setup)
from apim_policy.main import create_app  # noqa: E402 (import after env setup)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def rate_limit_model() -> PolicyModel:
    """API-scope model with a single inbound rate-limit policy."""
    return PolicyModel.model_validate(
        {
            "scope": "api",
            "apiId": "orders-api",
            "sections": {
                "inbound": {
                    "includeBase": True,
                    "items": [
                        {
                            "type": "catalog",
                            "policyId": "rate-limit",
                            "configuration": {"calls": 100, "renewal-period": 60},
                        }
                    ],
                }
            },
        }
    )


@pytest.fixture
def db_adapter() -> InMemoryDatabaseAdapter:
    return InMemoryDatabaseAdapter()


@pytest.fixture
def apim_adapter() -> InMemoryApimApiAdapter:
    return InMemoryApimApiAdapter()
