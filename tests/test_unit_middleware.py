"""
Tests for RequestSizeLimitMiddleware.

Tests cover:
- Configured limits
- Oversized bodies for POST/PUT/PATCH
- Body replay for downstream handlers
- Methods without a body check
- The limit applied by the application
"""

import pytest
from fastapi import FastAPI, Request, status
from fastapi.testclient import TestClient

from apim_policy.core.middleware import RequestSizeLimitMiddleware
from apim_policy.main import create_app

ONE_MB = 1024 * 1024


def _app(max_size_mb: int = 1) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_size_mb=max_size_mb)

    @app.api_route("/documents", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def documents(request: Request):
        body = await request.body()
        return {"received": len(body)}

    return app


class TestRequestSizeLimitMiddlewareInit:
    @pytest.mark.anyio
    async def test_init_default_max_size(self):
        middleware = RequestSizeLimitMiddleware(app=None)
        assert middleware.max_size_bytes == ONE_MB

    @pytest.mark.anyio
    async def test_init_custom_max_size(self):
        middleware = RequestSizeLimitMiddleware(app=None, max_size_mb=5)
        assert middleware.max_size_bytes == 5 * ONE_MB


class TestBodySizeValidation:
    """Bodies are measured for POST, PUT and PATCH."""

    @pytest.mark.anyio
    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
    async def test_oversized_body_returns_413(self, method):
        client = TestClient(_app())
        response = client.request(method, "/documents", content=b"<" * (ONE_MB + 1))

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json() == {
            "error": "RequestTooLarge",
            "message": "Policy document exceeds maximum allowed size",
            "details": {"max_bytes": ONE_MB},
        }

    @pytest.mark.anyio
    async def test_body_exactly_at_limit(self):
        client = TestClient(_app())
        response = client.post("/documents", content=b"x" * ONE_MB)

        assert response.status_code == 200
        assert response.json() == {"received": ONE_MB}

    @pytest.mark.anyio
    async def test_empty_body_allowed(self):
        client = TestClient(_app())
        response = client.post("/documents", content=b"")

        assert response.status_code == 200
        assert response.json() == {"received": 0}

    @pytest.mark.anyio
    async def test_zero_limit_rejects_any_body(self):
        client = TestClient(_app(max_size_mb=0))
        response = client.post("/documents", content=b"<policies />")

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class TestBodyReplay:
    @pytest.mark.anyio
    async def test_downstream_handler_sees_full_body(self):
        client = TestClient(_app())
        document = b"<policies><inbound><base /></inbound></policies>"

        response = client.post("/documents", content=document)

        assert response.json() == {"received": len(document)}

    @pytest.mark.anyio
    async def test_delete_not_measured(self):
        client = TestClient(_app())
        response = client.delete("/documents")

        assert response.status_code == 200


class TestApplicationLimit:
    @pytest.mark.anyio
    async def test_parse_endpoint_rejects_oversized_document(self):
        client = TestClient(create_app())
        oversized = "<policies>" + " " * (2 * ONE_MB) + "</policies>"

        response = client.post("/api/v1/policies/parse", json={"xml": oversized})

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error"] == "RequestTooLarge"
