"""
Policy compiler capability.

Other parts of a system may not always have the in-process compiler
available (for example before a build step has run). They ask
``get_policy_compiler()`` for a PolicyCompiler and use whichever strategy
the configuration selects:

- LOCAL: in-process generator, parser and validator
- REMOTE: the HTTP surface of a running compiler service (httpx)
- AUTO: in-process, falling back to REMOTE when it cannot be loaded

This module lives outside ``apim_policy.compiler`` and imports nothing from
it at module level, so a broken compiler package surfaces as ImportError
from ``LocalPolicyCompiler()`` instead of from importing this module.
"""

import importlib
import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from apim_policy.core.config import CompilerMode, Settings, settings
from apim_policy.core.errors import CompilerUnavailableError, ParseError, ValidationError
from apim_policy.domain.enums import PolicyScope
from apim_policy.domain.models import PolicyModel, ValidationResult

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

_COMPILER_MODULES = {
    "catalog": "apim_policy.compiler.catalog",
    "generator": "apim_policy.compiler.xml_generator",
    "parser": "apim_policy.compiler.xml_parser",
    "validator": "apim_policy.compiler.validator",
}


@runtime_checkable
class PolicyCompiler(Protocol):
    """The compiler operations callers depend on."""

    def to_xml(self, policy_model: PolicyModel) -> str: ...

    def from_xml(
        self,
        xml: str,
        scope: PolicyScope | str | None = None,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> PolicyModel: ...

    def validate(self, policy_model: PolicyModel) -> ValidationResult: ...

    def close(self) -> None: ...


class LocalPolicyCompiler:
    """
    In-process compiler.

    The compiler modules are loaded when the instance is created, so a
    missing or broken installation surfaces as ImportError here rather than
    at first use.
    """

    def __init__(self) -> None:
        modules = {key: importlib.import_module(name) for key, name in _COMPILER_MODULES.items()}
        self._catalog = modules["catalog"]
        self._generator = modules["generator"]
        self._parser = modules["parser"]
        self._validator = modules["validator"]

    def policy_count(self) -> int:
        """Number of entries in the loaded policy catalog."""
        return len(self._catalog.get_all_policies())

    def to_xml(self, policy_model: PolicyModel) -> str:
        return self._generator.to_xml(policy_model)

    def from_xml(
        self,
        xml: str,
        scope: PolicyScope | str | None = None,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> PolicyModel:
        return self._parser.from_xml(xml, scope=scope, api_id=api_id, operation_id=operation_id)

    def validate(self, policy_model: PolicyModel) -> ValidationResult:
        return self._validator.validate(policy_model)

    def close(self) -> None:
        pass


class RemotePolicyCompiler:
    """
    Compiler backed by the ``/api/v1/policies`` endpoints of a compiler service.

    Owns its httpx client unless one is passed in. Use it as a context manager
    or call ``close()`` when done.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def __enter__(self) -> "RemotePolicyCompiler":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this compiler created it."""
        if self._owns_client:
            self.client.close()

    def to_xml(self, policy_model: PolicyModel) -> str:
        data = self._post("/policies/xml", policy_model.to_json_dict())
        return data["xml"]

    def from_xml(
        self,
        xml: str,
        scope: PolicyScope | str | None = None,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> PolicyModel:
        payload: dict[str, Any] = {"xml": xml}
        if scope is not None:
            payload["scope"] = PolicyScope(scope).value
        if api_id is not None:
            payload["apiId"] = api_id
        if operation_id is not None:
            payload["operationId"] = operation_id
        return PolicyModel.model_validate(self._post("/policies/parse", payload))

    def validate(self, policy_model: PolicyModel) -> ValidationResult:
        return ValidationResult.model_validate(
            self._post("/policies/validate", policy_model.to_json_dict())
        )

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{API_PREFIX}{path}"
        try:
            response = self.client.post(url, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning("Remote policy compiler request failed: %s %s", url, e)
            raise CompilerUnavailableError(
                "Remote policy compiler is unreachable", details={"url": url, "error": str(e)}
            ) from e

        if response.status_code == 400:
            body = _json_or_empty(response)
            error_type = ParseError if body.get("error") == "ParseError" else ValidationError
            raise error_type(
                body.get("message", "Remote policy compiler rejected the request"),
                details=body.get("details") or {},
            )

        if response.status_code >= 400:
            raise CompilerUnavailableError(
                f"Remote policy compiler returned HTTP {response.status_code}",
                details={"url": url, "status_code": response.status_code},
            )

        return response.json()


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def get_policy_compiler(app_settings: Settings | None = None) -> PolicyCompiler:
    """
    Return the compiler strategy selected by COMPILER_MODE.

    Raises:
        CompilerUnavailableError: If no strategy can be used
    """
    app_settings = app_settings or settings
    mode = app_settings.compiler_mode

    if mode == CompilerMode.REMOTE:
        return _remote_compiler(app_settings)

    try:
        return LocalPolicyCompiler()
    except ImportError as e:
        if mode == CompilerMode.LOCAL or not app_settings.compiler_remote_url:
            raise CompilerUnavailableError(
                "In-process policy compiler could not be loaded", details={"error": str(e)}
            ) from e
        logger.warning(
            "In-process policy compiler unavailable (%s); using remote compiler at %s",
            e,
            app_settings.compiler_remote_url,
        )
        return _remote_compiler(app_settings)


def _remote_compiler(app_settings: Settings) -> RemotePolicyCompiler:
    if not app_settings.compiler_remote_url:
        raise CompilerUnavailableError("COMPILER_REMOTE_URL is not configured")
    return RemotePolicyCompiler(
        app_settings.compiler_remote_url,
        timeout=app_settings.compiler_remote_timeout_seconds,
    )
