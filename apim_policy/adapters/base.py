"""
Collaborator contracts consumed by the policy compiler.

Concrete storage and gateway clients live outside this package; they only
need to provide these async methods. Timeouts, retries and cancellation are
the implementation's responsibility. Failures should be raised as
``apim_policy.core.errors.AdapterError``.
"""

from typing import Protocol, runtime_checkable

from apim_policy.domain.enums import PolicyScope
from apim_policy.domain.models import NamedValueInfo, PolicyFragmentInfo


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Local cache/database of policy documents, keyed by scope and ids."""

    async def get_policy(
        self,
        scope: PolicyScope,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> str | None:
        """Return the stored policy XML, or None when nothing is stored."""
        ...

    async def save_policy(
        self,
        scope: PolicyScope,
        api_id: str | None,
        operation_id: str | None,
        xml: str,
    ) -> None: ...


@runtime_checkable
class ApimApiAdapter(Protocol):
    """Live gateway management API."""

    async def get_policy(
        self,
        scope: PolicyScope,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> str | None:
        """Return the deployed policy XML, or None when none is deployed."""
        ...

    async def set_policy(
        self,
        scope: PolicyScope,
        api_id: str | None,
        operation_id: str | None,
        xml: str,
    ) -> None: ...

    async def delete_policy(
        self,
        scope: PolicyScope,
        api_id: str | None,
        operation_id: str | None,
    ) -> None: ...


@runtime_checkable
class FragmentsAdapter(Protocol):
    """Policy fragment lookups, used to check fragment references before deployment."""

    async def get_all_fragments(self) -> list[PolicyFragmentInfo]: ...

    async def get_fragment(self, fragment_id: str) -> PolicyFragmentInfo | None: ...

    async def fragment_exists(self, fragment_id: str) -> bool: ...


@runtime_checkable
class NamedValuesAdapter(Protocol):
    """Named value lookups, used to check named-value references before deployment."""

    async def get_all_named_values(self) -> list[NamedValueInfo]: ...

    async def get_named_value(self, name: str) -> NamedValueInfo | None: ...

    async def named_value_exists(self, name: str) -> bool: ...
