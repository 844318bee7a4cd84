"""In-memory collaborator implementations for local use and tests."""

import logging

from apim_policy.domain.enums import PolicyScope
from apim_policy.domain.models import NamedValueInfo, PolicyFragmentInfo

logger = logging.getLogger(__name__)

PolicyKey = tuple[PolicyScope, str | None, str | None]


def policy_key(
    scope: PolicyScope | str, api_id: str | None = None, operation_id: str | None = None
) -> PolicyKey:
    """Storage key of a policy document; empty ids are treated as absent."""
    return PolicyScope(scope), api_id or None, operation_id or None


class _InMemoryPolicyStore:
    def __init__(self, policies: dict[PolicyKey, str] | None = None) -> None:
        self._policies: dict[PolicyKey, str] = dict(policies or {})

    async def get_policy(
        self,
        scope: PolicyScope,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> str | None:
        return self._policies.get(policy_key(scope, api_id, operation_id))

    def _put(
        self, scope: PolicyScope, api_id: str | None, operation_id: str | None, xml: str
    ) -> None:
        key = policy_key(scope, api_id, operation_id)
        self._policies[key] = xml
        logger.debug("Stored policy for %s", key)


class InMemoryDatabaseAdapter(_InMemoryPolicyStore):
    """DatabaseAdapter backed by a dict."""

    async def save_policy(
        self,
        scope: PolicyScope,
        api_id: str | None,
        operation_id: str | None,
        xml: str,
    ) -> None:
        self._put(scope, api_id, operation_id, xml)


class InMemoryApimApiAdapter(_InMemoryPolicyStore):
    """ApimApiAdapter backed by a dict, standing in for a live gateway."""

    async def set_policy(
        self,
        scope: PolicyScope,
        api_id: str | None,
        operation_id: str | None,
        xml: str,
    ) -> None:
        self._put(scope, api_id, operation_id, xml)

    async def delete_policy(
        self,
        scope: PolicyScope,
        api_id: str | None,
        operation_id: str | None,
    ) -> None:
        self._policies.pop(policy_key(scope, api_id, operation_id), None)


class InMemoryFragmentsAdapter:
    """FragmentsAdapter over a fixed list of fragments."""

    def __init__(self, fragments: list[PolicyFragmentInfo] | None = None) -> None:
        self._fragments = {fragment.id: fragment for fragment in fragments or []}

    async def get_all_fragments(self) -> list[PolicyFragmentInfo]:
        return list(self._fragments.values())

    async def get_fragment(self, fragment_id: str) -> PolicyFragmentInfo | None:
        return self._fragments.get(fragment_id)

    async def fragment_exists(self, fragment_id: str) -> bool:
        return await self.get_fragment(fragment_id) is not None


class InMemoryNamedValuesAdapter:
    """NamedValuesAdapter over a fixed list of named values."""

    def __init__(self, named_values: list[NamedValueInfo] | None = None) -> None:
        self._named_values = {value.name: value for value in named_values or []}

    async def get_all_named_values(self) -> list[NamedValueInfo]:
        return list(self._named_values.values())

    async def get_named_value(self, name: str) -> NamedValueInfo | None:
        return self._named_values.get(name)

    async def named_value_exists(self, name: str) -> bool:
        return await self.get_named_value(name) is not None
