"""
Reference checks against the fragments and named-values collaborators.

The compiler never resolves fragments or named values itself. Callers use
these helpers before deployment to find references the gateway would reject.
"""

import asyncio
import re
from collections.abc import Iterator
from typing import Any

from pydantic import Field

from apim_policy.adapters.base import FragmentsAdapter, NamedValuesAdapter
from apim_policy.domain.models import (
    CamelModel,
    CatalogPolicyItem,
    CustomExpressionItem,
    CustomXmlPolicyItem,
    FragmentPolicyItem,
    NamedValueReference,
    PolicyModel,
)

# ${{name}} tokens embedded anywhere in a string
NAMED_VALUE_TOKEN_PATTERN = re.compile(r"\$\{\{([^{}]+)\}\}")


class UnresolvedReferences(CamelModel):
    fragments: list[str] = Field(default_factory=list)
    named_values: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.fragments and not self.named_values


def collect_fragment_ids(model: PolicyModel) -> list[str]:
    """Fragment ids referenced by the model, first occurrence order, no duplicates."""
    ids: dict[str, None] = {}
    for _, section in model.sections.present():
        for item in section.items:
            if isinstance(item, FragmentPolicyItem) and item.fragment_id:
                ids.setdefault(item.fragment_id)
    return list(ids)


def collect_named_value_names(model: PolicyModel) -> list[str]:
    """
    Named values referenced by the model.

    Includes NamedValueReference objects and ``${{name}}`` tokens written
    inside strings, custom XML and expressions.
    """
    names: dict[str, None] = {}
    for _, section in model.sections.present():
        for item in section.items:
            if isinstance(item, CatalogPolicyItem):
                values: list[Any] = [item.configuration, item.attributes, item.text]
            elif isinstance(item, CustomXmlPolicyItem):
                values = [item.xml]
            elif isinstance(item, CustomExpressionItem):
                values = [item.expression]
            else:
                continue
            for name in _named_values_in(values):
                if name:
                    names.setdefault(name)
    return list(names)


def _named_values_in(value: Any) -> Iterator[str]:
    if isinstance(value, NamedValueReference):
        yield value.name
    elif isinstance(value, str):
        yield from NAMED_VALUE_TOKEN_PATTERN.findall(value)
    elif isinstance(value, dict):
        for child in value.values():
            yield from _named_values_in(child)
    elif isinstance(value, (list, tuple)):
        for child in value:
            yield from _named_values_in(child)


async def find_unresolved_references(
    model: PolicyModel,
    fragments: FragmentsAdapter | None = None,
    named_values: NamedValuesAdapter | None = None,
) -> UnresolvedReferences:
    """
    List fragment ids and named-value names the collaborators do not know.

    A collaborator that is not given is not checked. Lookups run concurrently;
    adapter errors propagate to the caller.
    """
    missing_fragments: list[str] = []
    missing_named_values: list[str] = []

    if fragments is not None:
        ids = collect_fragment_ids(model)
        found = await asyncio.gather(*(fragments.fragment_exists(i) for i in ids))
        missing_fragments = [i for i, exists in zip(ids, found) if not exists]

    if named_values is not None:
        names = collect_named_value_names(model)
        found = await asyncio.gather(*(named_values.named_value_exists(n) for n in names))
        missing_named_values = [n for n, exists in zip(names, found) if not exists]

    return UnresolvedReferences(fragments=missing_fragments, named_values=missing_named_values)
