"""
Policy Detection.

Looks up an existing policy document for a scope in two places, the local
cache/database and the live gateway, and merges the answers:

- only one source has a document: use it, ``source`` names that store
- both have the same document: ``source`` is ``both``
- both have different documents: the live gateway document wins, ``source``
  is ``both`` and the cached document is kept in ``cached_policy_xml``

Both lookups run concurrently. A failing source is logged and treated as
having returned nothing; a document that cannot be parsed is still returned
as raw XML without a model.
"""

import asyncio
import logging

from apim_policy.adapters.base import ApimApiAdapter, DatabaseAdapter
from apim_policy.compiler.xml_parser import from_xml_async
from apim_policy.core.errors import ParseError
from apim_policy.domain.enums import DetectionSource, PolicyScope
from apim_policy.domain.models import PolicyDetectionResult

logger = logging.getLogger(__name__)


async def detect_policy(
    scope: PolicyScope | str,
    api_id: str | None = None,
    operation_id: str | None = None,
    apim_adapter: ApimApiAdapter | None = None,
    db_adapter: DatabaseAdapter | None = None,
) -> PolicyDetectionResult:
    """
    Detect an existing policy for a scope.

    Args:
        scope: Policy scope to look up
        api_id: API id for api/operation scope
        operation_id: Operation id for operation scope
        apim_adapter: Live gateway adapter (skipped when None)
        db_adapter: Cache/database adapter (skipped when None)

    Returns:
        PolicyDetectionResult; ``exists`` is False when neither source has a document
    """
    scope = PolicyScope(scope)

    db_xml, apim_xml = await asyncio.gather(
        _fetch(db_adapter, DetectionSource.DATABASE, scope, api_id, operation_id),
        _fetch(apim_adapter, DetectionSource.APIM_API, scope, api_id, operation_id),
    )

    if not db_xml and not apim_xml:
        logger.debug("No policy found for scope=%s api_id=%s", scope.value, api_id)
        return PolicyDetectionResult(exists=False)

    cached_policy_xml = None
    if db_xml and apim_xml:
        source = DetectionSource.BOTH
        policy_xml = apim_xml
        if db_xml != apim_xml:
            cached_policy_xml = db_xml
            logger.info(
                "Cached policy differs from live gateway policy; using gateway version",
                extra={"scope": scope.value, "api_id": api_id, "operation_id": operation_id},
            )
    elif apim_xml:
        source = DetectionSource.APIM_API
        policy_xml = apim_xml
    else:
        source = DetectionSource.DATABASE
        policy_xml = db_xml

    policy_model = None
    try:
        policy_model = await from_xml_async(
            policy_xml, scope=scope, api_id=api_id, operation_id=operation_id
        )
    except ParseError as e:
        logger.warning(
            "Failed to parse detected policy from %s: %s",
            source.value,
            e.message,
            extra={"details": e.details},
        )

    return PolicyDetectionResult(
        exists=True,
        policy_xml=policy_xml,
        policy_model=policy_model,
        source=source,
        cached_policy_xml=cached_policy_xml,
    )


async def _fetch(
    adapter: DatabaseAdapter | ApimApiAdapter | None,
    source: DetectionSource,
    scope: PolicyScope,
    api_id: str | None,
    operation_id: str | None,
) -> str | None:
    if adapter is None:
        return None
    try:
        return await adapter.get_policy(scope, api_id, operation_id)
    except Exception:
        logger.warning("Error checking %s for policy", source.value, exc_info=True)
        return None
