import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from apim_policy.services.compiler import LocalPolicyCompiler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    return {"ok": True}


@router.get("/readyz")
def readyz() -> JSONResponse:
    """Ready once the in-process compiler imports; 503 otherwise."""
    try:
        compiler = LocalPolicyCompiler()
    except ImportError:
        logger.error("Policy compiler failed to load", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "compiler": "unavailable"},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"ok": True, "compiler": "ok", "catalog_entries": compiler.policy_count()},
    )
