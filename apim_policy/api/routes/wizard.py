"""FastAPI routes exposing the wizard step sequence."""

from fastapi import APIRouter, Path

from apim_policy.compiler.wizard_steps import get_step_by_id, get_wizard_steps
from apim_policy.core.errors import NotFoundError
from apim_policy.domain.models import WizardStep

router = APIRouter(prefix="/wizard", tags=["Wizard"])


@router.get("/steps", response_model=list[WizardStep], summary="List wizard steps")
def list_steps() -> list[WizardStep]:
    return get_wizard_steps()


@router.get("/steps/{step_id}", response_model=WizardStep, summary="Get a wizard step")
def get_step(step_id: str = Path(..., min_length=1, max_length=100)) -> WizardStep:
    step = get_step_by_id(step_id)
    if step is None:
        raise NotFoundError("Wizard step not found", details={"step_id": step_id})
    return step
