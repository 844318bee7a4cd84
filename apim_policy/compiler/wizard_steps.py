"""Fixed step sequence of the policy wizard."""

from apim_policy.domain.models import WizardStep

WIZARD_STEPS: tuple[WizardStep, ...] = (
    WizardStep(
        id="scope-selection",
        name="Scope Selection",
        description="Select the scope for the policy (global, product, API, or operation)",
        order=1,
        required=True,
    ),
    WizardStep(
        id="policy-detection",
        name="Policy Detection",
        description="Check if a policy already exists for this scope",
        order=2,
    ),
    WizardStep(
        id="section-selection",
        name="Section Selection",
        description="Choose which policy sections to manage",
        order=3,
        required=True,
    ),
    WizardStep(
        id="policy-selection",
        name="Policy Selection",
        description="Browse and select policies from the catalog",
        order=4,
    ),
    WizardStep(
        id="policy-configuration",
        name="Policy Configuration",
        description="Configure parameters for selected policies",
        order=5,
    ),
    WizardStep(
        id="fragment-selection",
        name="Fragment Selection",
        description="Add policy fragments to sections",
        order=6,
    ),
    WizardStep(
        id="named-values",
        name="Named Values",
        description="Configure named value references",
        order=7,
    ),
    WizardStep(
        id="external-calls",
        name="External Calls",
        description="Configure send-request policies for external services",
        order=8,
    ),
    WizardStep(
        id="advanced-custom",
        name="Advanced/Custom",
        description="Add custom XML blocks and expressions",
        order=9,
    ),
    WizardStep(
        id="ordering",
        name="Ordering",
        description="Reorder policies within each section",
        order=10,
    ),
    WizardStep(
        id="validation",
        name="Validation",
        description="Review validation results",
        order=11,
    ),
    WizardStep(
        id="review-export",
        name="Review & Export",
        description="Review final XML and export",
        order=12,
        required=True,
    ),
)

_STEPS_BY_ID = {step.id: step for step in WIZARD_STEPS}
_STEPS_BY_ORDER = {step.order: step for step in WIZARD_STEPS}


def get_wizard_steps() -> list[WizardStep]:
    """All steps, in order."""
    return list(WIZARD_STEPS)


def get_step_by_id(step_id: str) -> WizardStep | None:
    return _STEPS_BY_ID.get(step_id)


def get_step_by_order(order: int) -> WizardStep | None:
    return _STEPS_BY_ORDER.get(order)
