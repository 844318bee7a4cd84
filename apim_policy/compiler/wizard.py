"""
Policy Wizard state machine.

The wizard walks a caller through the fixed step sequence in
``wizard_steps`` while it edits one PolicyModel.

State lives in a frozen WizardInstanceState; every transition below is a
pure function returning a new state. PolicyWizardInstance holds the current
state for one session, and PolicyWizard is the entry point that creates
sessions and exposes the compiler operations.

Instances are not safe for concurrent use; keep one per user session.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from apim_policy.adapters.base import ApimApiAdapter, DatabaseAdapter
from apim_policy.compiler.detection import detect_policy
from apim_policy.compiler.validator import validate
from apim_policy.compiler.wizard_steps import WIZARD_STEPS, get_step_by_order
from apim_policy.compiler.xml_generator import to_xml
from apim_policy.compiler.xml_parser import from_xml_async
from apim_policy.core.errors import ValidationError
from apim_policy.domain.enums import PolicyScope
from apim_policy.domain.models import (
    PolicyDetectionResult,
    PolicyModel,
    PolicySections,
    ValidationResult,
    WizardInstanceState,
    WizardStep,
)

logger = logging.getLogger(__name__)

PolicyModelChanges = Mapping[str, Any] | PolicyModel


# ============================================================================
# Transitions
# ============================================================================


def next_step(state: WizardInstanceState) -> WizardInstanceState:
    """Advance one step. Not bounded: past the last step means finished."""
    return state.model_copy(update={"current_step": state.current_step + 1})


def previous_step(state: WizardInstanceState) -> WizardInstanceState:
    """Go back one step, stopping at the first."""
    if state.current_step == 0:
        return state
    return state.model_copy(update={"current_step": state.current_step - 1})


def go_to_step(state: WizardInstanceState, step: int) -> WizardInstanceState:
    """Jump to any step index; negative indexes are ignored."""
    if step < 0:
        return state
    return state.model_copy(update={"current_step": step})


def complete_step(state: WizardInstanceState, step_id: str) -> WizardInstanceState:
    """Record a step as completed. Completing a step twice changes nothing."""
    if step_id in state.completed_steps:
        return state
    return state.model_copy(update={"completed_steps": (*state.completed_steps, step_id)})


def update_policy_model(
    state: WizardInstanceState, changes: PolicyModelChanges
) -> WizardInstanceState:
    """
    Merge changes into the state's model.

    Top-level fields are replaced. Sections are merged by name, and a named
    section is replaced wholesale (its items are not merged); passing None
    for a section removes it. Keys may be snake_case or camelCase.

    Raises:
        ValidationError: If ``changes`` names a field the model does not have
    """
    return state.model_copy(
        update={"policy_model": merge_policy_model(state.policy_model, changes)}
    )


def validate_state(state: WizardInstanceState) -> WizardInstanceState:
    """Validate the state's model and keep the result on the returned state."""
    return state.model_copy(update={"validation_result": validate(state.policy_model)})


def merge_policy_model(model: PolicyModel, changes: PolicyModelChanges) -> PolicyModel:
    """Shallow merge at the top level and of the sections map."""
    top_level = _normalise_keys(PolicyModel, _explicit_fields(changes))

    data = {name: getattr(model, name) for name in PolicyModel.model_fields}
    section_changes = top_level.pop("sections", None)
    data.update(top_level)

    if section_changes is not None:
        sections = {name: getattr(model.sections, name) for name in PolicySections.model_fields}
        sections.update(_normalise_keys(PolicySections, _explicit_fields(section_changes)))
        data["sections"] = sections

    return PolicyModel.model_validate(data)


def _explicit_fields(changes: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(changes, BaseModel):
        return {name: getattr(changes, name) for name in changes.model_fields_set}
    return dict(changes)


def _normalise_keys(model_cls: type[BaseModel], changes: dict[str, Any]) -> dict[str, Any]:
    lookup: dict[str, str] = {}
    for name, info in model_cls.model_fields.items():
        lookup[name] = name
        lookup[name.replace("_", "-")] = name
        if info.alias:
            lookup[info.alias] = name

    normalised = {}
    for key, value in changes.items():
        if key not in lookup:
            raise ValidationError(
                f"Unknown field '{key}' for {model_cls.__name__}",
                details={"field": key, "allowed": sorted(model_cls.model_fields)},
            )
        normalised[lookup[key]] = value
    return normalised


# ============================================================================
# Session
# ============================================================================


class PolicyWizardInstance:
    """
    One wizard session.

    Applies the transitions above to the session's state in place. ``state``
    always returns the current immutable snapshot.
    """

    def __init__(self, initial_model: PolicyModel) -> None:
        self._state = WizardInstanceState(policy_model=initial_model)

    @classmethod
    def from_state(cls, state: WizardInstanceState) -> "PolicyWizardInstance":
        instance = cls(state.policy_model)
        instance._state = state
        return instance

    @property
    def state(self) -> WizardInstanceState:
        return self._state

    @property
    def policy_model(self) -> PolicyModel:
        return self._state.policy_model

    @property
    def current_step(self) -> int:
        return self._state.current_step

    @property
    def current_step_definition(self) -> WizardStep | None:
        """Definition of the current step, or None once past the last step."""
        return get_step_by_order(self._state.current_step + 1)

    @property
    def is_finished(self) -> bool:
        return self._state.current_step >= len(WIZARD_STEPS)

    def update_policy_model(self, changes: PolicyModelChanges) -> None:
        self._state = update_policy_model(self._state, changes)

    def validate(self) -> ValidationResult:
        self._state = validate_state(self._state)
        return self._state.validation_result

    def to_xml(self) -> str:
        return to_xml(self._state.policy_model)

    def next_step(self) -> None:
        self._state = next_step(self._state)

    def previous_step(self) -> None:
        self._state = previous_step(self._state)

    def go_to_step(self, step: int) -> None:
        self._state = go_to_step(self._state, step)

    def complete_step(self, step_id: str) -> None:
        self._state = complete_step(self._state, step_id)


class PolicyWizard:
    """Entry points for wizard sessions and one-off compiler operations."""

    @staticmethod
    def start(
        scope: PolicyScope | str,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> PolicyWizardInstance:
        """Start a session on an empty model for the given scope."""
        logger.debug(
            "Starting policy wizard: scope=%s, api_id=%s, operation_id=%s",
            scope,
            api_id,
            operation_id,
        )
        model = PolicyModel(scope=scope, api_id=api_id, operation_id=operation_id)
        return PolicyWizardInstance(model)

    @staticmethod
    def from_model(policy_model: PolicyModel) -> PolicyWizardInstance:
        """Start a session editing an existing model."""
        return PolicyWizardInstance(policy_model)

    @staticmethod
    def validate(policy_model: PolicyModel) -> ValidationResult:
        return validate(policy_model)

    @staticmethod
    def to_xml(policy_model: PolicyModel) -> str:
        return to_xml(policy_model)

    @staticmethod
    async def from_xml(
        xml: str,
        scope: PolicyScope | str | None = None,
        api_id: str | None = None,
        operation_id: str | None = None,
    ) -> PolicyModel:
        return await from_xml_async(xml, scope=scope, api_id=api_id, operation_id=operation_id)

    @staticmethod
    async def detect_policy(
        scope: PolicyScope | str,
        api_id: str | None = None,
        operation_id: str | None = None,
        apim_adapter: ApimApiAdapter | None = None,
        db_adapter: DatabaseAdapter | None = None,
    ) -> PolicyDetectionResult:
        return await detect_policy(scope, api_id, operation_id, apim_adapter, db_adapter)
