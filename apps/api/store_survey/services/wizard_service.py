"""Wizard controller: step position and aggregate record for one survey session."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import BaseModel

from store_survey.core.enums import SurveyStep, WizardPhase
from store_survey.core.structured_logging import build_log_context
from store_survey.core.survey_definitions import (
    FIRST_STEP,
    STEP_DEFINITIONS,
    active_path,
    next_step,
    previous_step,
)
from store_survey.schemas.survey import STEP_MODELS, SubmissionResult

logger = logging.getLogger(__name__)


class WizardStateError(Exception):
    """The requested action is not allowed in the wizard's current state."""

    pass


class Submitter(Protocol):
    async def submit(self, record: dict[str, Any]) -> SubmissionResult: ...


class WizardController:
    """
    Holds the current step and the aggregate record.

    State machine:
        collecting(step) --advance--> collecting(next step)
        collecting(step) --back--> collecting(previous step on active path)
        collecting(confirmation) --submit--> submitting
        submitting --ok--> success
        submitting --failure--> collecting(confirmation)
        any --reset--> collecting(store_info)
    """

    def __init__(self, session_id: str = "") -> None:
        self.session_id = session_id
        self.step: SurveyStep = FIRST_STEP
        self.phase: WizardPhase = WizardPhase.COLLECTING
        self.record: dict[str, Any] = {}
        self.last_error: str | None = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def is_complete(self) -> bool:
        return self.phase == WizardPhase.SUCCESS

    @property
    def path(self) -> list[SurveyStep]:
        return active_path(self.record)

    @property
    def can_go_back(self) -> bool:
        return (
            self.phase == WizardPhase.COLLECTING
            and previous_step(self.step, self.record) is not None
        )

    def snapshot(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "step": self.step,
            "phase": self.phase,
            "path": self.path,
            "record": dict(self.record),
            "can_go_back": self.can_go_back,
            "last_error": self.last_error,
        }

    def _log_context(self) -> dict[str, Any]:
        return build_log_context(session_id=self.session_id, step=self.step.value)

    def _require_collecting(self) -> None:
        if self.phase != WizardPhase.COLLECTING:
            raise WizardStateError(f"Survey is {self.phase.value}")

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def expect_step(self, step: SurveyStep) -> None:
        """Raise unless the wizard is collecting answers for ``step``."""
        self._require_collecting()
        if step != self.step:
            raise WizardStateError(
                f"Expected answers for step '{self.step.value}', got '{step.value}'"
            )

    def advance(self, step_result: BaseModel) -> SurveyStep:
        """
        Merge a validated step result and move to the next step.

        The result must be the model for the current step. Values from other
        steps are kept; answering "no" to direct communication drops any
        facility manager answers so they are present only on that branch.
        """
        self._require_collecting()
        expected = STEP_MODELS.get(self.step)
        if expected is None:
            raise WizardStateError(f"Step '{self.step.value}' takes no answers; submit instead")
        if not isinstance(step_result, expected):
            raise WizardStateError(
                f"Expected {expected.__name__} for step '{self.step.value}', "
                f"got {type(step_result).__name__}"
            )

        fields = set(STEP_DEFINITIONS[self.step].fields)
        self.record.update(step_result.model_dump(mode="json", include=fields))
        self._prune_inactive_branches()

        following = next_step(self.step, self.record)
        if following is None:
            raise WizardStateError(f"Step '{self.step.value}' has no next step")
        logger.info(
            "Survey step completed",
            extra={**self._log_context(), "next_step": following.value},
        )
        self.step = following
        self.last_error = None
        return self.step

    def _prune_inactive_branches(self) -> None:
        visited = set(self.path)
        for step, definition in STEP_DEFINITIONS.items():
            if step in visited:
                continue
            for field in definition.fields:
                self.record.pop(field, None)

    def back(self) -> SurveyStep:
        """Return to the previous step on the active path, keeping all answers."""
        self._require_collecting()
        previous = previous_step(self.step, self.record)
        if previous is None:
            raise WizardStateError("Already at the first step")
        self.step = previous
        self.last_error = None
        return self.step

    async def submit(self, submitter: Submitter) -> SubmissionResult:
        """
        Send the aggregate record to the submission service.

        Only allowed from the confirmation step. On failure the wizard stays
        on confirmation with ``last_error`` set so the user can resubmit.
        """
        self.expect_step(SurveyStep.CONFIRMATION)
        self.phase = WizardPhase.SUBMITTING
        try:
            result = await submitter.submit(dict(self.record))
        except Exception as exc:
            logger.exception("Survey submission raised", extra=self._log_context())
            result = SubmissionResult(success=False, error=str(exc) or "Submission failed")

        if result.success:
            self.phase = WizardPhase.SUCCESS
            self.last_error = None
            logger.info("Survey submitted", extra=self._log_context())
        else:
            self.phase = WizardPhase.COLLECTING
            self.step = SurveyStep.CONFIRMATION
            self.last_error = result.error
            logger.warning("Survey submission failed", extra=self._log_context())
        return result

    def reset(self) -> SurveyStep:
        """Clear all answers and start over from the first step. Not allowed mid-submit."""
        if self.phase == WizardPhase.SUBMITTING:
            raise WizardStateError("Survey is being submitted")
        self.record.clear()
        self.step = FIRST_STEP
        self.phase = WizardPhase.COLLECTING
        self.last_error = None
        return self.step
