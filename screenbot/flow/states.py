"""
screenbot/flow/states.py

Purpose: Defines all screening steps

- Enum for each question in the fixed linear sequence (Q1..Q8)
- Virtual terminal outcomes (passed / failed)
- Single source of truth for step order
- Metadata for each step (answer field, progress label, options)
"""

from enum import Enum
from typing import Dict, Optional, Tuple
from dataclasses import dataclass


class ScreeningStep(str, Enum):
    """
    Ordered questions of the screening flow.
    Declaration order is the conversation order.
    """

    Q1 = "Q1"  # Team role
    Q2 = "Q2"  # Weekly availability
    Q3 = "Q3"  # Start date
    Q4 = "Q4"  # Internet + quiet place
    Q5 = "Q5"  # Curriculum / SOPs
    Q6 = "Q6"  # English level
    Q7 = "Q7"  # Age
    Q8 = "Q8"  # Student types

    @classmethod
    def first(cls) -> "ScreeningStep":
        return STEP_ORDER[0]

    def next(self) -> Optional["ScreeningStep"]:
        """Following step, or None on the last one."""
        index = STEP_ORDER.index(self)
        if index + 1 < len(STEP_ORDER):
            return STEP_ORDER[index + 1]
        return None

    @property
    def is_last(self) -> bool:
        return self is STEP_ORDER[-1]


class Outcome(str, Enum):
    """Terminal states. No transition leaves them."""

    PASSED = "passed"
    FAILED = "failed"

    @property
    def result(self) -> str:
        """Value reported in the result payload."""
        return "pass" if self is Outcome.PASSED else "fail"


STEP_ORDER: Tuple[ScreeningStep, ...] = tuple(ScreeningStep)


@dataclass(frozen=True)
class StepMetadata:
    """
    Static description of a step.
    `options` lists (button id, button title) pairs for fixed-choice steps;
    free-text steps leave it empty.
    """
    step: ScreeningStep
    answer_field: str
    display_name: str
    options: Tuple[Tuple[str, str], ...] = ()

    @property
    def number(self) -> int:
        return STEP_ORDER.index(self.step) + 1

    @property
    def progress(self) -> str:
        return f"Q{self.number}/{len(STEP_ORDER)}"

    @property
    def is_free_text(self) -> bool:
        return not self.options


STEP_METADATA: Dict[ScreeningStep, StepMetadata] = {
    ScreeningStep.Q1: StepMetadata(
        step=ScreeningStep.Q1,
        answer_field="team_role",
        display_name="Team role",
        options=(("1", "Sí"), ("2", "No")),
    ),
    ScreeningStep.Q2: StepMetadata(
        step=ScreeningStep.Q2,
        answer_field="weekly_availability",
        display_name="Weekly availability",
        options=(("1", "Tiempo completo"), ("2", "Medio tiempo"), ("3", "Menos de 15 hrs")),
    ),
    ScreeningStep.Q3: StepMetadata(
        step=ScreeningStep.Q3,
        answer_field="start_date",
        display_name="Start date",
        options=(("1", "Inmediatamente"), ("2", "En 1-2 semanas"), ("3", "En 1 mes o más")),
    ),
    ScreeningStep.Q4: StepMetadata(
        step=ScreeningStep.Q4,
        answer_field="setup",
        display_name="Teaching setup",
        options=(("1", "Sí"), ("2", "No")),
    ),
    ScreeningStep.Q5: StepMetadata(
        step=ScreeningStep.Q5,
        answer_field="sop",
        display_name="Curriculum and SOPs",
        options=(("1", "Sí"), ("2", "No")),
    ),
    ScreeningStep.Q6: StepMetadata(
        step=ScreeningStep.Q6,
        answer_field="english_level",
        display_name="English level",
        options=(("1", "Bueno"), ("2", "Me defiendo"), ("3", "No sé mucho")),
    ),
    ScreeningStep.Q7: StepMetadata(
        step=ScreeningStep.Q7,
        answer_field="age",
        display_name="Age",
    ),
    ScreeningStep.Q8: StepMetadata(
        step=ScreeningStep.Q8,
        answer_field="student_types",
        display_name="Student types",
        options=(("1", "Niños"), ("2", "Jóvenes"), ("3", "Adultos"), ("4", "Todos")),
    ),
}


def get_step_metadata(step: ScreeningStep) -> StepMetadata:
    """
    Retrieves metadata for a given step.

    Args:
        step: Screening step

    Returns:
        StepMetadata for the step
    """
    return STEP_METADATA[step]


if set(STEP_METADATA) != set(ScreeningStep):
    raise RuntimeError("STEP_METADATA must describe every ScreeningStep")
