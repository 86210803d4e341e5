"""
screenbot/flow/machine.py

Purpose: Screening decision logic

- Pure function of (step, normalized input, answers so far, config)
- Returns an action description; never sends or persists anything
- One handler per step, checked for completeness at import time
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from screenbot.core.config import ScreeningConfig
from screenbot.flow.states import Outcome, ScreeningStep, get_step_metadata
from screenbot.flow.vocabulary import lookup, parse_age
from screenbot.schemas.session import Answers


MIN_AGE = 1
MAX_AGE = 120

REASON_INVALID_INPUT = "invalid_input"

# Failure reasons carried in session.reason and the result payload
REASON_NOT_TEAM_ROLE = "not_team_role"
REASON_LOW_AVAILABILITY = "low_availability"
REASON_NO_STABLE_SETUP = "no_stable_setup"
REASON_SOP_DECLINED = "sop_declined"
REASON_ENGLISH_LOW = "english_low"
REASON_AGE_OVER_LIMIT = "age_over_limit"

FAILURE_REASONS = (
    REASON_NOT_TEAM_ROLE,
    REASON_LOW_AVAILABILITY,
    REASON_NO_STABLE_SETUP,
    REASON_SOP_DECLINED,
    REASON_ENGLISH_LOW,
    REASON_AGE_OVER_LIMIT,
)


@dataclass(frozen=True)
class Advance:
    next_step: ScreeningStep
    answers: Answers


@dataclass(frozen=True)
class Terminate:
    outcome: Outcome
    reason: str
    answers: Answers
    step: ScreeningStep

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.PASSED


@dataclass(frozen=True)
class Reject:
    step: ScreeningStep
    reason: str = REASON_INVALID_INPUT


Action = Union[Advance, Terminate, Reject]

StepHandler = Callable[[ScreeningStep, str, Answers, ScreeningConfig], Action]


def _record(step: ScreeningStep, answers: Answers, value) -> Answers:
    return answers.with_answer(get_step_metadata(step).answer_field, value)


def _continue(step: ScreeningStep, answers: Answers) -> Action:
    """Moves to the next step, or passes when `step` is the last one."""
    next_step = step.next()
    if next_step is None:
        return Terminate(Outcome.PASSED, "", answers, step)
    return Advance(next_step, answers)


def _fail(step: ScreeningStep, answers: Answers, reason: str) -> Terminate:
    return Terminate(Outcome.FAILED, reason, answers, step)


def _yes_or_fail(reason: str) -> StepHandler:
    """Handler for yes/no questions where "no" disqualifies."""

    def handler(step, token, answers, config):
        value = lookup(step, token)
        if value is None:
            return Reject(step)
        answers = _record(step, answers, value)
        if value == "no":
            return _fail(step, answers, reason)
        return _continue(step, answers)

    return handler


def _weekly_availability(step, token, answers, config):
    value = lookup(step, token)
    if value is None:
        return Reject(step)
    answers = _record(step, answers, value)

    # A tier fails when the required minimum exceeds the hours it can cover.
    if value == "part_time" and config.min_weekly_hours > config.part_time_max_hours:
        return _fail(step, answers, REASON_LOW_AVAILABILITY)
    if value == "low" and config.min_weekly_hours > config.low_availability_max_hours:
        return _fail(step, answers, REASON_LOW_AVAILABILITY)
    return _continue(step, answers)


def _start_date(step, token, answers, config):
    value = lookup(step, token)
    if value is None:
        return Reject(step)
    return _continue(step, _record(step, answers, value))


def _english_level(step, token, answers, config):
    value = lookup(step, token)
    if value is None:
        return Reject(step)
    answers = _record(step, answers, value)
    if value == "low":
        return _fail(step, answers, REASON_ENGLISH_LOW)
    return _continue(step, answers)


def _age(step, token, answers, config):
    age = parse_age(token)
    if age is None or age < MIN_AGE or age > MAX_AGE:
        return Reject(step)
    answers = _record(step, answers, age)
    if age >= config.age_cutoff:
        return _fail(step, answers, REASON_AGE_OVER_LIMIT)
    return _continue(step, answers)


def _student_types(step, token, answers, config):
    value = lookup(step, token)
    if value is None:
        return Reject(step)
    return _continue(step, _record(step, answers, value))


STEP_HANDLERS: Dict[ScreeningStep, StepHandler] = {
    ScreeningStep.Q1: _yes_or_fail(REASON_NOT_TEAM_ROLE),
    ScreeningStep.Q2: _weekly_availability,
    ScreeningStep.Q3: _start_date,
    ScreeningStep.Q4: _yes_or_fail(REASON_NO_STABLE_SETUP),
    ScreeningStep.Q5: _yes_or_fail(REASON_SOP_DECLINED),
    ScreeningStep.Q6: _english_level,
    ScreeningStep.Q7: _age,
    ScreeningStep.Q8: _student_types,
}

if set(STEP_HANDLERS) != set(ScreeningStep):
    raise RuntimeError("STEP_HANDLERS must handle every ScreeningStep")


def evaluate(
    step: ScreeningStep,
    token: str,
    answers: Optional[Answers] = None,
    config: Optional[ScreeningConfig] = None,
) -> Action:
    """
    Decides what a normalized reply does at `step`.

    Args:
        step: Current (non-terminal) step
        token: Reply already passed through normalize_input
        answers: Answers collected so far; never mutated
        config: Thresholds; defaults apply when omitted

    Returns:
        Advance, Terminate or Reject
    """
    return STEP_HANDLERS[step](
        step,
        token,
        answers if answers is not None else Answers(),
        config or ScreeningConfig(),
    )
