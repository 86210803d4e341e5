"""
screenbot/schemas/session.py

Purpose: Persisted conversation records

- Session: full record stored under wa:<identity>
- Answers: normalized answer values, one field per question
- ResultPayload: terminal snapshot sent to the result webhook
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from screenbot.flow.states import Outcome, ScreeningStep


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Answers(BaseModel):
    """Answers collected so far. Unset fields were never asked or never accepted."""
    model_config = ConfigDict(extra="ignore")

    team_role: Optional[Literal["yes", "no"]] = None
    weekly_availability: Optional[Literal["full_time", "part_time", "low"]] = None
    start_date: Optional[Literal["now", "soon", "later"]] = None
    setup: Optional[Literal["yes", "no"]] = None
    sop: Optional[Literal["yes", "no"]] = None
    english_level: Optional[Literal["good", "ok", "low"]] = None
    age: Optional[int] = None
    student_types: Optional[Literal["kids", "teens", "adults", "all"]] = None

    def with_answer(self, field: str, value) -> "Answers":
        """Returns a copy with one more answer recorded."""
        return self.model_copy(update={field: value})


class Session(BaseModel):
    """Conversation progress for one identity."""
    model_config = ConfigDict(extra="ignore")

    step: ScreeningStep = ScreeningStep.first()
    answers: Answers = Field(default_factory=Answers)
    started_at: datetime = Field(default_factory=utcnow)
    last_activity_at: datetime = Field(default_factory=utcnow)
    completed: bool = False
    outcome: Optional[Outcome] = None
    reason: str = ""


class ResultPayload(BaseModel):
    """Terminal-state snapshot. Frozen once built."""
    model_config = ConfigDict(frozen=True)

    whatsapp_from: str
    result: Literal["pass", "fail"]
    reason: str = ""
    answers: Answers
    completed_at: datetime = Field(default_factory=utcnow)
