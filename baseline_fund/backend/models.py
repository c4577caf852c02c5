from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CustomBaseModel(BaseModel):
    """Base model; fields are snake_case in Python and camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class QuestionCategory(str, Enum):
    KNOWLEDGE = "knowledge"
    REASONING = "reasoning"
    AUTONOMY = "autonomy"

    def __str__(self):
        return self.value


class AnswerFlag(str, Enum):
    TOO_SHORT = "TOO_SHORT"
    TOO_LONG = "TOO_LONG"
    ADMITS_COERCION = "ADMITS_COERCION"

    def __str__(self):
        return self.value


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED_PASSED = "completed_passed"
    COMPLETED_FAILED = "completed_failed"

    def __str__(self):
        return self.value


# ----------- QUESTIONS -----------


class Question(CustomBaseModel):
    """Catalog entry. `template` may contain {project}, {project1}, {project2}."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: QuestionCategory
    template: str
    expected_keywords: Tuple[str, ...] = ()


class SessionQuestion(CustomBaseModel):
    """A catalog question expanded with project names for one session."""

    id: str
    category: QuestionCategory
    question: str


# ----------- SESSIONS -----------


class AnswerRecord(CustomBaseModel):
    question_id: str
    answer: str
    score: float
    flags: List[AnswerFlag] = Field(default_factory=list)


class FinalScore(CustomBaseModel):
    knowledge: float
    reasoning: float
    autonomy: float
    total: float
    passed: bool


class BaselineSession(CustomBaseModel):
    id: str
    agent_id: str
    projects: List[str]
    questions: List[SessionQuestion]
    answers: List[AnswerRecord] = Field(default_factory=list)
    current_question_index: int = 0
    start_time: datetime
    completed: bool = False
    final_score: Optional[FinalScore] = None

    @property
    def status(self) -> SessionStatus:
        if not self.completed or self.final_score is None:
            return SessionStatus.IN_PROGRESS
        if self.final_score.passed:
            return SessionStatus.COMPLETED_PASSED
        return SessionStatus.COMPLETED_FAILED

    @property
    def current_question(self) -> Optional[SessionQuestion]:
        if self.current_question_index >= len(self.questions):
            return None
        return self.questions[self.current_question_index]


# ----------- VOTES -----------


class Vote(CustomBaseModel):
    """One entry of an agent's ballot. rank 1 is the most preferred project."""

    agent_id: str
    project_id: str
    rank: int
    baseline_score: float
    session_id: str
    timestamp: datetime


class ProjectResult(CustomBaseModel):
    """Votes for one project aggregated across every agent's current ballot."""

    project_id: str
    vote_count: int
    avg_score: float
    avg_rank: float


class AllocationResult(CustomBaseModel):
    project_id: str
    allocation: float  # SOL amount
    vote_count: int
    avg_score: float
    avg_rank: float
    allocation_pct: float  # percentage of the pool


# ----------- OPERATION OUTCOMES -----------


class StartOutcome(CustomBaseModel):
    session_id: str
    question: str


class AnswerOutcome(CustomBaseModel):
    complete: bool
    question: Optional[str] = None
    score: Optional[FinalScore] = None


class CompleteOutcome(CustomBaseModel):
    passed: bool
    score: FinalScore
    votes_recorded: int
