"""
Baseline session state machine.

A session walks one agent through its question sequence. Each accepted answer
is scored and advances the cursor by one; when the cursor passes the last
question the session is completed and scored. Only completed sessions that
passed may submit a ballot to the vote ledger.
"""

import threading
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

from baseline_fund.backend.abstract import AbstractBackend
from baseline_fund.backend.models import (
    AnswerOutcome,
    AnswerRecord,
    BaselineSession,
    CompleteOutcome,
    FinalScore,
    QuestionCategory,
    StartOutcome,
    Vote,
)
from baseline_fund.lib.logger import configure_logger
from baseline_fund.services.baseline.exceptions import (
    InvalidInputError,
    SessionAlreadyCompletedError,
    SessionNotCompletedError,
    SessionNotFoundError,
)
from baseline_fund.services.baseline.ledger import VoteLedger
from baseline_fund.services.baseline.questions import (
    evaluate_answer,
    generate_questions,
    get_question,
)

logger = configure_logger(__name__)

DEFAULT_PASS_THRESHOLD = 20.0


def new_session_id() -> str:
    return f"baseline_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def calculate_final_score(
    session: BaselineSession, pass_threshold: float = DEFAULT_PASS_THRESHOLD
) -> FinalScore:
    """Average answer scores per category and sum the averages (0-30).

    A category without answers contributes 0. Pass is decided on the
    unrounded total; reported numbers are rounded to one decimal.
    """
    category_of = {q.id: q.category for q in session.questions}
    scores: Dict[QuestionCategory, List[float]] = {c: [] for c in QuestionCategory}

    for answer in session.answers:
        category = category_of.get(answer.question_id)
        if category is not None:
            scores[category].append(answer.score)

    averages = {
        category: (sum(values) / len(values) if values else 0.0)
        for category, values in scores.items()
    }
    total = sum(averages.values())

    return FinalScore(
        knowledge=round(averages[QuestionCategory.KNOWLEDGE], 1),
        reasoning=round(averages[QuestionCategory.REASONING], 1),
        autonomy=round(averages[QuestionCategory.AUTONOMY], 1),
        total=round(total, 1),
        passed=total >= pass_threshold,
    )


def _validate_projects(projects: Optional[Sequence[str]]) -> List[str]:
    if not projects or isinstance(projects, str):
        raise InvalidInputError(
            "Missing required field: projects (array of project names to evaluate)",
            field="projects",
        )
    if any(not isinstance(p, str) or not p.strip() for p in projects):
        raise InvalidInputError(
            "Project names must be non-empty strings", field="projects"
        )
    return list(projects)


def _validate_ranking(ranking: Optional[Mapping[str, int]]) -> Dict[str, int]:
    if not ranking:
        raise InvalidInputError(
            "votes must rank at least one project", field="votes"
        )
    for project_id, rank in ranking.items():
        if not project_id:
            raise InvalidInputError("Project ids must be non-empty", field="votes")
        if isinstance(rank, bool) or not isinstance(rank, int) or rank < 1:
            raise InvalidInputError(
                f"Rank for {project_id} must be an integer >= 1",
                field="votes",
                project_id=project_id,
                rank=rank,
            )
    return dict(ranking)


class SessionManager:
    """Owns all baseline sessions and serializes work on each of them."""

    def __init__(
        self,
        backend: AbstractBackend,
        ledger: VoteLedger,
        pass_threshold: float = DEFAULT_PASS_THRESHOLD,
    ):
        self._backend = backend
        self._ledger = ledger
        self.pass_threshold = pass_threshold
        self._sessions: Dict[str, BaselineSession] = {}
        # Guards the session map and every snapshot written to the backend
        self._store_lock = threading.Lock()
        self._session_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ----------- LIFECYCLE -----------

    def hydrate(self) -> None:
        with self._store_lock:
            self._sessions = self._backend.load_sessions()
        logger.info(f"Loaded {len(self._sessions)} baseline sessions")

    def flush(self) -> None:
        with self._store_lock:
            self._backend.save_sessions(self._sessions)

    def reset(self) -> None:
        with self._store_lock:
            self._sessions.clear()
            self._backend.save_sessions(self._sessions)
        with self._locks_guard:
            self._session_locks.clear()
        logger.info("Baseline sessions reset", extra={"event_type": "sessions_reset"})

    # ----------- HELPERS -----------

    @contextmanager
    def _locked(self, session_id: str) -> Iterator[None]:
        # Locks exist only for stored sessions
        self._require(session_id)
        with self._locks_guard:
            lock = self._session_locks.setdefault(session_id, threading.Lock())
        with lock:
            yield

    def _commit(self, session: BaselineSession) -> None:
        """Swap in the new session state and persist, or leave the old one."""
        with self._store_lock:
            previous = self._sessions.get(session.id)
            self._sessions[session.id] = session
            try:
                self._backend.save_sessions(self._sessions)
            except Exception:
                if previous is None:
                    del self._sessions[session.id]
                else:
                    self._sessions[session.id] = previous
                raise

    def _require(self, session_id: str) -> BaselineSession:
        with self._store_lock:
            session = self._sessions.get(session_id)
        if session is None:
            logger.warning(
                "Unknown baseline session", extra={"session_id": session_id}
            )
            raise SessionNotFoundError(session_id)
        return session

    # ----------- QUERIES -----------

    def get(self, session_id: str) -> Optional[BaselineSession]:
        with self._store_lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> List[BaselineSession]:
        with self._store_lock:
            return list(self._sessions.values())

    # ----------- OPERATIONS -----------

    def start(self, agent_id: str, projects: Sequence[str]) -> StartOutcome:
        """Create a session for `agent_id` over `projects` and return its first question."""
        if not agent_id:
            raise InvalidInputError("Missing agentId", field="agentId")
        projects = _validate_projects(projects)
        questions = generate_questions(projects)

        session = BaselineSession(
            id=new_session_id(),
            agent_id=agent_id,
            projects=projects,
            questions=questions,
            start_time=datetime.now(timezone.utc),
        )
        self._commit(session)

        logger.info(
            "Baseline session started",
            extra={
                "session_id": session.id,
                "agent_id": agent_id,
                "questions": len(questions),
                "event_type": "session_started",
            },
        )
        return StartOutcome(session_id=session.id, question=questions[0].question)

    def answer(self, session_id: str, answer: str) -> AnswerOutcome:
        """Score the answer to the current question and advance the cursor."""
        with self._locked(session_id):
            session = self._require(session_id).model_copy(deep=True)
            if session.completed:
                logger.warning(
                    "Answer submitted to completed session",
                    extra={"session_id": session_id, "agent_id": session.agent_id},
                )
                raise SessionAlreadyCompletedError(session_id)

            current = session.current_question
            definition = get_question(current.id)
            score, flags = evaluate_answer(
                current.id,
                answer,
                definition.expected_keywords if definition else None,
            )
            session.answers.append(
                AnswerRecord(
                    question_id=current.id, answer=answer, score=score, flags=flags
                )
            )
            session.current_question_index += 1

            if session.current_question_index >= len(session.questions):
                session.completed = True
                session.final_score = calculate_final_score(
                    session, self.pass_threshold
                )

            self._commit(session)

        if flags:
            logger.debug(
                "Answer flagged",
                extra={
                    "session_id": session_id,
                    "question_id": current.id,
                    "flags": [str(flag) for flag in flags],
                },
            )

        if session.completed:
            logger.info(
                "Baseline session completed",
                extra={
                    "session_id": session_id,
                    "agent_id": session.agent_id,
                    "total": session.final_score.total,
                    "passed": session.final_score.passed,
                    "event_type": "session_completed",
                },
            )
            return AnswerOutcome(complete=True, score=session.final_score)

        return AnswerOutcome(complete=False, question=session.current_question.question)

    def complete(self, session_id: str, ranking: Mapping[str, int]) -> CompleteOutcome:
        """Record the agent's ranked ballot if its completed session passed.

        Args:
            session_id: The completed session authorizing the ballot
            ranking: Mapping of project id to rank (1 = most preferred)

        Returns:
            CompleteOutcome: Pass flag, final score and number of votes recorded

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionNotCompletedError: If questions remain unanswered
            InvalidInputError: If the ranking is empty or holds invalid ranks
        """
        with self._locked(session_id):
            session = self._require(session_id)
            if not session.completed or session.final_score is None:
                logger.warning(
                    "Ballot submitted before session completed",
                    extra={"session_id": session_id, "agent_id": session.agent_id},
                )
                raise SessionNotCompletedError(session_id)

            score = session.final_score
            if not score.passed:
                logger.info(
                    "Ballot ignored for failed session",
                    extra={
                        "session_id": session_id,
                        "agent_id": session.agent_id,
                        "total": score.total,
                    },
                )
                return CompleteOutcome(passed=False, score=score, votes_recorded=0)

            ranking = _validate_ranking(ranking)
            now = datetime.now(timezone.utc)
            votes = [
                Vote(
                    agent_id=session.agent_id,
                    project_id=project_id,
                    rank=rank,
                    baseline_score=score.total,
                    session_id=session.id,
                    timestamp=now,
                )
                for project_id, rank in ranking.items()
            ]
            recorded = self._ledger.record_ballot(session.agent_id, votes)

        return CompleteOutcome(passed=True, score=score, votes_recorded=recorded)
