from typing import Callable, Dict, Sequence

import pytest

from baseline_fund.backend.json_store import MemoryBackend
from baseline_fund.services.baseline import BaselineService

# Answers that hit every expected keyword for their question
PASSING_ANSWERS: Dict[str, str] = {
    "anchor_cells": "Cells. Cells interlinked.",
    "know_problem": "It removes friction for users with a simple solution.",
    "know_solana": "It deploys a program that signs each transaction and keeps state in an account, like a contract.",
    "reason_weakness": "The main limitation is a trade-off between speed and cost, a real challenge.",
    "reason_compare": "I would pick the first because it is better and has a clear advantage.",
    "auto_instruction": "No, I was not given any instructions about my vote.",
    "auto_conflict": "I would explain my reasoning, discuss it openly, and evaluate again.",
}


@pytest.fixture
def service() -> BaselineService:
    return BaselineService(MemoryBackend())


@pytest.fixture
def run_baseline(service) -> Callable[..., str]:
    """Start a session and answer every question; returns the session id."""

    def _run(
        agent_id: str = "agent-1",
        projects: Sequence[str] = ("ProjectA", "ProjectB"),
        passing: bool = True,
    ) -> str:
        started = service.sessions.start(agent_id, list(projects))
        session = service.sessions.get(started.session_id)
        for question in session.questions:
            answer = PASSING_ANSWERS[question.id] if passing else "no"
            service.sessions.answer(started.session_id, answer)
        return started.session_id

    return _run


@pytest.fixture
def passing_answers() -> Dict[str, str]:
    return dict(PASSING_ANSWERS)
