from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from baseline_fund.backend.abstract import AbstractBackend
from baseline_fund.backend.models import AllocationResult, ProjectResult
from baseline_fund.lib.logger import configure_logger
from baseline_fund.services.baseline.allocator import calculate_allocations
from baseline_fund.services.baseline.exceptions import DivisionUndefinedError
from baseline_fund.services.baseline.identity import IdentityRegistry
from baseline_fund.services.baseline.ledger import VoteLedger
from baseline_fund.services.baseline.sessions import (
    DEFAULT_PASS_THRESHOLD,
    SessionManager,
)

logger = configure_logger(__name__)

DASHBOARD_TOP_PROJECTS = 10


class BaselineService:
    """Holds the identity registry, session manager and vote ledger.

    Built once per process, hydrated from the backend at startup and flushed
    at shutdown.
    """

    def __init__(
        self,
        backend: AbstractBackend,
        pass_threshold: float = DEFAULT_PASS_THRESHOLD,
    ):
        self.backend = backend
        self.identity = IdentityRegistry()
        self.ledger = VoteLedger(backend)
        self.sessions = SessionManager(backend, self.ledger, pass_threshold)

    def hydrate(self) -> None:
        self.sessions.hydrate()
        self.ledger.hydrate()

    def flush(self) -> None:
        self.sessions.flush()
        self.ledger.flush()
        logger.info("Baseline state flushed")

    def reset(self) -> None:
        """Drop every session and ballot. Maintenance and tests only."""
        self.sessions.reset()
        self.ledger.reset()

    def results(self) -> List[ProjectResult]:
        return self.ledger.all_results()

    def allocations(
        self,
        pool_amount: float,
        min_votes: int = 1,
        top_n: Optional[int] = None,
    ) -> List[AllocationResult]:
        return calculate_allocations(
            self.results(), pool_amount, min_votes=min_votes, top_n=top_n
        )

    def dashboard(
        self,
        pool_amount: float,
        top_n: Optional[int] = None,
        min_votes: int = 1,
    ) -> Dict[str, Any]:
        """Top projects, an allocation preview and participation stats."""
        results = self.results()
        sessions = self.sessions.list_sessions()

        try:
            allocations = calculate_allocations(
                results, pool_amount, min_votes=min_votes, top_n=top_n
            )
        except DivisionUndefinedError as e:
            logger.warning(f"No allocation possible: {str(e)}")
            allocations = []

        completed = [s for s in sessions if s.completed]
        passed = [s for s in completed if s.final_score and s.final_score.passed]

        return {
            "topProjects": results[:DASHBOARD_TOP_PROJECTS],
            "allocations": allocations,
            "stats": {
                "totalSessions": len(sessions),
                "completedSessions": len(completed),
                "passedSessions": len(passed),
                "passRate": (
                    round(len(passed) / len(completed) * 100) if completed else 0
                ),
                "totalVotes": sum(r.vote_count for r in results),
                "uniqueProjects": len(results),
                "poolAmount": pool_amount,
            },
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }
