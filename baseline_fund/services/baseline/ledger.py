import threading
from collections import defaultdict
from typing import Dict, List, Optional

from baseline_fund.backend.abstract import AbstractBackend
from baseline_fund.backend.models import ProjectResult, Vote
from baseline_fund.lib.logger import configure_logger

logger = configure_logger(__name__)


class VoteLedger:
    """One active ballot per agent; a new ballot replaces the previous one."""

    def __init__(self, backend: AbstractBackend):
        self._backend = backend
        self._ballots: Dict[str, List[Vote]] = {}
        self._lock = threading.Lock()

    def hydrate(self) -> None:
        with self._lock:
            self._ballots = self._backend.load_ballots()
        logger.info(f"Loaded {len(self._ballots)} agent ballots")

    def flush(self) -> None:
        with self._lock:
            self._backend.save_ballots(self._ballots)

    def record_ballot(self, agent_id: str, votes: List[Vote]) -> int:
        """Replace the agent's ballot with `votes` and persist.

        Returns:
            int: Number of votes in the new ballot
        """
        with self._lock:
            previous = self._ballots.get(agent_id)
            self._ballots[agent_id] = list(votes)
            try:
                self._backend.save_ballots(self._ballots)
            except Exception:
                if previous is None:
                    del self._ballots[agent_id]
                else:
                    self._ballots[agent_id] = previous
                raise

        logger.info(
            "Ballot recorded",
            extra={
                "agent_id": agent_id,
                "votes": len(votes),
                "replaced": previous is not None,
                "event_type": "ballot_recorded",
            },
        )
        return len(votes)

    def get_ballot(self, agent_id: str) -> Optional[List[Vote]]:
        with self._lock:
            ballot = self._ballots.get(agent_id)
            return list(ballot) if ballot is not None else None

    def all_results(self) -> List[ProjectResult]:
        """Aggregate every agent's current ballot by project.

        Sorted by vote count (highest first), ties broken by average rank
        (lowest first).
        """
        counts: Dict[str, int] = defaultdict(int)
        total_scores: Dict[str, float] = defaultdict(float)
        total_ranks: Dict[str, int] = defaultdict(int)

        with self._lock:
            for votes in self._ballots.values():
                for vote in votes:
                    counts[vote.project_id] += 1
                    total_scores[vote.project_id] += vote.baseline_score
                    total_ranks[vote.project_id] += vote.rank

        results = [
            ProjectResult(
                project_id=project_id,
                vote_count=count,
                avg_score=round(total_scores[project_id] / count, 1),
                avg_rank=round(total_ranks[project_id] / count, 1),
            )
            for project_id, count in counts.items()
        ]
        results.sort(key=lambda r: (-r.vote_count, r.avg_rank))
        return results

    def reset(self) -> None:
        with self._lock:
            self._ballots.clear()
            self._backend.save_ballots(self._ballots)
        logger.info("Vote ledger reset", extra={"event_type": "ledger_reset"})

    def __len__(self) -> int:
        with self._lock:
            return len(self._ballots)
