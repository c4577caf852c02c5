from abc import ABC, abstractmethod
from typing import Dict, List

from baseline_fund.backend.models import BaselineSession, Vote


class AbstractBackend(ABC):
    """Wholesale load/save of the two keyed collections the service persists."""

    # ----------- SESSIONS -----------
    @abstractmethod
    def load_sessions(self) -> Dict[str, BaselineSession]:
        """Load every stored session keyed by session id."""
        pass

    @abstractmethod
    def save_sessions(self, sessions: Dict[str, BaselineSession]) -> None:
        """Replace the stored sessions with `sessions`."""
        pass

    # ----------- BALLOTS -----------
    @abstractmethod
    def load_ballots(self) -> Dict[str, List[Vote]]:
        """Load every stored ballot keyed by agent id."""
        pass

    @abstractmethod
    def save_ballots(self, ballots: Dict[str, List[Vote]]) -> None:
        """Replace the stored ballots with `ballots`."""
        pass
