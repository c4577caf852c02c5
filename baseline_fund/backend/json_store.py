import json
import os
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from baseline_fund.backend.abstract import AbstractBackend
from baseline_fund.backend.models import BaselineSession, Vote
from baseline_fund.lib.logger import configure_logger

logger = configure_logger(__name__)

SESSIONS_FILE = "sessions.json"
VOTES_FILE = "votes.json"


def _dump_sessions(sessions: Dict[str, BaselineSession]) -> Dict[str, Any]:
    return {
        session_id: session.model_dump(mode="json", by_alias=True)
        for session_id, session in sessions.items()
    }


def _dump_ballots(ballots: Dict[str, List[Vote]]) -> Dict[str, Any]:
    return {
        agent_id: [vote.model_dump(mode="json", by_alias=True) for vote in votes]
        for agent_id, votes in ballots.items()
    }


def _load_sessions(data: Dict[str, Any]) -> Dict[str, BaselineSession]:
    """Validate stored sessions, skipping records that no longer match the model."""
    sessions = {}
    for session_id, raw in data.items():
        try:
            sessions[session_id] = BaselineSession.model_validate(raw)
        except ValidationError as e:
            logger.error(
                f"Skipping invalid stored session: {str(e)}",
                extra={"session_id": session_id},
                exc_info=True,
            )
    return sessions


def _load_ballots(data: Dict[str, Any]) -> Dict[str, List[Vote]]:
    """Validate stored ballots. A ballot with any invalid vote is skipped whole."""
    ballots = {}
    for agent_id, votes in data.items():
        if not isinstance(votes, list):
            logger.error(
                "Skipping stored ballot: expected a list of votes",
                extra={"agent_id": agent_id},
            )
            continue
        try:
            ballots[agent_id] = [Vote.model_validate(raw) for raw in votes]
        except ValidationError as e:
            logger.error(
                f"Skipping invalid stored ballot: {str(e)}",
                extra={"agent_id": agent_id},
                exc_info=True,
            )
    return ballots


class JsonFileBackend(AbstractBackend):
    """Stores sessions and ballots as one JSON object per file in `data_dir`."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        self.sessions_path = self.data_dir / SESSIONS_FILE
        self.votes_path = self.data_dir / VOTES_FILE

    def _read(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(
                f"Failed to load {path.name}: {str(e)}",
                extra={"path": str(path)},
                exc_info=True,
            )
            return {}
        if not isinstance(data, dict):
            logger.error(f"Ignoring {path.name}: expected a JSON object")
            return {}
        return data

    def _write(self, path: Path, data: Dict[str, Any]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)

    def load_sessions(self) -> Dict[str, BaselineSession]:
        return _load_sessions(self._read(self.sessions_path))

    def save_sessions(self, sessions: Dict[str, BaselineSession]) -> None:
        self._write(self.sessions_path, _dump_sessions(sessions))

    def load_ballots(self) -> Dict[str, List[Vote]]:
        return _load_ballots(self._read(self.votes_path))

    def save_ballots(self, ballots: Dict[str, List[Vote]]) -> None:
        self._write(self.votes_path, _dump_ballots(ballots))


class MemoryBackend(AbstractBackend):
    """Keeps serialized snapshots in memory so loads never alias live objects."""

    def __init__(self):
        self._sessions: Dict[str, Any] = {}
        self._ballots: Dict[str, Any] = {}

    def load_sessions(self) -> Dict[str, BaselineSession]:
        return _load_sessions(self._sessions)

    def save_sessions(self, sessions: Dict[str, BaselineSession]) -> None:
        self._sessions = _dump_sessions(sessions)

    def load_ballots(self) -> Dict[str, List[Vote]]:
        return _load_ballots(self._ballots)

    def save_ballots(self, ballots: Dict[str, List[Vote]]) -> None:
        self._ballots = _dump_ballots(ballots)
