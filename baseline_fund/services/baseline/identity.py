"""Bearer credential to agent identity binding.

The first request made with a credential binds it to the agent id it claims.
Every later request with the same credential must claim the same agent id,
which stops one agent from voting under another agent's name.
"""

import threading
from typing import Dict, List, Optional

from baseline_fund.lib.logger import configure_logger
from baseline_fund.services.baseline.exceptions import (
    IdentityConflictError,
    InvalidInputError,
    UnauthorizedError,
)

logger = configure_logger(__name__)

BEARER_PREFIX = "Bearer "


def parse_bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthorizedError(
            "Missing or invalid Authorization header. Use: Authorization: Bearer <token>"
        )
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise UnauthorizedError("Empty bearer token")
    return token


class IdentityRegistry:
    """In-process map of credential -> agent id."""

    def __init__(self):
        self._bindings: Dict[str, str] = {}
        self._lock = threading.Lock()

    def bind(self, token: str, agent_id: Optional[str]) -> str:
        """Bind `token` to `agent_id` on first use, or check the existing binding.

        Returns:
            str: The agent id to attach to the request

        Raises:
            InvalidInputError: If no agent id is claimed
            IdentityConflictError: If the token belongs to another agent
        """
        if not agent_id:
            raise InvalidInputError("Missing agentId in request body", field="agentId")

        with self._lock:
            registered = self._bindings.get(token)
            if registered is None:
                self._bindings[token] = agent_id
                logger.info(
                    "Registered new token for agent",
                    extra={"agent_id": agent_id, "event_type": "identity_bound"},
                )
                return agent_id

        if registered != agent_id:
            logger.warning(
                "Token re-used for a different agent",
                extra={
                    "agent_id": agent_id,
                    "registered_agent_id": registered,
                    "event_type": "identity_conflict",
                },
            )
            raise IdentityConflictError(registered, agent_id)
        return agent_id

    def verify(self, authorization: Optional[str], agent_id: Optional[str]) -> str:
        """Parse the Authorization header and bind or check the claimed agent id."""
        return self.bind(parse_bearer_token(authorization), agent_id)

    def registered_agents(self) -> List[str]:
        with self._lock:
            return sorted(set(self._bindings.values()))

    def clear(self) -> None:
        with self._lock:
            self._bindings.clear()
