from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from baseline_fund.lib.logger import configure_logger
from baseline_fund.services.baseline import BaselineService
from baseline_fund.services.baseline.exceptions import BaselineError

# Configure logger
logger = configure_logger(__name__)


def get_baseline_service(request: Request) -> BaselineService:
    """Return the service instance the application was started with."""
    service = getattr(request.app.state, "baseline_service", None)
    if service is None:
        logger.error("Baseline service is not configured on the application")
        raise HTTPException(status_code=503, detail="Baseline service unavailable")
    return service


async def _claimed_agent_id(request: Request) -> Optional[str]:
    try:
        body = await request.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    agent_id = body.get("agentId")
    if isinstance(agent_id, bool) or agent_id is None:
        return None
    if isinstance(agent_id, (int, str)):
        return str(agent_id).strip() or None
    return None


async def verify_agent(
    request: Request,
    authorization: Optional[str] = Header(None),
    service: BaselineService = Depends(get_baseline_service),
) -> str:
    """
    Bind the bearer token to the agentId claimed in the request body.

    The first request made with a token registers it to that agent; later
    requests must claim the same agent.

    Args:
        request: The incoming request, whose JSON body carries agentId
        authorization: The Authorization header value ("Bearer <token>")
        service: The running baseline service

    Returns:
        str: The verified agent id

    Raises:
        HTTPException: 401 for a missing or malformed token, 400 for a missing
            agentId, 403 when the token is bound to another agent
    """
    agent_id = await _claimed_agent_id(request)

    try:
        return service.identity.verify(authorization, agent_id)
    except BaselineError as e:
        logger.error(f"Agent verification failed: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=str(e))
