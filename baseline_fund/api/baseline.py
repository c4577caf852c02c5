from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from baseline_fund.api.dependencies import get_baseline_service, verify_agent
from baseline_fund.config import config
from baseline_fund.lib.logger import configure_logger
from baseline_fund.services.baseline import BaselineService
from baseline_fund.services.baseline.allocator import validate_allocations
from baseline_fund.services.baseline.exceptions import BaselineError

# Configure logger
logger = configure_logger(__name__)

# Create the routers
router = APIRouter(prefix="/baseline")
dashboard_router = APIRouter()


class StartRequest(BaseModel):
    """Body of POST /baseline/start. agentId is consumed by verify_agent."""

    model_config = ConfigDict(populate_by_name=True)

    agent_id: Optional[Any] = Field(None, alias="agentId")
    projects: Optional[List[Any]] = Field(
        None, description="Project names to evaluate; the first is the main project"
    )


class AnswerRequest(BaseModel):
    """Body of POST /baseline/answer. Field types are checked by the handler."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[Any] = Field(None, alias="sessionId")
    answer: Optional[Any] = None


class CompleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[Any] = Field(None, alias="sessionId")
    votes: Optional[Any] = Field(
        None, description="Mapping of project id to rank (1 = best)"
    )


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _http_error(e: BaselineError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"{action} failed", extra={"error": str(e)}, exc_info=e)
    return HTTPException(status_code=500, detail=f"{action} failed: {str(e)}")


@router.post("/start")
async def start_baseline(
    body: StartRequest,
    agent_id: str = Depends(verify_agent),
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Start a baseline test session and return its first question."""
    try:
        outcome = service.sessions.start(agent_id, body.projects)
        return outcome.model_dump(by_alias=True)
    except BaselineError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected("Starting baseline session", e)


@router.post("/answer")
async def answer_baseline(
    body: AnswerRequest,
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Submit an answer and get the next question, or the final score."""
    if not _non_empty_str(body.session_id) or not _non_empty_str(body.answer):
        raise HTTPException(
            status_code=400, detail="Missing required fields: sessionId, answer"
        )

    try:
        outcome = service.sessions.answer(body.session_id, body.answer)
        return outcome.model_dump(by_alias=True, exclude_none=True)
    except BaselineError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected("Answering baseline question", e)


@router.post("/complete")
async def complete_baseline(
    body: CompleteRequest,
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Submit the ranked ballot for a completed session."""
    if not _non_empty_str(body.session_id) or not isinstance(body.votes, dict):
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: sessionId, votes (object of projectId to rank)",
        )

    try:
        outcome = service.sessions.complete(body.session_id, body.votes)
        return outcome.model_dump(by_alias=True)
    except BaselineError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected("Completing baseline session", e)


@router.get("/results")
async def get_results(
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Aggregated vote results across every agent's current ballot."""
    results = service.results()
    return {"results": [r.model_dump(by_alias=True) for r in results]}


@router.get("/allocations")
async def get_allocations(
    pool: float = Query(..., gt=0, description="SOL to allocate"),
    min_votes: int = Query(1, ge=1, alias="minVotes"),
    top_n: Optional[int] = Query(None, ge=1, alias="topN"),
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Allocate `pool` across projects from the current ballots."""
    try:
        allocations = service.allocations(pool, min_votes=min_votes, top_n=top_n)
    except BaselineError as e:
        raise _http_error(e)

    return {
        "poolAmount": pool,
        "allocations": [a.model_dump(by_alias=True) for a in allocations],
        "totalAllocated": round(sum(a.allocation for a in allocations), 4),
        "fullyAllocated": validate_allocations(allocations, pool),
    }


@router.get("/sessions")
async def get_sessions(
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Every baseline session, for transparency."""
    return {
        "sessions": [
            s.model_dump(mode="json", by_alias=True)
            for s in service.sessions.list_sessions()
        ]
    }


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    session = service.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session": session.model_dump(mode="json", by_alias=True)}


@router.get("/agents")
async def get_registered_agents(
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Agent ids that have bound a token so far."""
    return {"agents": service.identity.registered_agents()}


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@dashboard_router.get("/dashboard")
async def get_dashboard(
    service: BaselineService = Depends(get_baseline_service),
) -> Dict[str, Any]:
    """Top projects, allocation preview for the configured pool, and stats."""
    try:
        data = service.dashboard(
            config.allocation.pool_amount,
            top_n=config.allocation.top_n,
            min_votes=config.allocation.min_votes,
        )
    except BaselineError as e:
        raise _http_error(e)

    data["topProjects"] = [r.model_dump(by_alias=True) for r in data["topProjects"]]
    data["allocations"] = [a.model_dump(by_alias=True) for a in data["allocations"]]
    return data
