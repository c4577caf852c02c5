import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from baseline_fund.api.baseline import dashboard_router, router
from baseline_fund.api.dependencies import get_baseline_service


@pytest.fixture
def client(service):
    app = FastAPI()
    app.include_router(router)
    app.include_router(dashboard_router)
    app.dependency_overrides[get_baseline_service] = lambda: service
    return TestClient(app)


def _auth(token: str = "token-1"):
    return {"Authorization": f"Bearer {token}"}


def _start(client, agent_id="agent-1", projects=("ProjectA", "ProjectB"), token="token-1"):
    return client.post(
        "/baseline/start",
        json={"agentId": agent_id, "projects": list(projects)},
        headers=_auth(token),
    )


def _finish(client, session_id, answers):
    session = client.get(f"/baseline/sessions/{session_id}").json()["session"]
    response = None
    for question in session["questions"]:
        response = client.post(
            "/baseline/answer",
            json={"sessionId": session_id, "answer": answers[question["id"]]},
        )
        assert response.status_code == 200
    return response.json()


def test_start_returns_first_question(client):
    response = _start(client)

    assert response.status_code == 200
    data = response.json()
    assert data["sessionId"].startswith("baseline_")
    assert data["question"] == 'Repeat after me: "Cells."'


def test_start_requires_bearer_token(client):
    response = client.post(
        "/baseline/start", json={"agentId": "agent-1", "projects": ["ProjectA"]}
    )
    assert response.status_code == 401


def test_start_requires_agent_id(client):
    response = client.post(
        "/baseline/start", json={"projects": ["ProjectA"]}, headers=_auth()
    )
    assert response.status_code == 400


@pytest.mark.parametrize("projects", [None, []])
def test_start_requires_projects(client, projects):
    response = client.post(
        "/baseline/start",
        json={"agentId": "agent-1", "projects": projects},
        headers=_auth(),
    )
    assert response.status_code == 400
    assert "projects" in response.json()["detail"]


def test_token_bound_to_first_agent(client):
    assert _start(client, agent_id="agent-1").status_code == 200

    response = _start(client, agent_id="agent-2")

    assert response.status_code == 403
    assert 'registered to agent "agent-1"' in response.json()["detail"]
    assert client.get("/baseline/agents").json() == {"agents": ["agent-1"]}


def test_numeric_agent_id_is_accepted(client, service):
    response = _start(client, agent_id=42)

    assert response.status_code == 200
    assert service.sessions.get(response.json()["sessionId"]).agent_id == "42"


def test_answer_validation(client):
    session_id = _start(client).json()["sessionId"]

    assert client.post("/baseline/answer", json={"sessionId": session_id}).status_code == 400
    assert (
        client.post("/baseline/answer", json={"sessionId": session_id, "answer": ""}).status_code
        == 400
    )
    assert client.post("/baseline/answer", json={"answer": "hello there"}).status_code == 400


def test_answer_unknown_session(client):
    response = client.post(
        "/baseline/answer", json={"sessionId": "missing", "answer": "hello there"}
    )
    assert response.status_code == 404
    assert response.json()["detail"].startswith("Session not found")


def test_answer_returns_next_question(client):
    session_id = _start(client).json()["sessionId"]

    response = client.post(
        "/baseline/answer", json={"sessionId": session_id, "answer": "Cells. Cells."}
    )

    assert response.status_code == 200
    assert response.json() == {
        "complete": False,
        "question": "What specific problem does ProjectA solve?",
    }


def test_full_flow(client, passing_answers):
    session_id = _start(client).json()["sessionId"]

    final = _finish(client, session_id, passing_answers)
    assert final["complete"] is True
    assert final["score"]["total"] == 28.3
    assert final["score"]["passed"] is True

    again = client.post(
        "/baseline/answer", json={"sessionId": session_id, "answer": "one more answer"}
    )
    assert again.status_code == 409

    response = client.post(
        "/baseline/complete",
        json={"sessionId": session_id, "votes": {"ProjectA": 1, "ProjectB": 2}},
    )
    assert response.status_code == 200
    assert response.json() == {
        "passed": True,
        "score": final["score"],
        "votesRecorded": 2,
    }

    results = client.get("/baseline/results").json()["results"]
    assert results == [
        {"projectId": "ProjectA", "voteCount": 1, "avgScore": 28.3, "avgRank": 1.0},
        {"projectId": "ProjectB", "voteCount": 1, "avgScore": 28.3, "avgRank": 2.0},
    ]


def test_complete_before_finishing(client):
    session_id = _start(client).json()["sessionId"]

    response = client.post(
        "/baseline/complete", json={"sessionId": session_id, "votes": {"ProjectA": 1}}
    )

    assert response.status_code == 409
    assert response.json()["detail"].startswith("Session not completed")


def test_complete_requires_votes(client):
    session_id = _start(client).json()["sessionId"]
    response = client.post("/baseline/complete", json={"sessionId": session_id})
    assert response.status_code == 400


def test_complete_rejects_bad_ranks(client, passing_answers):
    session_id = _start(client).json()["sessionId"]
    _finish(client, session_id, passing_answers)

    response = client.post(
        "/baseline/complete", json={"sessionId": session_id, "votes": {"ProjectA": 0}}
    )
    assert response.status_code == 400


def test_failed_session_records_no_votes(client):
    session_id = _start(client).json()["sessionId"]
    answers = {
        q["id"]: "no"
        for q in client.get(f"/baseline/sessions/{session_id}").json()["session"]["questions"]
    }
    final = _finish(client, session_id, answers)
    assert final["score"]["passed"] is False

    response = client.post(
        "/baseline/complete", json={"sessionId": session_id, "votes": {"ProjectA": 1}}
    )
    assert response.status_code == 200
    assert response.json()["passed"] is False
    assert response.json()["votesRecorded"] == 0
    assert client.get("/baseline/results").json() == {"results": []}


def test_sessions_listing(client):
    session_id = _start(client).json()["sessionId"]

    sessions = client.get("/baseline/sessions").json()["sessions"]
    assert [s["id"] for s in sessions] == [session_id]
    assert sessions[0]["agentId"] == "agent-1"
    assert sessions[0]["currentQuestionIndex"] == 0

    assert client.get("/baseline/sessions/missing").status_code == 404


def test_allocations_endpoint(client, service, run_baseline):
    service.sessions.complete(run_baseline("agent-1"), {"ProjectA": 1, "ProjectB": 2})

    response = client.get("/baseline/allocations", params={"pool": 3})

    assert response.status_code == 200
    data = response.json()
    assert data["poolAmount"] == 3
    assert [a["projectId"] for a in data["allocations"]] == ["ProjectA", "ProjectB"]
    assert data["allocations"][0]["allocation"] == 2
    assert data["totalAllocated"] == 3
    assert data["fullyAllocated"] is True


def test_allocations_with_top_n(client, service, run_baseline):
    service.sessions.complete(run_baseline("agent-1"), {"ProjectA": 1, "ProjectB": 2})

    data = client.get("/baseline/allocations", params={"pool": 3, "topN": 1}).json()

    assert [a["projectId"] for a in data["allocations"]] == ["ProjectA"]
    assert data["fullyAllocated"] is False


def test_allocations_requires_positive_pool(client):
    assert client.get("/baseline/allocations", params={"pool": 0}).status_code == 422
    assert client.get("/baseline/allocations").status_code == 422


def test_dashboard(client, service, run_baseline):
    service.sessions.complete(run_baseline("agent-1"), {"ProjectA": 1})

    data = client.get("/dashboard").json()

    assert data["topProjects"][0]["projectId"] == "ProjectA"
    assert data["allocations"][0]["allocationPct"] == 100
    assert data["stats"]["passRate"] == 100
    assert data["stats"]["totalVotes"] == 1


def test_health(client):
    data = client.get("/baseline/health").json()
    assert data["status"] == "ok"
    assert "timestamp" in data


@pytest.mark.parametrize(
    "body",
    [
        {"sessionId": 12, "answer": "hello there"},
        {"sessionId": "s", "answer": 42},
        {"sessionId": "s", "answer": ["hello"]},
    ],
)
def test_answer_rejects_non_string_fields(client, body):
    assert client.post("/baseline/answer", json=body).status_code == 400


@pytest.mark.parametrize(
    "body",
    [
        {"sessionId": 12, "votes": {"ProjectA": 1}},
        {"sessionId": "s", "votes": ["ProjectA"]},
        {"sessionId": "s", "votes": "ProjectA"},
    ],
)
def test_complete_rejects_malformed_fields(client, body):
    response = client.post("/baseline/complete", json=body)
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Missing required fields")
