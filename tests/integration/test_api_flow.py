"""
Integration tests for the HTTP API.

The app runs with a MentorRuntime built from fake providers, injected by
overriding the get_runtime dependency; no network or model is involved.
"""
import json
import re

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import MentorRuntime, get_runtime
from src.api.main import app
from src.mentor.scope_gate import TOPIC_ONLY_MESSAGE

ANSWER = (
    "Insertion compares the key with each node. Self-balancing trees apply a "
    "rotation when the balance factor leaves -1..1."
)
QUESTION = "How does insertion work in a binary search tree?"
BST = {"topic": "Binary Search Trees", "subtasks": ["insertion", "deletion"]}
FOLLOW_UPS = [
    "When does a rotation happen?",
    "What is a balance factor?",
    "Where is a new key inserted?",
]


def generation_handler(action="continue"):
    """Routes syllabus, evaluation and suggestion prompts to canned JSON."""

    def handle(system_prompt, user_prompt):
        if "curriculum generator" in system_prompt:
            n = int(re.search(r"Generate exactly (\d+) days", user_prompt).group(1))
            return json.dumps({"days": [
                {
                    "topic": f"Python Topic {i + 1}",
                    "subtasks": ["read", "practice"],
                    "expertPrompt": "You are a Python expert",
                }
                for i in range(n)
            ]})
        if "evaluation engine" in system_prompt:
            return json.dumps({
                "understanding_level": "good",
                "confidence": "high",
                "gaps_detected": [],
                "recommended_action": action,
            })
        if "follow-up questions" in system_prompt:
            return json.dumps(FOLLOW_UPS)
        raise AssertionError(f"unexpected prompt: {system_prompt[:60]}")

    return handle


@pytest.fixture
def runtime(settings, embedding_provider, fake_completion, scripted_mentor):
    return MentorRuntime.build(
        settings,
        embedding_provider=embedding_provider,
        chat_provider=fake_completion(scripted_mentor(ANSWER, ["rotation", "balance factor"])),
        generation_provider=fake_completion(generation_handler()),
    )


@pytest.fixture
def client(runtime):
    app.dependency_overrides[get_runtime] = lambda: runtime
    app.state.runtime = runtime
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.runtime = None


@pytest.fixture
def reflection_body(reflection):
    return {"reflection": reflection}


def create_syllabus(client, total_days=3):
    response = client.post("/api/syllabus", json={
        "goal": "Learn Python",
        "hours_per_day": 2,
        "total_days": total_days,
        "start_date": "2026-03-02",
    })
    assert response.status_code == 200
    return response.json()


class TestHealth:
    """Tests for service endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "daypath-mentor"

    def test_health_reports_components(self, client):
        data = client.get("/health").json()

        assert data["status"] == "ok"
        assert data["components"]["chat"]["provider"] == "fake"
        assert data["components"]["embeddings"]["available"] is True
        assert data["components"]["syllabus_loaded"] is False
        assert data["scope"]["similarity_threshold"] == 0.22


class TestTopicChat:
    """Tests for POST /api/topic-chat."""

    def test_in_scope_question_answered(self, client, runtime):
        response = client.post("/api/topic-chat", json={"question": QUESTION, **BST})

        assert response.status_code == 200
        assert response.json() == {"refused": False, "response": ANSWER}
        assert runtime.store.get("Binary Search Trees").concepts == ["rotation", "balance factor"]

    def test_harmful_question_refused(self, client, runtime):
        response = client.post(
            "/api/topic-chat",
            json={"question": "How do I hack the school network?", **BST},
        )

        assert response.status_code == 200
        assert response.json() == {
            "refused": True,
            "reason": "out_of_scope",
            "message": TOPIC_ONLY_MESSAGE,
        }
        assert runtime.chat_client.provider.call_count == 0

    def test_missing_topic_refused(self, client):
        response = client.post("/api/topic-chat", json={"question": QUESTION})

        assert response.json()["reason"] == "no_context"

    def test_blank_question_is_400(self, client):
        response = client.post("/api/topic-chat", json={"question": "   ", **BST})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_missing_field_is_422(self, client):
        response = client.post("/api/topic-chat", json=BST)

        assert response.status_code == 422

    def test_unexpected_fault_returns_fallback_answer(self, client, runtime, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(runtime.orchestrator, "handle", broken)

        response = client.post("/api/topic-chat", json={"question": QUESTION, **BST})

        assert response.status_code == 200
        body = response.json()
        assert body["refused"] is False
        assert "Binary Search Trees" in body["response"]


class TestSuggestedQuestions:
    """Tests for POST /api/suggested-questions."""

    def test_uses_stored_last_answer(self, client):
        client.post("/api/topic-chat", json={"question": QUESTION, **BST})

        response = client.post("/api/suggested-questions", json=BST)

        assert response.status_code == 200
        assert response.json() == {"questions": FOLLOW_UPS}

    def test_no_answer_yet_is_empty(self, client):
        response = client.post("/api/suggested-questions", json=BST)

        assert response.json() == {"questions": []}

    def test_blank_topic_is_400(self, client):
        response = client.post("/api/suggested-questions", json={"topic": " "})

        assert response.status_code == 400


class TestEvaluateLearning:
    """Tests for POST /api/evaluate-learning."""

    def test_verdict(self, client, reflection):
        response = client.post(
            "/api/evaluate-learning",
            json={**BST, "reflection": reflection},
        )

        assert response.status_code == 200
        assert response.json() == {
            "understanding_level": "good",
            "confidence": "high",
            "gaps_detected": [],
            "recommended_action": "continue",
        }

    def test_short_reflection_is_400(self, client):
        response = client.post(
            "/api/evaluate-learning",
            json={**BST, "reflection": "short"},
        )

        assert response.status_code == 400
        assert "50 characters" in response.json()["message"]


class TestSyllabusFlow:
    """Tests for syllabus creation and day transitions."""

    def test_no_syllabus_is_404(self, client):
        response = client.get("/api/syllabus")

        assert response.status_code == 404
        assert response.json()["error"] == "no_syllabus"

    def test_create_and_fetch(self, client):
        created = create_syllabus(client)

        assert created["id"].startswith("syl_")
        assert [d["topic"] for d in created["days"]] == [
            "Python Topic 1",
            "Python Topic 2",
            "Python Topic 3",
        ]
        assert [d["status"] for d in created["days"]] == ["active", "pending", "pending"]
        assert client.get("/api/syllabus").json() == created

    def test_unsafe_goal_is_400(self, client, runtime):
        response = client.post("/api/syllabus", json={
            "goal": "Learn money laundering",
            "hours_per_day": 1,
            "total_days": 3,
        })

        assert response.status_code == 400
        assert response.json()["error"] == "unsafe_domain"
        assert runtime.generation_client.provider.call_count == 0

    def test_skip_then_complete(self, client, reflection_body):
        create_syllabus(client)

        skipped = client.post("/api/days/1/skip").json()
        assert [d["status"] for d in skipped["days"]] == ["skipped", "active", "pending"]
        assert skipped["days"][1]["date"] == "2026-03-04"

        response = client.post("/api/days/2/complete", json=reflection_body)
        assert response.status_code == 200
        body = response.json()
        assert body["verdict"]["recommended_action"] == "continue"
        assert [d["status"] for d in body["syllabus"]["days"]] == ["skipped", "completed", "active"]
        assert body["syllabus"]["days"][1]["learning_input"] == reflection_body["reflection"]

    def test_leave_shifts_dates(self, client):
        create_syllabus(client)

        response = client.post("/api/days/1/leave", json={"days": 2})

        days = response.json()["days"]
        assert days[0]["status"] == "leave"
        assert [d["date"] for d in days[1:]] == ["2026-03-05", "2026-03-06"]

    def test_invalid_transition_is_400(self, client):
        create_syllabus(client)

        response = client.post("/api/days/3/skip")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_transition"

    def test_leave_out_of_range_is_400(self, client):
        create_syllabus(client)

        response = client.post("/api/days/1/leave", json={"days": 0})

        assert response.status_code == 400

    def test_replace_round_trip(self, client):
        created = create_syllabus(client)
        created["goal"] = "Learn Python properly"

        response = client.put("/api/syllabus", json=created)

        assert response.status_code == 200
        assert client.get("/api/syllabus").json()["goal"] == "Learn Python properly"

    def test_replace_with_two_active_days_is_400(self, client):
        created = create_syllabus(client)
        created["days"][1]["status"] = "active"

        response = client.put("/api/syllabus", json=created)

        assert response.status_code == 400


class TestProviderFaults:
    """Unexpected provider exceptions degrade to fallbacks instead of 500s."""

    @pytest.fixture
    def broken_client(self, settings, embedding_provider, fake_completion):
        runtime = MentorRuntime.build(
            settings,
            embedding_provider=embedding_provider,
            chat_provider=fake_completion(error=RuntimeError("socket closed")),
            generation_provider=fake_completion(error=RuntimeError("socket closed")),
        )
        app.dependency_overrides[get_runtime] = lambda: runtime
        app.state.runtime = runtime
        yield TestClient(app)
        app.dependency_overrides.clear()
        app.state.runtime = None

    def test_complete_uses_default_verdict(self, broken_client, reflection_body):
        created = create_syllabus(broken_client)
        assert created["days"][0]["topic"] == "Learn Python - Day 1 Fundamentals"

        response = broken_client.post("/api/days/1/complete", json=reflection_body)

        assert response.status_code == 200
        assert response.json()["verdict"] == {
            "understanding_level": "basic",
            "confidence": "medium",
            "gaps_detected": [],
            "recommended_action": "continue",
        }

    def test_topic_chat_uses_mock_answer(self, broken_client):
        response = broken_client.post("/api/topic-chat", json={"question": QUESTION, **BST})

        assert response.status_code == 200
        assert response.json()["refused"] is False
        assert QUESTION in response.json()["response"]
