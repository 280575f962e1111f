"""HTTP tests for the FastAPI app with injected collaborators."""

import time

from fastapi.testclient import TestClient

from conftest import CitingLLM, synthesis_json
from evidence_engine.api.app import Services, create_app


def _client(settings, embedder, corpus, llm) -> TestClient:
    return TestClient(create_app(settings, Services(embedder=embedder, corpus=corpus, llm=llm)))


def _auth(client: TestClient, caller_id: str = "alice") -> dict:
    resp = client.post("/auth/token", json={"api_key": "test-key", "caller_id": caller_id})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_health(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {
            "status": "ok",
            "scope_count": 2,
            "unit_count": 7,
            "queue_mode_active": False,
            "queue_length": 0,
        }


def test_request_id_echoed(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"


def test_token_rejects_unknown_key(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post("/auth/token", json={"api_key": "wrong"})
        assert resp.status_code == 401


def test_endpoints_require_token(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post("/retrieve", json={"query": "consent", "scope_id": "proj"})
        assert resp.status_code in (401, 403)


def test_retrieve(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post(
            "/retrieve", json={"query": "consent", "scope_id": "proj"}, headers=_auth(client)
        )
        assert resp.status_code == 200
        units = resp.json()["units"]
        assert len(units) == 6
        assert {u["source_category"] for u in units} >= {"primary_authority", "academic"}


def test_generate(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post(
            "/generate",
            json={"query": "Is pre-ticked consent valid?", "scope_id": "proj"},
            headers=_auth(client),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["coverage_report"]["missing_source_ids"] == []
        assert body["coverage_report"]["required_source_count"] == 3
        assert set(body["evidence_index"]) >= {"statute-1-u0", "case-1-u0", "article-1-u0"}


def test_generate_empty_query(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post(
            "/generate", json={"query": " ", "scope_id": "proj"}, headers=_auth(client)
        )
        assert resp.status_code == 400
        assert resp.json()["kind"] == "invalid_input"


def test_generate_truncated_output(settings, embedder, corpus):
    with _client(settings, embedder, corpus, CitingLLM(raw="I cannot help")) as client:
        resp = client.post(
            "/generate", json={"query": "consent", "scope_id": "proj"}, headers=_auth(client)
        )
        assert resp.status_code == 500
        assert resp.json()["kind"] == "truncated_output"


def test_queue_flow(settings, embedder, corpus):
    with _client(settings, embedder, corpus, CitingLLM(throttles=3)) as client:
        first = client.post(
            "/generate", json={"query": "consent", "scope_id": "proj"}, headers=_auth(client)
        )
        assert first.status_code == 200
        assert client.get("/health").json()["status"] == "degraded"

        bob = _auth(client, "bob")
        queued = client.post("/generate", json={"query": "consent", "scope_id": "proj"}, headers=bob)
        assert queued.status_code == 202
        ticket_id = queued.json()["ticket_id"]

        # Tickets are private to the caller that owns them.
        assert client.get(f"/generate/queue/{ticket_id}", headers=_auth(client)).status_code == 404

        body = None
        for _ in range(100):
            body = client.get(f"/generate/queue/{ticket_id}", headers=bob).json()
            if body["status"] != "pending":
                break
            time.sleep(0.02)
        assert body["status"] == "complete"
        assert body["result"]["coverage_report"]["missing_source_ids"] == []

        status = client.get("/generate/queue/status", headers=bob).json()
        assert status["in_queue"] is False


def test_unknown_ticket(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        assert client.get("/generate/queue/unknown", headers=_auth(client)).status_code == 404


def test_synthesize(settings, embedder, corpus):
    llm = CitingLLM(raw=synthesis_json(["Doctrinal", "Comparative", "Reform"]))
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post(
            "/synthesize",
            json={"query": "consent", "scope_id": "proj", "document_type": "law_reform_paper"},
            headers=_auth(client),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert [line["id"] for line in body["argumentation_lines"]] == [
            "line_1",
            "line_2",
            "line_3",
        ]
        assert body["personalization_options"]["tone_options"][0]["label"] == "Critical"
        assert "Document Type: law_reform_paper" in llm.prompts[0]


def test_synthesize_malformed_output(settings, embedder, corpus):
    llm = CitingLLM(raw='{"argumentation_lines": []}')
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post(
            "/synthesize", json={"query": "consent", "scope_id": "proj"}, headers=_auth(client)
        )
        assert resp.status_code == 500
        assert resp.json()["kind"] == "invalid_generation_output"


def test_generate_with_document_type(settings, embedder, corpus, llm):
    with _client(settings, embedder, corpus, llm) as client:
        resp = client.post(
            "/generate",
            json={"query": "consent", "scope_id": "proj", "document_type": "practice_guide"},
            headers=_auth(client),
        )
        assert resp.status_code == 200
        assert "DOCUMENT TYPE: Guide for legal practitioners" in llm.prompts[0]
