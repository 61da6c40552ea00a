import base64
import json

import pytest
from fastapi.testclient import TestClient

from quill.main import app, get_pipeline, parse_file_sources
from quill.orchestrator.assembler import PromptAssembler
from quill.orchestrator.normalizer import DocumentNormalizer
from quill.orchestrator.pipeline import Pipeline
from quill.orchestrator.policies import default_policies


@pytest.fixture
def client_for():
    def _client(pipeline):
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def client(client_for, make_pipeline, fake_backend):
    return client_for(make_pipeline(fake_backend))


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_generate_discussion_with_uploads(client, fake_backend):
    response = client.post(
        "/api/generate",
        data={
            "type": "discussion",
            "context": "Week 4 lecture",
            "additionalInstructions": "mention chain of custody",
            "fileSources": json.dumps([
                {"filename": "notes.txt", "sourceUrl": ""},
                {"filename": "page.html", "sourceUrl": "https://example.edu/page"},
            ]),
        },
        files=[
            ("files", ("notes.txt", b"plain notes", "text/plain")),
            ("files", ("page.html", b"<p>Hi &amp; bye</p>", "text/html")),
        ],
    )

    assert response.status_code == 200
    assert response.json() == {"content": "reply 1", "type": "discussion"}
    prompt = fake_backend.prompts[0]
    assert [b.text.split("\n")[0] for b in prompt.blocks[:3]] == [
        "ADDITIONAL CONTEXT:",
        "--- Content from notes.txt ---",
        "--- Content from page.html ---",
    ]
    assert prompt.blocks[2].text.endswith("Hi & bye")
    assert '- "page.html": https://example.edu/page' in prompt.task_instructions
    assert '"notes.txt":' not in prompt.task_instructions


def test_generate_paper_with_bad_page_count(client, fake_backend):
    response = client.post("/api/generate", data={"type": "paper", "pageCount": "abc"})

    assert response.status_code == 200
    assert "~550 words (2 pages)" in fake_backend.prompts[0].system_instructions


def test_malformed_file_sources_means_no_references(client, fake_backend):
    response = client.post(
        "/api/generate",
        data={"type": "response", "discussionPost": "What do you think?", "fileSources": "{not json"},
        files=[("files", ("r.pdf", b"%PDF", "application/pdf"))],
    )

    assert response.status_code == 200
    assert "References" not in fake_backend.prompts[0].task_instructions
    assert fake_backend.prompts[0].attachments[0].filename == "r.pdf"


def test_parse_file_sources_tolerates_garbage():
    assert parse_file_sources("{not json") == []
    assert parse_file_sources('[{"filename": 3}]') == []
    assert parse_file_sources(None) == []
    assert parse_file_sources('[{"filename": "a.pdf", "sourceUrl": "https://x"}]')[0].sourceUrl == "https://x"


def test_unknown_type_is_400_without_backend_call(client, fake_backend):
    response = client.post("/api/generate", data={"type": "essay"})

    assert response.status_code == 400
    assert "essay" in response.json()["error"]
    assert fake_backend.prompts == []


def test_unknown_model_is_400(client_for):
    pipeline = Pipeline(
        normalizer=DocumentNormalizer(pdf_mode="attach"),
        assembler=PromptAssembler(policies=default_policies(), persona="Orhan"),
    )
    client = client_for(pipeline)

    response = client.post("/api/generate", data={"type": "discussion", "aiModel": "llama-3"})

    assert response.status_code == 400
    assert "llama-3" in response.json()["error"]


@pytest.mark.parametrize("data", [
    {"type": "response"},
    {"type": "response", "discussionPost": "   \n "},
])
def test_response_without_post_is_400_without_backend_call(client, fake_backend, data):
    response = client.post("/api/generate", data=data)

    assert response.status_code == 400
    assert "discussionPost" in response.json()["error"]
    assert fake_backend.prompts == []
    assert fake_backend.models == []


def test_boundary_failure_is_surfaced(client_for, make_pipeline, make_backend):
    client = client_for(make_pipeline(make_backend(fail_on={1})))

    response = client.post("/api/generate", data={"type": "discussion"})

    assert response.status_code == 502
    assert response.json() == {"error": "Fake error 500: upstream exploded"}


def test_undecodable_text_upload_is_422(client):
    response = client.post(
        "/api/generate",
        data={"type": "discussion"},
        files=[("files", ("notes.txt", b"\xff\xfe\xfa", "text/plain"))],
    )

    assert response.status_code == 422
    assert "notes.txt" in response.json()["error"]


def test_unexpected_failure_is_500_with_message(client_for, make_pipeline):
    class Broken:
        name = "Broken"

        async def generate(self, prompt):
            raise RuntimeError("something odd")

    client = client_for(make_pipeline(Broken()))

    response = client.post("/api/generate", data={"type": "discussion"})

    assert response.status_code == 500
    assert response.json() == {"error": "something odd"}


def test_batch_endpoint_returns_all_results(client_for, make_pipeline, make_backend):
    client = client_for(make_pipeline(make_backend(fail_on={2})))

    response = client.post(
        "/api/batch",
        data={"batchPosts": "Trevor\nHello there.\n---\nMissing. Post two?\n---\nKim:\nThird post"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["results"][0] == {"name": "Trevor", "post": "Hello there.", "response": "reply 1", "error": None}
    assert body["results"][1]["name"] == "Response 2"
    assert body["results"][1]["response"] is None
    assert "upstream exploded" in body["results"][1]["error"]
    assert body["results"][2]["name"] == "Kim"
    assert body["results"][2]["response"] == "reply 3"


def test_batch_endpoint_accepts_crlf_posts(client):
    response = client.post("/api/batch", data={"batchPosts": "Ana\r\nFirst?\r\n---\r\nBen\r\nSecond?"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [r["name"] for r in body["results"]] == ["Ana", "Ben"]
    assert [r["post"] for r in body["results"]] == ["First?", "Second?"]


def test_batch_websocket_streams_progress(client, fake_backend):
    message = {
        "batchPosts": "Ana\nFirst?\n---\nBen\nSecond?",
        "context": "Week 5",
        "files": [{
            "name": "notes.txt",
            "type": "text/plain",
            "data": base64.b64encode(b"stored notes").decode(),
            "sourceUrl": "https://example.edu/notes",
        }],
    }

    with client.websocket_connect("/ws/batch") as ws:
        ws.send_text(json.dumps(message))
        started = ws.receive_json()
        first = ws.receive_json()
        second = ws.receive_json()
        done = ws.receive_json()

    assert started == {"type": "status", "stage": "started", "total": 2}
    assert (first["type"], first["processed"], first["total"]) == ("progress", 1, 2)
    assert first["result"]["name"] == "Ana"
    assert second["processed"] == 2
    assert done["type"] == "done"
    assert [r["response"] for r in done["results"]] == ["reply 1", "reply 2"]
    assert "https://example.edu/notes" in fake_backend.prompts[0].task_instructions


def test_batch_websocket_rejects_bad_message(client):
    with client.websocket_connect("/ws/batch") as ws:
        ws.send_text("not json")
        reply = ws.receive_json()

    assert reply["type"] == "error"
