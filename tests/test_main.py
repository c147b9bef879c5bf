import json

import pytest
from fastapi.testclient import TestClient

import api.ask as ask_mod
import api.corpus as corpus_mod
import api.kv as kv_mod
import api.llm as llm_mod
import api.main as main_mod
from api.models import AskRequest, ChatRequest


class FakeKV:
    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key):
        return self.data.get(key)

    def put(self, key, value, ttl_sec):
        self.data[key] = value


def _body(response):
    return json.loads(response.body)


def test_index_lists_endpoints():
    result = main_mod.index()
    assert "/api/ask" in result["endpoints"]


def test_health_reports_model():
    result = main_mod.health()
    assert result["status"] == "healthy"
    assert result["ai_model"] == "@cf/meta/llama-3.3-70b-instruct-fp8-fast"


def test_list_surahs_has_no_verses(monkeypatch, sample_corpus):
    monkeypatch.setattr(corpus_mod, "_CORPUS", sample_corpus)

    result = main_mod.list_surahs()

    assert [s["id"] for s in result] == [1, 2]
    assert "verses" not in result[0]


def test_get_surah_not_found(monkeypatch, sample_corpus):
    monkeypatch.setattr(corpus_mod, "_CORPUS", sample_corpus)

    assert main_mod.get_surah(2).name == "Al-Baqarah"
    with pytest.raises(main_mod.HTTPException) as exc:
        main_mod.get_surah(99)
    assert exc.value.status_code == 404


def test_search_requires_query():
    with pytest.raises(main_mod.HTTPException) as exc:
        main_mod.search_verses(q=None, limit=10)
    assert exc.value.status_code == 400


def test_search_endpoint(monkeypatch, sample_corpus):
    monkeypatch.setattr(ask_mod, "load_corpus", lambda: sample_corpus)

    result = main_mod.search_verses(q="sabar", limit=10)

    assert result["total_results"] == 2


def test_random_verse_endpoint(monkeypatch, sample_corpus):
    monkeypatch.setattr(corpus_mod, "_CORPUS", sample_corpus)

    result = main_mod.get_random_verse()

    assert result["reference"] == f"{result['surah_name']} ({result['surah_id']}:{result['verse_id']})"


def test_ask_rejects_long_question():
    response = main_mod.post_ask(AskRequest(question="x" * 501, language="id"))

    assert response.status_code == 400
    assert _body(response)["error"] == "Pertanyaan terlalu panjang"


def test_ask_requires_question():
    response = main_mod.post_ask(AskRequest(question="", language="id"))

    assert response.status_code == 400


def test_ask_endpoint_success(monkeypatch, sample_corpus):
    monkeypatch.setattr(ask_mod, "load_corpus", lambda: sample_corpus)
    monkeypatch.setattr(kv_mod, "usage_store", FakeKV())
    monkeypatch.setattr(llm_mod, "run_model", lambda _messages: {"response": "Jawaban"})

    result = main_mod.post_ask(AskRequest(question="Apa itu sabar?", language="id"))

    assert result["success"] is True
    assert result["verses_data"]


def test_chat_adds_default_system_prompt(monkeypatch):
    seen = []

    def fake_run_model(messages):
        seen.append(messages)
        return {"response": "hello", "usage": {"prompt_tokens": 5, "completion_tokens": 2}}

    monkeypatch.setattr(kv_mod, "usage_store", FakeKV())
    monkeypatch.setattr(llm_mod, "run_model", fake_run_model)

    result = main_mod.post_chat(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

    assert result["response"] == "hello"
    assert result["usage"]["total_tokens"] == 7
    assert seen[0][0] == {"role": "system", "content": main_mod.DEFAULT_CHAT_SYSTEM_PROMPT}


def test_chat_over_limit_returns_429(monkeypatch):
    from api.neurons import usage_key

    monkeypatch.setattr(kv_mod, "usage_store", FakeKV({usage_key(): "10000"}))
    monkeypatch.setattr(llm_mod, "run_model", lambda _messages: {"response": "hello"})

    response = main_mod.post_chat(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

    assert response.status_code == 429
    assert _body(response)["error"] == "neuron_limit_exceeded"


def test_chat_gateway_failure_is_503(monkeypatch):
    def boom(_messages):
        raise RuntimeError("down")

    monkeypatch.setattr(llm_mod, "run_model", boom)

    with pytest.raises(main_mod.HTTPException) as exc:
        main_mod.post_chat(ChatRequest(messages=[{"role": "user", "content": "hi"}]))
    assert exc.value.status_code == 503


def test_corpus_unavailable_is_503(monkeypatch):
    monkeypatch.setattr(corpus_mod, "fetch_edition", lambda _edition: {"code": 500})
    monkeypatch.setattr(corpus_mod, "fallback_corpus", lambda: [])
    client = TestClient(main_mod.app)

    response = client.get("/api/surah")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "corpus_unavailable"


def test_ask_null_fields_get_400_and_default_language(monkeypatch, sample_corpus):
    monkeypatch.setattr(ask_mod, "load_corpus", lambda: sample_corpus)
    monkeypatch.setattr(kv_mod, "usage_store", FakeKV())
    monkeypatch.setattr(llm_mod, "run_model", lambda _messages: {"response": "Jawaban"})
    client = TestClient(main_mod.app)

    missing = client.post("/api/ask", json={"question": None, "language": "id"})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Question is required"

    defaulted = client.post("/api/ask", json={"question": "Apa itu sabar?", "language": None})
    assert defaulted.status_code == 200
    assert defaulted.json()["language"] == "id"
