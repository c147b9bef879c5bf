import pytest
import requests

import api.ask as ask_mod
import api.kv as kv_mod
import api.llm as llm_mod
from api.ask import InvalidQuestion, ask, search
from api.neurons import usage_key


class FakeKV:
    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key):
        return self.data.get(key)

    def put(self, key, value, ttl_sec):
        self.data[key] = value


def _prepare(monkeypatch, sample_corpus, store=None, run_model=None):
    store = store if store is not None else FakeKV()
    monkeypatch.setattr(ask_mod, "load_corpus", lambda: sample_corpus)
    monkeypatch.setattr(kv_mod, "usage_store", store)
    monkeypatch.setattr(
        llm_mod,
        "run_model",
        run_model
        or (
            lambda _messages: {
                "response": "Sabar adalah menahan diri (Al-Baqarah 2:153).",
                "usage": {"prompt_tokens": 300, "completion_tokens": 120},
            }
        ),
    )
    return store


def test_ask_success_indonesian(monkeypatch, sample_corpus):
    store = _prepare(monkeypatch, sample_corpus)

    result = ask("Apa itu sabar?", "id")

    assert result["success"] is True
    assert result["answer"].startswith("Sabar adalah")
    assert result["language"] == "id"
    assert result["disclaimer"] == "Jawaban AI untuk referensi. Verifikasi dengan ulama dan tafsir sahih."
    assert [v["reference"] for v in result["verses_data"]] == ["Al-Baqarah (2:45)", "Al-Baqarah (2:153)"]
    assert result["verses_data"][0]["verse_arabic"].startswith("وَاسْتَعِينُوا")
    usage = result["usage"]
    assert usage["tokens"] == {"input": 300, "output": 120, "total": 420}
    assert usage["neurons"]["daily_limit"] == 10000
    assert float(store.data[usage_key()]) == pytest.approx(usage["neurons"]["consumed"])
    assert usage["cost_estimate"]["total_usd"] == f"{300 * 0.293e-6 + 120 * 2.253e-6:.6f}"
    assert "error" not in result


def test_ask_prompt_is_grounded_in_ranked_verses(monkeypatch, sample_corpus):
    seen = []

    def fake_run_model(messages):
        seen.append(messages)
        return {"response": "ok"}

    _prepare(monkeypatch, sample_corpus, run_model=fake_run_model)

    ask("Apa itu sabar?", "id")

    user_prompt = seen[0][1]["content"]
    assert "AYAT-AL-QURAN YANG RELEVAN" in user_prompt
    assert "Sungguh, Allah beserta orang-orang yang sabar." in user_prompt


def test_ask_quota_exceeded_returns_verses(monkeypatch, sample_corpus):
    store = _prepare(monkeypatch, sample_corpus, store=FakeKV({usage_key(): "10000"}))

    result = ask("Apa itu sabar?", "id")

    assert result["success"] is False
    assert result["error"] == "neuron_limit_exceeded"
    assert result["answer"] == 'Batas harian neuron terlampaui. Berikut ayat-ayat terkait "Apa itu sabar?":'
    assert "Sabar adalah" not in result["answer"]
    assert result["verses_data"]
    assert result["limit_info"]["remaining"] >= 0
    assert result["limit_info"]["daily_limit"] == 10000
    assert "usage" not in result
    assert store.data[usage_key()] == "10000"


def test_ask_generation_failure_still_returns_verses(monkeypatch, sample_corpus):
    def boom(_messages):
        raise requests.ConnectionError("gateway down")

    store = _prepare(monkeypatch, sample_corpus, run_model=boom)

    result = ask("What about sabar?", "en")

    assert result["success"] is False
    assert result["error"] == "AI service temporarily unavailable"
    assert result["disclaimer"] == "AI service is currently unavailable. Only displaying relevant Quran verses."
    assert len(result["verses_data"]) == 2
    assert "limit_info" not in result
    assert store.data == {}


def test_ask_rejects_long_question_before_any_work(monkeypatch):
    def fail(*_args, **_kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(ask_mod, "load_corpus", fail)
    monkeypatch.setattr(ask_mod, "generate", fail)

    with pytest.raises(InvalidQuestion):
        ask("x" * 501, "id")
    with pytest.raises(InvalidQuestion):
        ask("   ", "id")


def test_ask_unknown_language_uses_indonesian(monkeypatch, sample_corpus):
    _prepare(monkeypatch, sample_corpus)

    result = ask("Apa itu sabar?", "fr")

    assert result["language"] == "id"
    assert result["disclaimer"].startswith("Jawaban AI")


def test_ask_without_matching_verses(monkeypatch, sample_corpus):
    seen = []

    def fake_run_model(messages):
        seen.append(messages)
        return {"answer": "Allahu a'lam."}

    _prepare(monkeypatch, sample_corpus, run_model=fake_run_model)

    result = ask("Apa itu zakat?", "id")

    assert result["success"] is True
    assert result["verses_data"] == []
    assert result["answer"] == "Allahu a'lam."
    assert "Berdasarkan pengetahuan Al-Quran yang sahih" in seen[0][1]["content"]


def test_search_returns_scores(monkeypatch, sample_corpus):
    monkeypatch.setattr(ask_mod, "load_corpus", lambda: sample_corpus)

    result = search("sabar salat", limit=1)

    assert result["query"] == "sabar salat"
    assert result["total_results"] == 1
    assert result["results"][0]["score"] == 10
