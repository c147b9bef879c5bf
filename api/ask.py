import os
import time
from typing import List, Optional

from api.config import ASK_VERSE_LIMIT, MAX_QUESTION_CHARS, SEARCH_DEFAULT_LIMIT
from api.corpus import load_corpus
from api.events import log_llm_event, log_search_event
from api.llm import generate
from api.neurons import check_and_reserve
from api.prompts import Language, build_messages
from api.responses import (
    compose_generation_failed,
    compose_limit_exceeded,
    compose_success,
    usage_payload,
)
from api.search import extract_keywords, find_relevant_verses

SEARCH_SLOW_MS = int(os.getenv("SEARCH_SLOW_MS", "500"))


class InvalidQuestion(ValueError):
    pass


def validate_question(question: Optional[str]) -> str:
    if not question or not question.strip():
        raise InvalidQuestion("Question is required")
    if len(question) > MAX_QUESTION_CHARS:
        raise InvalidQuestion(f"Question longer than {MAX_QUESTION_CHARS} characters")
    return question


def retrieve(query: str, limit: int) -> List[dict]:
    keywords = extract_keywords(query)
    start = time.perf_counter()
    results = find_relevant_verses(load_corpus(), keywords, limit)
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_search_event(
        "search_latency",
        {"keywords": keywords, "elapsed_ms": elapsed_ms, "total": len(results)},
    )
    if elapsed_ms > SEARCH_SLOW_MS:
        log_search_event("search_slow", {"keywords": keywords, "elapsed_ms": elapsed_ms})
    if not results:
        log_search_event("search_zero", {"keywords": keywords})
    return results


def search(query: str, limit: int = SEARCH_DEFAULT_LIMIT) -> dict:
    results = retrieve(query, limit)
    return {"query": query, "total_results": len(results), "results": results}


def ask(question: str, language: Optional[str] = None) -> dict:
    """
    Answer ``question`` from the corpus through the hosted model.

    Retrieval always runs first and its verses are returned in every branch.
    The model call is made before the quota check since its cost is only known
    afterwards; a call that would exceed today's budget is discarded and the
    caller gets the verse-only response instead.
    """
    question = validate_question(question)
    lang = Language.parse(language)

    verses = retrieve(question, ASK_VERSE_LIMIT)
    messages = build_messages(question, verses, lang)

    try:
        generation = generate(messages)
    except Exception as exc:
        log_llm_event("llm_error", {"error": type(exc).__name__, "verses": len(verses)})
        return compose_generation_failed(question, verses, lang)

    prompt_tokens = generation["prompt_tokens"]
    completion_tokens = generation["completion_tokens"]
    limit_check = check_and_reserve(prompt_tokens, completion_tokens, language=lang)
    if not limit_check["allowed"]:
        return compose_limit_exceeded(question, verses, lang, limit_check)

    usage = usage_payload(prompt_tokens, completion_tokens, limit_check)
    return compose_success(generation["answer"], verses, lang, usage)
