import math
import os
import time
from typing import Callable, List, Optional

import requests

from api.config import MAX_TOKENS, MODEL_ID, TEMPERATURE
from api.events import log_llm_event

CF_AI_BASE_URL = os.getenv("CF_AI_BASE_URL", "https://api.cloudflare.com/client/v4")
CF_ACCOUNT_ID = os.getenv("CF_ACCOUNT_ID", "")
CF_API_TOKEN = os.getenv("CF_API_TOKEN", "")
AI_TIMEOUT_SEC = float(os.getenv("AI_TIMEOUT_SEC", "30"))
LLM_SLOW_MS = int(os.getenv("LLM_SLOW_MS", "5000"))


class AIGatewayError(RuntimeError):
    pass


def _model_url(model_id: str) -> str:
    return f"{CF_AI_BASE_URL}/accounts/{CF_ACCOUNT_ID}/ai/run/{model_id}"


def run_model(
    messages: List[dict],
    model_id: str = MODEL_ID,
    max_tokens: int = MAX_TOKENS,
    temperature: float = TEMPERATURE,
) -> dict:
    """
    Run a chat completion on the hosted inference endpoint.

    Returns the ``result`` object of the REST envelope (or the whole body when
    there is no envelope). Transport and HTTP errors are not caught here.
    """
    headers = {"Authorization": f"Bearer {CF_API_TOKEN}"}
    payload = {"messages": messages, "max_tokens": max_tokens, "temperature": temperature}
    start = time.perf_counter()
    res = requests.post(_model_url(model_id), json=payload, headers=headers, timeout=AI_TIMEOUT_SEC)
    res.raise_for_status()
    data = res.json()
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_llm_event("llm_latency", {"model": model_id, "elapsed_ms": elapsed_ms})
    if elapsed_ms > LLM_SLOW_MS:
        log_llm_event("llm_slow", {"model": model_id, "elapsed_ms": elapsed_ms})

    if not isinstance(data, dict):
        return {}
    if data.get("success") is False:
        errors = data.get("errors") or []
        raise AIGatewayError(f"inference failed: {errors}")
    result = data.get("result", data)
    return result if isinstance(result, dict) else {"response": result}


def _from_key(name: str) -> Callable[[dict], Optional[str]]:
    def extract(response: dict) -> Optional[str]:
        value = response.get(name)
        return value if isinstance(value, str) else None

    return extract


def _from_choices(response: dict) -> Optional[str]:
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    text = choices[0].get("text")
    return text if isinstance(text, str) else None


ANSWER_EXTRACTORS = [
    _from_key("response"),
    _from_key("content"),
    _from_key("answer"),
    _from_choices,
]


def extract_answer(response) -> str:
    if not isinstance(response, dict):
        return ""
    for extractor in ANSWER_EXTRACTORS:
        value = extractor(response)
        if value:
            return value
    return ""


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text or "") / 4)


def _usage_value(usage, name: str) -> int:
    if not isinstance(usage, dict):
        return 0
    try:
        return int(usage.get(name) or 0)
    except (TypeError, ValueError):
        return 0


def resolve_usage(response, prompt_text: str, answer: str) -> tuple[int, int]:
    """Reported (prompt, completion) token counts, estimated where missing or zero."""
    usage = response.get("usage") if isinstance(response, dict) else None
    prompt_tokens = _usage_value(usage, "prompt_tokens") or estimate_tokens(prompt_text)
    completion_tokens = _usage_value(usage, "completion_tokens") or estimate_tokens(answer)
    return prompt_tokens, completion_tokens


def generate(messages: List[dict]) -> dict:
    response = run_model(messages)
    answer = extract_answer(response)
    prompt_text = "".join(m["content"] for m in messages if m.get("role") != "assistant")
    prompt_tokens, completion_tokens = resolve_usage(response, prompt_text, answer)
    return {
        "answer": answer,
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
    }
