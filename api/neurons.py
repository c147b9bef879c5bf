import math
import os
from datetime import datetime, timezone
from typing import Optional

import redis

import api.kv as kv
from api.events import log_event
from api.prompts import Language

# Workers AI pricing for llama-3.3-70b-instruct-fp8-fast, neurons per token
INPUT_TOKEN_NEURON_RATE = 26668 / 1_000_000
OUTPUT_TOKEN_NEURON_RATE = 204805 / 1_000_000

INPUT_COST_PER_TOKEN_USD = 0.293 / 1_000_000
OUTPUT_COST_PER_TOKEN_USD = 2.253 / 1_000_000

DAILY_NEURON_LIMIT = float(os.getenv("DAILY_NEURON_LIMIT", "10000"))
NEURON_USAGE_TTL_SEC = int(os.getenv("NEURON_USAGE_TTL_SEC", "86400"))

LIMIT_MESSAGES = {
    Language.ID: "Batas harian neuron terlampaui. Tersisa: {remaining} neurons",
    Language.EN: "Daily neuron limit exceeded. Remaining: {remaining} neurons",
}


def calculate_neurons_consumed(prompt_tokens: int, completion_tokens: int) -> float:
    return prompt_tokens * INPUT_TOKEN_NEURON_RATE + completion_tokens * OUTPUT_TOKEN_NEURON_RATE


def format_neurons(neurons: float) -> str:
    if neurons < 1000:
        return f"{neurons:.2f}"
    if neurons < 1_000_000:
        return f"{neurons / 1000:.2f}k"
    return f"{neurons / 1_000_000:.4f}M"


def estimate_cost(prompt_tokens: int, completion_tokens: int) -> dict:
    input_cost = prompt_tokens * INPUT_COST_PER_TOKEN_USD
    output_cost = completion_tokens * OUTPUT_COST_PER_TOKEN_USD
    return {
        "input_cost": input_cost,
        "output_cost": output_cost,
        "total_cost": input_cost + output_cost,
    }


def usage_key(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"neuron_usage:{now.strftime('%Y-%m-%d')}"


def _read_usage(store, key: str) -> float:
    try:
        stored = store.get(key)
        value = float(stored) if stored else 0.0
    except (redis.RedisError, ValueError) as exc:
        log_event("neuron_read_error", {"key": key, "error": type(exc).__name__})
        return 0.0
    if not math.isfinite(value) or value < 0:
        log_event("neuron_read_error", {"key": key, "error": "invalid_value", "value": stored})
        return 0.0
    return value


def check_and_reserve(
    prompt_tokens: int,
    completion_tokens: int,
    store=None,
    daily_limit: float | None = None,
    language: Language = Language.ID,
    now: Optional[datetime] = None,
) -> dict:
    """
    Charge one generation call against today's neuron budget.

    The read and the write are separate round trips, so concurrent requests
    sharing a day key can both pass on a stale total and overshoot the limit.
    A denied call is never written back.
    """
    store = kv.usage_store if store is None else store
    daily_limit = DAILY_NEURON_LIMIT if daily_limit is None else daily_limit
    key = usage_key(now)

    consumed = calculate_neurons_consumed(prompt_tokens, completion_tokens)
    current = _read_usage(store, key)
    new_total = current + consumed

    if new_total > daily_limit:
        remaining = max(0.0, daily_limit - current)
        log_event(
            "neuron_limit_exceeded",
            {"key": key, "current": current, "consumed": consumed, "daily_limit": daily_limit},
        )
        return {
            "allowed": False,
            "consumed": consumed,
            "remaining": remaining,
            "daily_limit": daily_limit,
            "message": LIMIT_MESSAGES[language].format(remaining=format_neurons(remaining)),
        }

    try:
        store.put(key, repr(new_total), NEURON_USAGE_TTL_SEC)
    except redis.RedisError as exc:
        log_event("neuron_write_error", {"key": key, "error": type(exc).__name__})

    log_event("neuron_allowed", {"key": key, "consumed": consumed, "total": new_total})
    return {
        "allowed": True,
        "consumed": consumed,
        "remaining": daily_limit - new_total,
        "daily_limit": daily_limit,
    }
