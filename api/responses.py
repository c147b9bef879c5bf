from datetime import datetime, timezone
from typing import List

from api.neurons import estimate_cost, format_neurons
from api.prompts import Language

DISCLAIMERS = {
    Language.ID: "Jawaban AI untuk referensi. Verifikasi dengan ulama dan tafsir sahih.",
    Language.EN: "AI answer for reference. Verify with scholars and authentic tafsir.",
}

LIMIT_ANSWERS = {
    Language.ID: 'Batas harian neuron terlampaui. Berikut ayat-ayat terkait "{question}":',
    Language.EN: 'Daily neuron limit exceeded. Here are relevant Quran verses about "{question}":',
}

LIMIT_DISCLAIMERS = {
    Language.ID: "AI sedang offline karena batas harian neuron. Hanya menampilkan ayat-ayat Al-Quran yang relevan.",
    Language.EN: "AI is offline due to daily neuron limit. Only displaying relevant Quran verses.",
}

FAILURE_ANSWERS = {
    Language.ID: 'Berdasarkan pertanyaan Anda tentang "{question}", berikut beberapa ayat Al-Quran yang relevan:',
    Language.EN: 'Based on your question about "{question}", here are some relevant Quran verses:',
}

FAILURE_DISCLAIMERS = {
    Language.ID: "AI sedang mengalami gangguan. Hanya menampilkan ayat-ayat Al-Quran yang relevan.",
    Language.EN: "AI service is currently unavailable. Only displaying relevant Quran verses.",
}

LIMIT_ERROR = "neuron_limit_exceeded"
SERVICE_UNAVAILABLE_ERROR = "AI service temporarily unavailable"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def verses_payload(verses: List[dict]) -> List[dict]:
    return [
        {
            "surah_id": v["surah_id"],
            "surah_name": v["surah_name"],
            "surah_name_arabic": v.get("surah_name_arabic"),
            "verse_id": v["verse_id"],
            "verse_arabic": v["verse_text_arabic"],
            "verse_translation": v["verse_text_translation"],
            "reference": v["reference"],
        }
        for v in verses
    ]


def usage_payload(prompt_tokens: int, completion_tokens: int, limit_check: dict) -> dict:
    cost = estimate_cost(prompt_tokens, completion_tokens)
    return {
        "tokens": {
            "input": prompt_tokens,
            "output": completion_tokens,
            "total": prompt_tokens + completion_tokens,
        },
        "neurons": {
            "consumed": limit_check["consumed"],
            "formatted": format_neurons(limit_check["consumed"]),
            "remaining": limit_check["remaining"],
            "daily_limit": limit_check["daily_limit"],
        },
        "cost_estimate": {
            "input_usd": f"{cost['input_cost']:.6f}",
            "output_usd": f"{cost['output_cost']:.6f}",
            "total_usd": f"{cost['total_cost']:.6f}",
        },
    }


def compose_success(answer: str, verses: List[dict], language: Language, usage: dict) -> dict:
    return {
        "success": True,
        "answer": answer,
        "verses_data": verses_payload(verses),
        "language": language.value,
        "timestamp": _now_iso(),
        "disclaimer": DISCLAIMERS[language],
        "usage": usage,
    }


def compose_limit_exceeded(question: str, verses: List[dict], language: Language, limit_check: dict) -> dict:
    return {
        "success": False,
        "answer": LIMIT_ANSWERS[language].format(question=question),
        "verses_data": verses_payload(verses),
        "language": language.value,
        "timestamp": _now_iso(),
        "error": LIMIT_ERROR,
        "disclaimer": LIMIT_DISCLAIMERS[language],
        "limit_info": {
            "consumed": limit_check["consumed"],
            "remaining": limit_check["remaining"],
            "daily_limit": limit_check["daily_limit"],
            "message": limit_check.get("message"),
        },
    }


def compose_generation_failed(question: str, verses: List[dict], language: Language) -> dict:
    return {
        "success": False,
        "answer": FAILURE_ANSWERS[language].format(question=question),
        "verses_data": verses_payload(verses),
        "language": language.value,
        "timestamp": _now_iso(),
        "error": SERVICE_UNAVAILABLE_ERROR,
        "disclaimer": FAILURE_DISCLAIMERS[language],
    }
