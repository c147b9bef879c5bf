import os
import time
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.ask import InvalidQuestion, ask, search
from api.config import API_TITLE, API_VERSION, MAX_QUESTION_CHARS, MODEL_ID, SEARCH_DEFAULT_LIMIT
from api.corpus import CorpusUnavailable, get_chapter, load_corpus, random_verse
from api.events import log_api_event, log_llm_event, reset_event_log
from api.llm import generate
from api.models import (
    AskRequest,
    AskResponse,
    ChapterSummary,
    ChatRequest,
    HealthResponse,
    RandomVerseResponse,
    SearchResponse,
)
from api.neurons import check_and_reserve
from api.search import format_reference

app = FastAPI(title=API_TITLE, version=API_VERSION)

CORS_ALLOW_ALL = os.getenv("CORS_ALLOW_ALL", "1") == "1"
if CORS_ALLOW_ALL:
    allow_origins = ["*"]
else:
    raw_origins = os.getenv(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    )
    allow_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

EVENT_LOG_RESET_ON_STARTUP = os.getenv("EVENT_LOG_RESET_ON_STARTUP", "1") == "1"
ALLOW_LOG_RESET = os.getenv("ALLOW_LOG_RESET", "1") == "1"

DEFAULT_CHAT_SYSTEM_PROMPT = "You are a helpful, friendly assistant. Provide concise and accurate responses."

ENDPOINTS = {
    "/api/ask": "Ask Quran questions (POST)",
    "/api/surah": "Get all surahs (GET)",
    "/api/surah/:id": "Get specific surah (GET)",
    "/api/search": "Search verses (GET)",
    "/api/random": "Random verse (GET)",
    "/api/health": "Health check (GET)",
}


@app.on_event("startup")
def _reset_event_log_on_startup() -> None:
    if EVENT_LOG_RESET_ON_STARTUP:
        reset_event_log("startup")


@app.exception_handler(HTTPException)
def handle_http_exception(_request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail)}},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
def handle_validation_exception(_request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "validation_error",
                "message": "invalid request",
                "details": exc.errors(),
            }
        },
    )


@app.exception_handler(CorpusUnavailable)
def handle_corpus_unavailable(_request: Request, exc: CorpusUnavailable):
    log_api_event("corpus_unavailable", {"error": str(exc)})
    return JSONResponse(
        status_code=503,
        content={"error": {"code": "corpus_unavailable", "message": str(exc)}},
    )


@app.post("/api/logs/reset")
def reset_logs():
    if not ALLOW_LOG_RESET:
        raise HTTPException(status_code=403, detail="log reset disabled")
    reset_event_log("client")
    log_api_event("api_log_reset", {"client": "app"})
    return {"reset": True}


@app.get("/")
@app.get("/api")
def index():
    return {"name": API_TITLE, "version": API_VERSION, "endpoints": ENDPOINTS}


@app.get("/api/health", response_model=HealthResponse)
def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "ai_model": MODEL_ID,
    }


@app.get("/api/surah", response_model=list[ChapterSummary])
def list_surahs():
    chapters = load_corpus()
    log_api_event("api_surah_list", {"count": len(chapters)})
    return [
        {
            "id": c.id,
            "name": c.name,
            "transliteration": c.transliteration,
            "translation": c.translation,
            "type": c.type,
            "total_verses": c.total_verses,
        }
        for c in chapters
    ]


@app.get("/api/surah/{surah_id}")
def get_surah(surah_id: int):
    chapter = get_chapter(surah_id)
    if chapter is None:
        raise HTTPException(status_code=404, detail="Surah not found")
    log_api_event("api_surah", {"surah_id": surah_id})
    return chapter


@app.get("/api/search", response_model=SearchResponse)
def search_verses(
    q: str | None = Query(None),
    limit: int = Query(SEARCH_DEFAULT_LIMIT, ge=1, le=100),
):
    if not q:
        raise HTTPException(status_code=400, detail='Query parameter "q" is required')
    start = time.perf_counter()
    results = search(q, limit)
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_api_event(
        "api_search",
        {"q_len": len(q), "total": results["total_results"], "elapsed_ms": elapsed_ms},
    )
    return results


@app.get("/api/random", response_model=RandomVerseResponse)
def get_random_verse():
    chapter, verse = random_verse()
    if verse is None:
        raise HTTPException(
            status_code=404,
            detail=f"No verses available in surah {chapter.id} ({chapter.name})",
        )
    log_api_event("api_random", {"surah_id": chapter.id, "verse_id": verse.id})
    return {
        "surah_id": chapter.id,
        "surah_name": chapter.name,
        "surah_translation": chapter.translation,
        "verse_id": verse.id,
        "verse_text": verse.text,
        "verse_translation": verse.translation,
        "reference": format_reference(chapter.name, chapter.id, verse.id),
        "message": "Random verse from the Holy Quran",
    }


@app.post("/api/ask", response_model=AskResponse, response_model_exclude_none=True)
def post_ask(payload: AskRequest):
    start = time.perf_counter()
    try:
        result = ask(payload.question, payload.language)
    except InvalidQuestion as exc:
        log_api_event("api_ask_rejected", {"q_len": len(payload.question or "")})
        if payload.question and len(payload.question) > MAX_QUESTION_CHARS:
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Pertanyaan terlalu panjang",
                    "message": f"Maksimal {MAX_QUESTION_CHARS} karakter",
                    "suggestion": "Sederhanakan pertanyaan Anda",
                },
            )
        return JSONResponse(status_code=400, content={"error": str(exc)})
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_api_event(
        "api_ask",
        {
            "language": result["language"],
            "success": result["success"],
            "error": result.get("error"),
            "verses": len(result["verses_data"]),
            "elapsed_ms": elapsed_ms,
        },
    )
    return result


@app.post("/api/chat")
def post_chat(payload: ChatRequest):
    messages = [m.model_dump() for m in payload.messages]
    if not any(m["role"] == "system" for m in messages):
        messages.insert(0, {"role": "system", "content": DEFAULT_CHAT_SYSTEM_PROMPT})
    try:
        generation = generate(messages)
    except Exception as exc:
        log_llm_event("llm_error", {"error": type(exc).__name__, "route": "chat"})
        raise HTTPException(status_code=503, detail="AI service temporarily unavailable")
    limit_check = check_and_reserve(generation["prompt_tokens"], generation["completion_tokens"])
    if not limit_check["allowed"]:
        return JSONResponse(
            status_code=429,
            content={
                "error": "neuron_limit_exceeded",
                "limit_info": {
                    "consumed": limit_check["consumed"],
                    "remaining": limit_check["remaining"],
                    "daily_limit": limit_check["daily_limit"],
                    "message": limit_check.get("message"),
                },
            },
        )
    log_api_event("api_chat", {"messages": len(messages)})
    return {
        "response": generation["answer"],
        "usage": {
            "prompt_tokens": generation["prompt_tokens"],
            "completion_tokens": generation["completion_tokens"],
            "total_tokens": generation["prompt_tokens"] + generation["completion_tokens"],
        },
    }
