from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict


class ChapterType(str, Enum):
    MAKKIYAH = "Makkiyah"
    MADANIYAH = "Madaniyah"


class Verse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    translation: str


class Chapter(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    transliteration: str
    translation: str
    name_arabic: str = ""
    type: ChapterType
    total_verses: int
    verses: List[Verse]


class ChapterSummary(BaseModel):
    id: int
    name: str
    transliteration: str
    translation: str
    type: ChapterType
    total_verses: int


class AskRequest(BaseModel):
    question: str | None = None
    language: str | None = None


class VerseData(BaseModel):
    surah_id: int
    surah_name: str
    surah_name_arabic: str | None = None
    verse_id: int
    verse_arabic: str
    verse_translation: str
    reference: str


class TokenUsage(BaseModel):
    input: int
    output: int
    total: int


class NeuronUsage(BaseModel):
    consumed: float
    formatted: str
    remaining: float
    daily_limit: float


class CostEstimate(BaseModel):
    input_usd: str
    output_usd: str
    total_usd: str


class UsageInfo(BaseModel):
    tokens: TokenUsage
    neurons: NeuronUsage
    cost_estimate: CostEstimate


class LimitInfo(BaseModel):
    consumed: float
    remaining: float
    daily_limit: float
    message: str | None = None


class AskResponse(BaseModel):
    success: bool
    answer: str
    verses_data: List[VerseData] = []
    language: str | None = None
    timestamp: str
    disclaimer: str | None = None
    usage: Optional[UsageInfo] = None
    error: str | None = None
    limit_info: Optional[LimitInfo] = None


class SearchItem(BaseModel):
    surah_id: int
    surah_name: str
    surah_name_arabic: str | None = None
    verse_id: int
    verse_text_arabic: str
    verse_text_translation: str
    score: int
    reference: str


class SearchResponse(BaseModel):
    query: str
    total_results: int
    results: List[SearchItem]


class RandomVerseResponse(BaseModel):
    surah_id: int
    surah_name: str
    surah_translation: str
    verse_id: int
    verse_text: str
    verse_translation: str
    reference: str
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    ai_model: str


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = []
