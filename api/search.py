import re
from typing import Iterable, List

from api.models import Chapter

MIN_KEYWORD_LEN = 3

STOP_WORDS = frozenset(
    {
        # id
        "apa", "siapa", "dimana", "kapan", "mengapa", "bagaimana",
        "yang", "dan", "atau", "dari", "ke", "di", "pada", "dengan",
        "untuk", "tentang", "seperti", "adalah", "itu", "ini", "saya",
        "kamu", "kita", "mereka", "dalam", "oleh",
        # en
        "the", "what", "who", "where", "when", "why", "how", "is", "are",
        "and", "or", "from", "to", "in", "on", "with", "for", "about",
        "like", "that", "this",
    }
)

_PUNCT_RE = re.compile(r"[^\w\s]")


def extract_keywords(question: str) -> List[str]:
    """Lowercased significant terms of ``question`` in question order; repeats are kept."""
    cleaned = _PUNCT_RE.sub(" ", (question or "").lower())
    return [token for token in cleaned.split() if len(token) >= MIN_KEYWORD_LEN and token not in STOP_WORDS]


def score_text(text: str, keywords: Iterable[str]) -> int:
    lowered = text.lower()
    return sum(len(kw) for kw in keywords if kw in lowered)


def format_reference(chapter_name: str, chapter_id: int, verse_id: int) -> str:
    return f"{chapter_name} ({chapter_id}:{verse_id})"


def find_relevant_verses(corpus: List[Chapter], keywords: List[str], limit: int = 3) -> List[dict]:
    if not keywords or limit <= 0:
        return []

    scored = []
    for chapter in corpus:
        for verse in chapter.verses:
            if not verse.translation:
                continue
            score = score_text(verse.translation, keywords)
            if score <= 0:
                continue
            scored.append(
                {
                    "surah_id": chapter.id,
                    "surah_name": chapter.name,
                    "surah_name_arabic": chapter.name_arabic or chapter.name,
                    "verse_id": verse.id,
                    "verse_text_arabic": verse.text,
                    "verse_text_translation": verse.translation,
                    "score": score,
                }
            )

    # sort() is stable, so equal scores keep corpus order
    scored.sort(key=lambda item: -item["score"])
    results = scored[:limit]
    for item in results:
        item["reference"] = format_reference(item["surah_name"], item["surah_id"], item["verse_id"])
    return results
