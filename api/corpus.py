import os
import random
import threading
import time
from typing import List, Optional, Tuple

import requests
from tenacity import retry, stop_after_attempt, wait_exponential

from api.events import log_event
from api.models import Chapter, ChapterType, Verse

QURAN_API_URL = os.getenv("QURAN_API_URL", "https://api.alquran.cloud/v1/quran")
QURAN_ARABIC_EDITION = os.getenv("QURAN_ARABIC_EDITION", "quran-uthmani")
QURAN_TRANSLATION_EDITION = os.getenv("QURAN_TRANSLATION_EDITION", "id.indonesian")
QURAN_FETCH_TIMEOUT_SEC = float(os.getenv("QURAN_FETCH_TIMEOUT_SEC", "20"))

_CORPUS: List[Chapter] = []
_CORPUS_LOCK = threading.Lock()


class CorpusUnavailable(RuntimeError):
    pass


FALLBACK_SURAHS = [
    {
        "id": 1,
        "name": "Al-Fatihah",
        "transliteration": "Al-Fatihah",
        "translation": "Pembukaan",
        "name_arabic": "الفاتحة",
        "type": ChapterType.MAKKIYAH,
        "total_verses": 7,
        "verses": [
            (1, "بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ", "Dengan nama Allah Yang Maha Pengasih, Maha Penyayang."),
            (2, "الْحَمْدُ لِلَّهِ رَبِّ الْعَالَمِينَ", "Segala puji bagi Allah, Tuhan seluruh alam,"),
            (3, "الرَّحْمَٰنِ الرَّحِيمِ", "Yang Maha Pengasih, Maha Penyayang,"),
            (4, "مَالِكِ يَوْمِ الدِّينِ", "Pemilik hari pembalasan."),
            (
                5,
                "إِيَّاكَ نَعْبُدُ وَإِيَّاكَ نَسْتَعِينُ",
                "Hanya kepada Engkaulah kami menyembah dan hanya kepada Engkaulah kami mohon pertolongan.",
            ),
            (6, "اهْدِنَا الصِّرَاطَ الْمُسْتَقِيمَ", "Tunjukilah kami jalan yang lurus,"),
            (
                7,
                "صِرَاطَ الَّذِينَ أَنْعَمْتَ عَلَيْهِمْ غَيْرِ الْمَغْضُوبِ عَلَيْهِمْ وَلَا الضَّالِّينَ",
                "(yaitu) jalan orang-orang yang telah Engkau beri nikmat kepadanya; "
                "bukan (jalan) mereka yang dimurkai, dan bukan (pula jalan) mereka yang sesat.",
            ),
        ],
    },
    {
        "id": 2,
        "name": "Al-Baqarah",
        "transliteration": "Al-Baqarah",
        "translation": "Sapi Betina",
        "name_arabic": "البقرة",
        "type": ChapterType.MADANIYAH,
        "total_verses": 286,
        "verses": [
            (1, "الم", "Alif Lam Mim."),
            (
                2,
                "ذَٰلِكَ الْكِتَابُ لَا رَيْبَ ۛ فِيهِ ۛ هُدًى لِلْمُتَّقِينَ",
                "Kitab (Al-Quran) ini tidak ada keraguan padanya; petunjuk bagi mereka yang bertakwa.",
            ),
            (
                45,
                "وَاسْتَعِينُوا بِالصَّبْرِ وَالصَّلَاةِ ۚ وَإِنَّهَا لَكَبِيرَةٌ إِلَّا عَلَى الْخَاشِعِينَ",
                "Dan mohonlah pertolongan (kepada Allah) dengan sabar dan salat. "
                "Dan (salat) itu sungguh berat, kecuali bagi orang-orang yang khusyuk,",
            ),
            (
                153,
                "يَا أَيُّهَا الَّذِينَ آمَنُوا اسْتَعِينُوا بِالصَّبْرِ وَالصَّلَاةِ ۚ إِنَّ اللَّهَ مَعَ الصَّابِرِينَ",
                "Wahai orang-orang yang beriman! Mohonlah pertolongan (kepada Allah) dengan sabar dan salat. "
                "Sungguh, Allah beserta orang-orang yang sabar.",
            ),
        ],
    },
]


def fallback_corpus() -> List[Chapter]:
    return [
        Chapter(
            id=surah["id"],
            name=surah["name"],
            transliteration=surah["transliteration"],
            translation=surah["translation"],
            name_arabic=surah["name_arabic"],
            type=surah["type"],
            total_verses=surah["total_verses"],
            verses=[Verse(id=v_id, text=text, translation=tr) for v_id, text, tr in surah["verses"]],
        )
        for surah in FALLBACK_SURAHS
    ]


@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=8), reraise=True)
def fetch_edition(edition: str) -> dict:
    r = requests.get(f"{QURAN_API_URL}/{edition}", timeout=QURAN_FETCH_TIMEOUT_SEC)
    r.raise_for_status()
    return r.json()


def _surahs(payload: dict) -> list:
    if not isinstance(payload, dict) or payload.get("code") != 200:
        raise ValueError("unexpected corpus payload")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ValueError("corpus payload has no data object")
    surahs = data.get("surahs")
    if not isinstance(surahs, list) or not surahs:
        raise ValueError("corpus payload has no surahs")
    if not all(isinstance(surah, dict) for surah in surahs):
        raise ValueError("corpus payload has non-object surahs")
    return surahs


def _ayahs(surah: dict, index: int) -> list:
    ayahs = surah.get("ayahs") or []
    if not isinstance(ayahs, list) or not all(isinstance(ayah, dict) for ayah in ayahs):
        raise ValueError(f"malformed ayahs in surah {index}")
    return ayahs


def parse_corpus(arabic: dict, translation: dict) -> List[Chapter]:
    """
    Zip an Arabic edition and a translation edition into chapters.

    Both payloads use the alquran.cloud shape ``{"code": 200, "data": {"surahs": [...]}}``.
    Any count mismatch between the two editions is treated as malformed data.
    """
    arabic_surahs = _surahs(arabic)
    translated_surahs = _surahs(translation)
    if len(arabic_surahs) != len(translated_surahs):
        raise ValueError("edition surah counts differ")

    chapters = []
    for index, (surah, translated) in enumerate(zip(arabic_surahs, translated_surahs), start=1):
        ayahs = _ayahs(surah, index)
        translated_ayahs = _ayahs(translated, index)
        if len(ayahs) != len(translated_ayahs):
            raise ValueError(f"ayah counts differ in surah {index}")
        verses = [
            Verse(id=ayah_index, text=ayah.get("text") or "", translation=tr.get("text") or "")
            for ayah_index, (ayah, tr) in enumerate(zip(ayahs, translated_ayahs), start=1)
        ]
        english_name = surah.get("englishName") or f"Surah {index}"
        chapters.append(
            Chapter(
                id=index,
                name=english_name,
                transliteration=english_name,
                translation=surah.get("englishNameTranslation") or "",
                name_arabic=surah.get("name") or "",
                type=ChapterType.MAKKIYAH if surah.get("revelationType") == "Meccan" else ChapterType.MADANIYAH,
                total_verses=len(verses),
                verses=verses,
            )
        )
    return chapters


def _load() -> List[Chapter]:
    start = time.perf_counter()
    try:
        arabic = fetch_edition(QURAN_ARABIC_EDITION)
        translation = fetch_edition(QURAN_TRANSLATION_EDITION)
        chapters = parse_corpus(arabic, translation)
    except (requests.RequestException, ValueError) as exc:
        log_event("corpus_fallback", {"reason": type(exc).__name__, "error": str(exc)[:200]})
        return fallback_corpus()
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_event(
        "corpus_loaded",
        {
            "chapters": len(chapters),
            "verses": sum(len(c.verses) for c in chapters),
            "elapsed_ms": elapsed_ms,
        },
    )
    return chapters


def load_corpus() -> List[Chapter]:
    # Populated once per process; never cleared afterwards.
    global _CORPUS
    if _CORPUS:
        return _CORPUS
    with _CORPUS_LOCK:
        if not _CORPUS:
            _CORPUS = _load()
    if not _CORPUS:
        raise CorpusUnavailable("Quran data not available")
    return _CORPUS


def get_chapter(chapter_id: int) -> Optional[Chapter]:
    for chapter in load_corpus():
        if chapter.id == chapter_id:
            return chapter
    return None


def random_verse(rng: random.Random | None = None) -> Tuple[Chapter, Optional[Verse]]:
    rng = rng or random
    chapter = rng.choice(load_corpus())
    if not chapter.verses:
        return chapter, None
    return chapter, rng.choice(chapter.verses)
