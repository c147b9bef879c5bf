import pytest

import api.corpus as corpus_mod
import api.events as events_mod
from api.models import Chapter, ChapterType, Verse


@pytest.fixture(autouse=True)
def _event_log(tmp_path, monkeypatch):
    path = tmp_path / "events.log"
    monkeypatch.setattr(events_mod, "EVENT_LOG_PATH", str(path))
    return path


@pytest.fixture(autouse=True)
def _fresh_corpus(monkeypatch):
    monkeypatch.setattr(corpus_mod, "_CORPUS", [])


@pytest.fixture
def sample_corpus():
    return [
        Chapter(
            id=1,
            name="Al-Fatihah",
            transliteration="Al-Fatihah",
            translation="Pembukaan",
            name_arabic="الفاتحة",
            type=ChapterType.MAKKIYAH,
            total_verses=2,
            verses=[
                Verse(id=1, text="بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ", translation="Dengan nama Allah Yang Maha Pengasih, Maha Penyayang."),
                Verse(id=2, text="الْحَمْدُ لِلَّهِ رَبِّ الْعَالَمِينَ", translation="Segala puji bagi Allah, Tuhan seluruh alam,"),
            ],
        ),
        Chapter(
            id=2,
            name="Al-Baqarah",
            transliteration="Al-Baqarah",
            translation="Sapi Betina",
            name_arabic="البقرة",
            type=ChapterType.MADANIYAH,
            total_verses=286,
            verses=[
                Verse(id=45, text="وَاسْتَعِينُوا بِالصَّبْرِ وَالصَّلَاةِ", translation="Dan mohonlah pertolongan dengan sabar dan salat."),
                Verse(id=153, text="إِنَّ اللَّهَ مَعَ الصَّابِرِينَ", translation="Sungguh, Allah beserta orang-orang yang sabar."),
            ],
        ),
    ]
