from api.search import extract_keywords


def test_extract_keywords_strips_punctuation_and_stop_words():
    assert extract_keywords("Apa itu sabar?") == ["sabar"]


def test_extract_keywords_lowercases_and_keeps_order():
    assert extract_keywords("Patience, PRAYER and Mercy!") == ["patience", "prayer", "mercy"]


def test_extract_keywords_drops_short_tokens():
    assert extract_keywords("di ke ya ok Allah") == ["allah"]


def test_extract_keywords_punctuation_splits_words():
    assert extract_keywords("orang-orang beriman") == ["orang", "orang", "beriman"]


def test_extract_keywords_keeps_repeats():
    assert extract_keywords("sabar sabar SABAR") == ["sabar", "sabar", "sabar"]


def test_extract_keywords_only_stop_words_is_empty():
    assert extract_keywords("what is this about?") == []
    assert extract_keywords("apa itu dan yang") == []
    assert extract_keywords("") == []
