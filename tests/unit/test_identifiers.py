import pytest
from forkline.layers.sense.identifiers import compile_id_pattern, extract_identifier


def test_extracts_status_id():
    markup = '<a href="/someone/status/1712345678901234567/photo/1">pic</a>'
    assert extract_identifier(markup) == "1712345678901234567"


def test_first_match_wins():
    markup = '<a href="/a/status/111/">x</a><a href="/b/status/222/">y</a>'
    assert extract_identifier(markup) == "111"


def test_absent_shape_returns_none():
    assert extract_identifier('<a href="/someone/status/abc/">') is None
    assert extract_identifier("") is None
    assert extract_identifier(None) is None


def test_custom_pattern():
    assert extract_identifier('<div data-id="42">', r'data-id="(\d+)"') == "42"


def test_pattern_without_group_is_rejected():
    with pytest.raises(ValueError):
        compile_id_pattern(r"/status/\d+/")
