import pytest

from services.file_service.tags import normalize, to_tag_string


def test_lower_cases_and_splits_on_whitespace():
    assert normalize("Pet Cute") == ["pet", "cute"]


def test_empty_input_gives_no_tags():
    assert normalize("") == []
    assert normalize(None) == []
    assert normalize("   \t\n ") == []


def test_commas_separate_tags():
    assert normalize("a,b, C ,,d") == ["a", "b", "c", "d"]


def test_order_and_duplicates_are_kept():
    assert normalize("b a B") == ["b", "a", "b"]


@pytest.mark.parametrize("raw", [
    "Pet Cute",
    "  leading and   trailing  ",
    "MiXeD,case\ttabs\nnewlines",
    "dup dup DUP",
    "",
    "ünïcödé ÇASE",
])
def test_normalize_is_idempotent(raw):
    once = normalize(raw)
    assert normalize(to_tag_string(once)) == once
