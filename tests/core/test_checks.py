# tests/core/test_checks.py

"""
Rule이 이름으로 참조하는 내장 검사 함수(cms.core.checks)에 대한 단위 테스트 모듈입니다.
"""

from datetime import datetime, timedelta

import pytest

from cms.core import checks
from cms.utils.dicts import MISSING


# =============================================================================
# 1. 형 변환 검사
# =============================================================================
@pytest.mark.parametrize(
    "value, valid, parsed",
    [
        ("42", True, 42),
        ("-7", True, -7),
        ("007", True, 7),
        ("4.2", False, 4),
        ("abc", False, MISSING),
        (42, True, 42),
        (3.0, True, 3.0),
        (3.5, False, 3.5),
    ],
)
def test_is_int(value, valid, parsed):
    result = checks.is_int(value)
    assert result.valid is valid
    assert result.parsed == parsed or (parsed is MISSING and result.parsed is MISSING)


def test_is_int_range_and_leading_zeroes():
    assert checks.is_int("5", {"min": 1, "max": 10}).valid
    assert not checks.is_int("0", {"min": 1}).valid
    assert not checks.is_int("11", {"max": 10}).valid
    assert not checks.is_int("5", {"gt": 5}).valid
    assert not checks.is_int("007", {"allow_leading_zeroes": False}).valid


def test_is_int_rejects_booleans_and_containers():
    assert not checks.is_int(True).valid
    assert not checks.is_int([1]).valid


def test_is_int_with_too_many_digits_is_invalid():
    assert checks.is_int("1" * 5000) == checks.Coerced(False, MISSING)
    assert checks.is_float("1" * 5000).valid


def test_is_float():
    assert checks.is_float("1.5") == checks.Coerced(True, 1.5)
    assert checks.is_float("1.5e3").parsed == 1500.0
    assert checks.is_float(2).valid
    assert not checks.is_float("1.2.3").valid
    assert not checks.is_float("", {"min": 0}).valid
    assert not checks.is_float("0.5", {"min": 1}).valid


@pytest.mark.parametrize(
    "value, valid, parsed",
    [
        ("true", True, True),
        ("false", True, False),
        ("1", True, True),
        ("0", True, False),
        ("yes", False, True),
        (True, True, True),
        (1, True, 1),
    ],
)
def test_is_boolean(value, valid, parsed):
    result = checks.is_boolean(value)
    assert result.valid is valid
    assert result.parsed == parsed


def test_to_text_follows_js_stringify():
    assert checks.to_text(True) == "true"
    assert checks.to_text(3.0) == "3"
    assert checks.to_text(1.5) == "1.5"
    assert checks.to_text({"a": 1}) is None


# =============================================================================
# 2. 일반 검사
# =============================================================================
def test_is_not_empty():
    assert checks.is_not_empty("a")
    assert checks.is_not_empty(0)
    assert not checks.is_not_empty("")
    assert not checks.is_not_empty(None)


def test_is_length_with_mapping_and_positional_options():
    assert checks.is_length("abcd", {"min": 2, "max": 4})
    assert not checks.is_length("abcde", {"min": 2, "max": 4})
    assert checks.is_length("ab", 2, 3)
    assert not checks.is_length("a", 2)
    assert not checks.is_length(None, {"min": 0})


def test_is_email():
    assert checks.is_email("user@example.com")
    assert not checks.is_email("user@")
    assert not checks.is_email(123)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("https://example.com/path?q=1", True),
        ("example.com", True),
        ("http://localhost:8000", True),
        ("not a url", False),
        ("http://exa mple.com", False),
    ],
)
def test_is_url(value, expected):
    assert checks.is_url(value) is expected


def test_is_url_require_protocol():
    assert not checks.is_url("example.com", {"require_protocol": True})
    assert checks.is_url("https://example.com", {"require_protocol": True})


def test_is_url_protocols_and_hosts():
    assert checks.is_url("ftp://files.example.com/a.txt")
    assert not checks.is_url("gopher://example.com")
    assert not checks.is_url("http://example.com", {"protocols": ["https"]})
    assert not checks.is_url("http://example.com:99999")
    assert not checks.is_url("http://intranet")
    assert checks.is_url("http://127.0.0.1:8080/health")
    assert not checks.is_url(None)


def test_character_class_checks():
    assert checks.is_alpha("abcXYZ")
    assert not checks.is_alpha("abc1")
    assert checks.is_alphanumeric("abc123")
    assert checks.is_alphanumeric(123)
    assert checks.is_numeric("-12.5")
    assert not checks.is_numeric("-12", {"no_symbols": True})


def test_is_in_and_matches():
    assert checks.is_in("b", ["a", "b"])
    assert checks.is_in(1, ["1", "2"])
    assert not checks.is_in("c", ["a", "b"])
    assert checks.matches("abc_123", r"^[a-z_0-9]+$")
    assert checks.matches("ABC", r"^abc$", "i")
    assert not checks.matches("ABC", r"^abc$")


def test_is_date():
    assert checks.is_date("2026-01-31")
    assert checks.is_date("2026/01/31")
    assert checks.is_date("2026-01-31 10:00:00")
    assert not checks.is_date("2026-13-01")
    assert checks.is_date("31.01.2026", "%d.%m.%Y")
    assert not checks.is_date("2026-01-31", "%d.%m.%Y")


def test_to_datetime_parses_what_is_date_accepts():
    assert checks.to_datetime("2020/1/5") == datetime(2020, 1, 5)
    assert checks.to_datetime("2020-01-05T10:00:00+09:00").utcoffset() == timedelta(hours=9)
    assert checks.to_datetime("yesterday") is None
    assert checks.to_datetime(12) is None


def test_is_json_uuid_positive():
    assert checks.is_json('{"a": 1}')
    assert not checks.is_json("1")
    assert checks.is_uuid("12345678-1234-5678-1234-567812345678")
    assert not checks.is_uuid("1234")
    assert checks.is_positive("0.1")
    assert not checks.is_positive(0)
    assert not checks.is_positive(True)


def test_get_check():
    assert checks.get_check("isInt") is checks.is_int
    with pytest.raises(ValueError):
        checks.get_check("isUnknown")
