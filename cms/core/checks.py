# cms/core/checks.py

"""
Rule이 이름으로 참조하는 내장 검사 함수 모음입니다.

함수 이름은 validator.js 관례(isInt, isEmail, ...)를 그대로 따르며,
모든 검사는 (value, *options)를 받아 bool 또는 Coerced를 반환합니다.
Coerced는 검사 결과와 함께 형 변환된 값(parsed)을 돌려줄 때 사용합니다.

숫자/불리언 값은 JavaScript의 문자열 변환 규칙과 같은 형태로 문자열화한 뒤 검사합니다.
    True -> "true", 3.0 -> "3", 1.5 -> "1.5"
"""

import json
import math
import re
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyUrl, TypeAdapter, ValidationError

from cms.utils.dicts import MISSING

_url_adapter = TypeAdapter(AnyUrl)


class Coerced(NamedTuple):
    """형 변환을 수행하는 검사의 반환값. 변환에 실패하면 parsed는 MISSING 입니다."""
    valid: bool
    parsed: Any = MISSING


# =============================================================================
# 문자열 변환 헬퍼
# =============================================================================
def to_text(value: Any) -> Optional[str]:
    """검사 대상 값을 문자열로 변환합니다. dict/list처럼 문자열화할 수 없는 값은 None."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return None


_INT_PREFIX = re.compile(r"^\s*[-+]?\d+")
_FLOAT_PREFIX = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def _parse_int(text: str) -> Any:
    # int()는 sys.get_int_max_str_digits()를 넘는 자릿수에서 ValueError를 냅니다.
    try:
        return int(text)
    except ValueError:
        return MISSING


def to_int(text: str) -> Any:
    """parseInt(text, 10) 와 같이 앞부분의 정수만 해석합니다. 실패하면 MISSING."""
    matched = _INT_PREFIX.match(text)
    return _parse_int(matched.group()) if matched else MISSING


def to_float(text: str) -> Any:
    matched = _FLOAT_PREFIX.match(text)
    return float(matched.group()) if matched else MISSING


def to_boolean(text: str) -> bool:
    return text not in ("0", "false", "")


def _in_range(number: float, options: Optional[Mapping[str, Any]]) -> bool:
    if not options:
        return True
    if "min" in options and options["min"] is not None and number < options["min"]:
        return False
    if "max" in options and options["max"] is not None and number > options["max"]:
        return False
    if "gt" in options and options["gt"] is not None and number <= options["gt"]:
        return False
    if "lt" in options and options["lt"] is not None and number >= options["lt"]:
        return False
    return True


# =============================================================================
# 형 변환 검사
# =============================================================================
_INT_RE = re.compile(r"^[-+]?(?:[1-9][0-9]*|0)$")
_INT_LEADING_ZEROES_RE = re.compile(r"^[-+]?[0-9]+$")
_FLOAT_RE = re.compile(r"^(?:[-+])?(?:[0-9]+)?(?:\.[0-9]*)?(?:[eE][+-]?(?:[0-9]+))?$")


def is_int_text(text: str, options: Optional[Mapping[str, Any]] = None) -> bool:
    options = options or {}
    pattern = _INT_LEADING_ZEROES_RE if options.get("allow_leading_zeroes", True) else _INT_RE
    if not pattern.match(text):
        return False
    number = _parse_int(text)
    return number is not MISSING and _in_range(number, options)


def is_float_text(text: str, options: Optional[Mapping[str, Any]] = None) -> bool:
    if text in ("", ".", "-", "+") or not _FLOAT_RE.match(text):
        return False
    return _in_range(float(text), options)


def is_int(value: Any, options: Optional[Mapping[str, Any]] = None) -> Coerced:
    if isinstance(value, str):
        return Coerced(is_int_text(value, options), to_int(value))
    text = to_text(value)
    if text is None or isinstance(value, bool):
        return Coerced(False, value)
    return Coerced(is_int_text(text, options), value)


def is_float(value: Any, options: Optional[Mapping[str, Any]] = None) -> Coerced:
    if isinstance(value, str):
        return Coerced(is_float_text(value, options), to_float(value))
    text = to_text(value)
    if text is None or isinstance(value, bool):
        return Coerced(False, value)
    return Coerced(is_float_text(text, options), value)


def is_boolean(value: Any) -> Coerced:
    if isinstance(value, str):
        return Coerced(value in ("true", "false", "1", "0"), to_boolean(value))
    text = to_text(value)
    return Coerced(text in ("true", "false", "1", "0"), value)


# =============================================================================
# 일반 검사
# =============================================================================
def is_not_empty(value: Any) -> bool:
    return value is not None and value != ""


def is_length(value: Any, options: Optional[Mapping[str, Any]] = None, max_length: Optional[int] = None) -> bool:
    """isLength(value, {"min": 2, "max": 20}) 또는 isLength(value, 2, 20)"""
    text = to_text(value)
    if text is None:
        return False
    if isinstance(options, Mapping):
        minimum, maximum = options.get("min", 0), options.get("max")
    else:
        minimum, maximum = options or 0, max_length
    length = len(text)
    return length >= minimum and (maximum is None or length <= maximum)


def is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_url(value: Any, options: Optional[Mapping[str, Any]] = None) -> bool:
    """
    isURL(value, {"protocols": [...], "require_protocol": bool})
    URL 구문 검사는 pydantic AnyUrl에 맡기고, 스킴 허용 목록과 호스트 형태만 추가로 확인합니다.
    """
    if not isinstance(value, str) or not value or any(ch.isspace() for ch in value):
        return False
    options = options or {}
    protocols = options.get("protocols", ("http", "https", "ftp"))
    if "://" not in value:
        if options.get("require_protocol", False):
            return False
        value = "http://" + value
    try:
        url = _url_adapter.validate_python(value)
    except ValidationError:
        return False
    if url.scheme.lower() not in protocols:
        return False
    host = url.host or ""
    # 단일 라벨 호스트는 localhost만 허용합니다.
    return host == "localhost" or "." in host or host.startswith("[")


def is_alpha(value: Any) -> bool:
    return isinstance(value, str) and re.fullmatch(r"[A-Za-z]+", value) is not None


def is_alphanumeric(value: Any) -> bool:
    text = to_text(value)
    return text is not None and re.fullmatch(r"[0-9A-Za-z]+", text) is not None


def is_numeric(value: Any, options: Optional[Mapping[str, Any]] = None) -> bool:
    text = to_text(value)
    if text is None:
        return False
    if options and options.get("no_symbols"):
        return re.fullmatch(r"[0-9]+", text) is not None
    return re.fullmatch(r"[+-]?(?:[0-9]*\.)?[0-9]+", text) is not None


def is_in(value: Any, values: Any) -> bool:
    text = to_text(value)
    if text is None:
        return False
    if isinstance(values, Mapping):
        return text in values
    return text in [to_text(item) for item in values]


def matches(value: Any, pattern: Any, flags: str = "") -> bool:
    text = to_text(value)
    if text is None:
        return False
    if isinstance(pattern, str):
        flag_bits = 0
        if "i" in flags:
            flag_bits |= re.IGNORECASE
        if "m" in flags:
            flag_bits |= re.MULTILINE
        pattern = re.compile(pattern, flag_bits)
    return pattern.search(text) is not None


def to_datetime(value: Any, fmt: Optional[str] = None) -> Optional[datetime]:
    """
    날짜 문자열을 datetime으로 해석합니다. 해석할 수 없으면 None.
    fmt가 없으면 YYYY-MM-DD, YYYY/MM/DD 및 ISO 8601을 허용합니다.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    formats = (fmt,) if fmt else ("%Y-%m-%d", "%Y/%m/%d")
    for candidate in formats:
        try:
            return datetime.strptime(value, candidate)
        except ValueError:
            continue
    if fmt:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def is_date(value: Any, fmt: Optional[str] = None) -> bool:
    return to_datetime(value, fmt) is not None


def is_json(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        loaded = json.loads(value)
    except ValueError:
        return False
    return isinstance(loaded, (dict, list))


def is_uuid(value: Any, version: Optional[int] = None) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return False
    return version is None or parsed.version == int(version)


def is_positive(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value > 0
    text = to_text(value)
    return text is not None and is_float_text(text) and float(text) > 0


# =============================================================================
# 이름 -> 검사 함수
# =============================================================================
CHECKS: Dict[str, Callable[..., Any]] = {
    "isNotEmpty": is_not_empty,
    "isInt": is_int,
    "isFloat": is_float,
    "isBoolean": is_boolean,
    "isLength": is_length,
    "isEmail": is_email,
    "isURL": is_url,
    "isAlpha": is_alpha,
    "isAlphanumeric": is_alphanumeric,
    "isNumeric": is_numeric,
    "isIn": is_in,
    "matches": matches,
    "isDate": is_date,
    "isJSON": is_json,
    "isUUID": is_uuid,
    "isPositive": is_positive,
}


def get_check(name: str) -> Callable[..., Any]:
    try:
        return CHECKS[name]
    except KeyError:
        raise ValueError(f"unknown validate function: {name!r}") from None
