# cms/utils/dicts.py

"""
점(.)으로 구분된 경로를 이용해 중첩된 dict/list 구조를 다루는 헬퍼 함수 모듈입니다.

설정 저장소(Config)와 요청 검증 엔진(Validator)이 공통으로 사용합니다.

    >>> data = {"a": {"b": [10, 20]}}
    >>> get_path(data, "a.b.1")
    20
    >>> set_path(data, "a.c", 1)
    >>> has_path(data, "a.c")
    True
"""

from typing import Any, Mapping, MutableMapping


class _Missing:
    """값이 '존재하지 않음'을 나타내는 센티널. None과 구분하기 위해 사용합니다."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _split(path: str) -> list[str]:
    return [segment for segment in str(path).split(".") if segment != ""]


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(segment, MISSING)
    if isinstance(current, (list, tuple)) and segment.lstrip("-").isdigit():
        index = int(segment)
        if -len(current) <= index < len(current):
            return current[index]
    return MISSING


def get_path(obj: Any, path: str, default: Any = MISSING) -> Any:
    """
    경로에 해당하는 값을 반환합니다. 값이 없으면 default를 반환합니다.
    경로 전체가 최상위 키로 존재하면("a.b" 라는 키) 그 값을 우선합니다.
    """
    if isinstance(obj, Mapping) and path in obj:
        return obj[path]
    current = obj
    for segment in _split(path):
        current = _step(current, segment)
        if current is MISSING:
            return default
    return current


def has_path(obj: Any, path: str) -> bool:
    return get_path(obj, path) is not MISSING


def set_path(obj: MutableMapping, path: str, value: Any) -> None:
    """
    경로를 따라 중간 dict를 생성하면서 값을 설정합니다.
    기존 list는 인덱스 경로로 따라 들어가며, 범위를 벗어난 인덱스는 IndexError 입니다.
    """
    segments = _split(path)
    if not segments:
        raise ValueError("path must not be empty")
    current: Any = obj
    for segment in segments[:-1]:
        if isinstance(current, list):
            current = current[int(segment)]
            continue
        nxt = current.get(segment)
        if not isinstance(nxt, (MutableMapping, list)):
            nxt = {}
            current[segment] = nxt
        current = nxt
    if isinstance(current, list):
        current[int(segments[-1])] = value
    else:
        current[segments[-1]] = value


def deep_merge(base: MutableMapping, incoming: Mapping) -> MutableMapping:
    """incoming의 값을 base에 재귀적으로 병합하고 base를 반환합니다."""
    for key, value in incoming.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), MutableMapping):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base
