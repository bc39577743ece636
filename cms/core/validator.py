# cms/core/validator.py

"""
선언형 요청 검증 엔진(Rule / Validator)을 정의하는 모듈입니다.

Validator 하위 클래스에 Rule 또는 Rule 리스트를 클래스 속성으로 선언하면,
클래스 생성 시점에 (필드 이름, 규칙 체인) 목록이 고정된 스키마로 수집됩니다.

    class LoginValidator(Validator):
        username = Rule("isNotEmpty", "username is required")
        password = Rule("isNotEmpty", "password is required")
        count = [Rule("isOptional", 10), Rule("isInt", "count must be an integer", {"min": 1})]

        @custom_validator(key="password")
        def validate_password_length(self):
            return len(self.get("body.password")) >= 6, "password too short"

    v = await LoginValidator().validate(request)
    v.get("body.count")  # 값이 없으면 default 버킷의 10

Rule은 불변 스키마 객체입니다. 검사 결과(raw/parsed 값)는 RuleResult로 반환되므로
하나의 클래스 스키마를 동시 요청들이 공유해도 안전합니다.
"""

import copy
import inspect
import logging
from typing import Any, Callable, ClassVar, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from fastapi import Request
from starlette.datastructures import UploadFile

from cms.core.checks import Coerced, get_check
from cms.core.exceptions import ParameterException
from cms.utils.dicts import MISSING, get_path, set_path

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "parameter error"
OPTIONAL = "isOptional"
SOURCES: Tuple[str, ...] = ("body", "query", "path", "header")


def is_absent(value: Any) -> bool:
    """값이 없거나(None/MISSING), 빈 문자열, 공백 문자열이면 '입력 없음'으로 취급합니다."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


# =============================================================================
# Rule
# =============================================================================
class RuleResult(NamedTuple):
    valid: bool
    raw_value: Any
    parsed_value: Any = MISSING


class Rule:
    """
    하나의 검사 단위입니다.

    - validate_function: 내장 검사 이름(checks.CHECKS) 또는 callable
    - message: 실패 메시지 (기본 "parameter error")
    - options: 검사 함수에 전달할 위치 인자
    - "isOptional" 규칙은 검사를 하지 않으며 첫 번째 옵션이 기본값(default_value)입니다.
      기본값이 없으면 None 입니다.
    """

    __slots__ = ("validate_function", "message", "options", "optional", "default_value", "_check")

    def __init__(self, validate_function: Union[str, Callable[..., Any]], message: Optional[str] = None, *options: Any):
        optional = validate_function == OPTIONAL
        if optional:
            check = None
            # Rule("isOptional", 10) 처럼 문자열이 아닌 기본값은 메시지 자리에 둘 수 있습니다.
            # 문자열 기본값은 Rule("isOptional", "", "guest") 처럼 옵션 자리에 둡니다.
            if message is not None and not isinstance(message, str) and not options:
                options = (message,)
                message = None
        elif isinstance(validate_function, str):
            check = get_check(validate_function)
        elif callable(validate_function):
            check = validate_function
        else:
            raise TypeError("validate_function must be a check name or a callable")

        object.__setattr__(self, "validate_function", validate_function)
        object.__setattr__(self, "message", message or DEFAULT_MESSAGE)
        object.__setattr__(self, "options", tuple(options))
        object.__setattr__(self, "optional", optional)
        object.__setattr__(self, "default_value", options[0] if optional and options else None)
        object.__setattr__(self, "_check", check)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Rule is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Rule is immutable")

    def __repr__(self) -> str:
        name = self.validate_function if isinstance(self.validate_function, str) else getattr(
            self.validate_function, "__name__", repr(self.validate_function))
        return f"Rule({name!r}, {self.message!r})"

    async def check(self, value: Any) -> RuleResult:
        """값을 검사하고 결과를 반환합니다. optional 규칙은 항상 통과합니다."""
        if self.optional:
            return RuleResult(True, value)
        outcome = self._check(value, *self.options)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if isinstance(outcome, Coerced):
            return RuleResult(bool(outcome.valid), value, outcome.parsed)
        return RuleResult(bool(outcome), value)


RuleChain = Tuple[Rule, ...]


class FieldError(NamedTuple):
    key: str
    message: Any


def custom_validator(func: Optional[Callable[..., Any]] = None, *, key: Optional[str] = None):
    """
    필드 간 검증 등 사용자 정의 검증 메서드를 등록하는 데코레이터입니다.

    메서드는 bool 또는 (ok, message[, key]) 튜플을 반환하며, 동기/비동기 모두 가능합니다.
    오류 키는 튜플의 key > 데코레이터 key > 메서드 이름(앞의 'validate' 제거, 소문자) 순입니다.
    """
    def decorator(method: Callable[..., Any]) -> Callable[..., Any]:
        method.__custom_validator_key__ = key
        return method

    if func is not None:
        return decorator(func)
    return decorator


def _default_key(method_name: str) -> str:
    name = method_name
    if name.startswith("validate"):
        name = name[len("validate"):]
    return name.lstrip("_").lower()


def _as_chain(name: str, value: Any) -> Optional[RuleChain]:
    if isinstance(value, Rule):
        return (value,)
    if isinstance(value, (list, tuple)) and value and any(isinstance(item, Rule) for item in value):
        if not all(isinstance(item, Rule) for item in value):
            raise TypeError(f"every item of field {name!r} must be a Rule instance")
        return tuple(value)
    return None


# =============================================================================
# 요청 데이터
# =============================================================================
class RequestData(dict):
    """body / query / path / header 로 분리된 요청 데이터."""

    def __init__(self, body: Optional[Mapping[str, Any]] = None, query: Optional[Mapping[str, Any]] = None,
                 path: Optional[Mapping[str, Any]] = None, header: Optional[Mapping[str, Any]] = None):
        super().__init__(
            body=dict(body or {}),
            query=dict(query or {}),
            path=dict(path or {}),
            header=dict(header or {}),
        )

    @classmethod
    async def from_request(cls, request: Request) -> "RequestData":
        content_type = request.headers.get("content-type", "")
        body: Any = {}
        if content_type.startswith("application/json"):
            raw = await request.body()
            if raw:
                try:
                    body = await request.json()
                except ValueError:
                    raise ParameterException(message="request body is not valid JSON") from None
        elif content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
            form = await request.form()
            body = {
                name: (values[0] if len(values) == 1 else values)
                for name in form.keys()
                for values in [[v for v in form.getlist(name) if not isinstance(v, UploadFile)]]
                if values
            }
        if not isinstance(body, Mapping):
            body = {"_": body}

        query = {
            name: (values[0] if len(values) == 1 else values)
            for name in request.query_params.keys()
            for values in [request.query_params.getlist(name)]
        }
        return cls(body=body, query=query, path=request.path_params, header=dict(request.headers))


# =============================================================================
# Validator
# =============================================================================
class Validator:
    """
    요청 하나에 대한 검증 패스를 담는 객체입니다.

    - data: 원본 요청 데이터 (body/query/path/header)
    - parsed: data의 깊은 복사본에 형 변환된 값을 써 넣은 결과 + default 버킷
    - errors: FieldError 목록 (선언 순서)
    - alias: 검증 전에 적용할 필드 이름 변경 맵
    """

    __fields__: ClassVar[Tuple[Tuple[str, RuleChain], ...]] = ()
    __custom_validators__: ClassVar[Tuple[Tuple[str, Optional[str]], ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        fields: Dict[str, RuleChain] = dict(cls.__fields__)
        customs: Dict[str, Optional[str]] = dict(cls.__custom_validators__)
        for name, value in cls.__dict__.items():
            if name.startswith("__"):
                continue
            chain = _as_chain(name, value)
            if chain is not None:
                fields[name] = chain
            elif name in fields:
                # 하위 클래스에서 규칙이 아닌 값으로 덮어쓰면 필드에서 제외
                del fields[name]
            target = value.__func__ if isinstance(value, (staticmethod, classmethod)) else value
            if callable(target) and hasattr(target, "__custom_validator_key__"):
                customs[name] = target.__custom_validator_key__
            elif name in customs:
                del customs[name]
        cls.__fields__ = tuple(fields.items())
        cls.__custom_validators__ = tuple(customs.items())

    def __init__(self) -> None:
        self.data: Dict[str, Any] = RequestData()
        self.parsed: Dict[str, Any] = {}
        self.errors: List[FieldError] = []
        self.alias: Dict[str, str] = {}

    @classmethod
    def schema(cls, alias: Optional[Mapping[str, str]] = None) -> List[Tuple[str, RuleChain]]:
        """별칭을 적용한 (필드 이름, 규칙 체인) 목록."""
        alias = alias or {}
        return [(alias.get(name) or name, chain) for name, chain in cls.__fields__]

    # -------------------------------------------------------------------------
    async def validate(self, request_like: Union[Request, Mapping[str, Any]],
                       alias: Optional[Mapping[str, str]] = None) -> "Validator":
        if isinstance(request_like, Request):
            data = await RequestData.from_request(request_like)
        else:
            data = RequestData(**{source: request_like.get(source) for source in SOURCES})
        self.alias = dict(alias or {})
        self.data = data
        self.parsed = copy.deepcopy(dict(data))
        self.parsed["default"] = {}
        self.errors = []

        await self._check_fields()
        await self._check_custom()

        if self.errors:
            mapping = self.error_map()
            message = next(iter(mapping.values())) if len(self.errors) == 1 else mapping
            logger.debug("Validation failed for %s: %s", type(self).__name__, mapping)
            raise ParameterException(message=message, errors=mapping)
        return self

    def _find_in_data(self, key: str) -> Tuple[Optional[str], Any]:
        for source in SOURCES:
            value = get_path(self.data.get(source) or {}, key)
            if value is not MISSING:
                return source, value
        return None, MISSING

    async def _check_fields(self) -> None:
        for key, chain in self.schema(self.alias):
            source, value = self._find_in_data(key)
            if is_absent(value):
                optional = next((rule for rule in chain if rule.optional), None)
                if optional is not None:
                    self.parsed["default"][key] = optional.default_value
                else:
                    first = next((rule for rule in chain if not rule.optional), None)
                    message = first.message if first is not None else f"{key} must not be empty"
                    self.errors.append(FieldError(key, message))
                continue

            for rule in chain:
                if rule.optional:
                    continue
                result = await rule.check(value)
                if result.parsed_value is not MISSING:
                    self._write_parsed(source, key, result.parsed_value)
                if not result.valid:
                    # 첫 실패에서 해당 필드의 나머지 규칙은 건너뜀
                    self.errors.append(FieldError(key, rule.message))
                    break

    def _write_parsed(self, source: str, key: str, value: Any) -> None:
        bucket = self.parsed[source]
        if key in bucket:
            bucket[key] = value
        else:
            set_path(bucket, key, value)

    async def _check_custom(self) -> None:
        for name, registered_key in self.__custom_validators__:
            outcome = getattr(self, name)()
            if inspect.isawaitable(outcome):
                outcome = await outcome
            if isinstance(outcome, (tuple, list)):
                ok = outcome[0] if outcome else False
                if ok:
                    continue
                message = outcome[1] if len(outcome) > 1 and outcome[1] else DEFAULT_MESSAGE
                key = outcome[2] if len(outcome) > 2 and outcome[2] else registered_key or _default_key(name)
                self.errors.append(FieldError(key, message))
            elif not outcome:
                self.errors.append(FieldError(registered_key or _default_key(name), DEFAULT_MESSAGE))

    def error_map(self) -> Dict[str, Any]:
        mapping: Dict[str, Any] = {}
        for error in self.errors:
            if error.key not in mapping:
                mapping[error.key] = error.message
                continue
            existing = mapping[error.key]
            existing = list(existing) if isinstance(existing, list) else [existing]
            existing.extend(error.message if isinstance(error.message, list) else [error.message])
            mapping[error.key] = existing
        return mapping

    # -------------------------------------------------------------------------
    def get(self, path: str, parsed: bool = True, default: Any = None) -> Any:
        """
        값을 조회합니다. 경로는 출처를 포함합니다. 예: v.get("body.username")
        parsed 값이 없으면 default 버킷의 마지막 경로 이름으로 대체하고,
        그 값도 없거나 None이면 default를 반환합니다.
        """
        if not parsed:
            value = get_path(self.data, path)
            return default if value is MISSING else value
        value = get_path(self.parsed, path)
        if not is_absent(value):
            return value
        suffix = path.rsplit(".", 1)[-1]
        fallback = get_path(self.parsed.get("default") or {}, suffix)
        return default if fallback is MISSING or fallback is None else fallback


def validated(validator_cls: type, alias: Optional[Mapping[str, str]] = None) -> Callable[..., Any]:
    """
    Validator 하위 클래스를 FastAPI 의존성으로 바꿔 줍니다.

        @router.post("/login")
        async def login(v: LoginValidator = Depends(validated(LoginValidator))):
            username = v.get("body.username")
    """
    async def dependency(request: Request) -> Validator:
        instance = validator_cls()
        await instance.validate(request, alias)
        request.state.validator = instance
        return instance

    return dependency

