# cms/core/exceptions.py

"""
애플리케이션의 HTTP 예외 계층과 전역 예외 처리기를 정의하는 모듈입니다.

모든 업무 예외는 HttpException을 상속하며 (HTTP 상태, 오류 코드, 메시지)를 가집니다.
검증 엔진, 토큰 서비스, 가드는 예외를 직접 처리하지 않고 던지기만 하며,
register_exception_handlers()가 등록하는 단일 경계에서 JSON 응답으로 변환됩니다.

    {"code": 10030, "message": "...", "request": "POST /cms/user/login"}
"""

import logging
from typing import Any, Dict, Optional, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# =============================================================================
# 오류 코드 -> 기본 메시지
# =============================================================================
CODE_MESSAGES: Dict[int, str] = {
    0: "ok",
    1: "created",
    2: "updated",
    3: "deleted",
    9999: "unknown server error",
    10000: "authentication failed",
    10001: "insufficient permission, contact the super administrator",
    10012: "malformed authorization header, expected 'Bearer <token>'",
    10013: "authentication failed, please check the request token",
    10020: "resource not found",
    10021: "user not found",
    10024: "group not found",
    10030: "parameter error",
    10031: "incorrect username or password",
    10032: "passwords must match",
    10040: "invalid token",
    10041: "invalid access token",
    10042: "invalid refresh token",
    10050: "expired token",
    10051: "access token expired",
    10052: "refresh token expired",
    10060: "duplicated field",
    10070: "forbidden",
    10071: "user is not active, contact the super administrator",
    10073: "user does not belong to any group, contact the super administrator",
    10074: "only the super administrator can operate",
    10075: "cannot delete a group that still has users",
    10076: "permission is not registered",
    10080: "method not allowed",
    10100: "refresh token failed",
    10110: "file too large",
    10120: "too many files",
    10130: "file extension not allowed",
    10140: "too many requests, please retry later",
    10200: "failed",
    10250: "wrong token type",
    10251: "token does not belong to this system",
}


def get_message(code: int) -> str:
    return CODE_MESSAGES.get(code, CODE_MESSAGES[9999])


# =============================================================================
# 예외 계층
# =============================================================================
class HttpException(Exception):
    """
    모든 HTTP 예외의 기본 클래스입니다.

    - HttpException(): 클래스 기본값 사용
    - HttpException(10021): 코드만 전달하면 CODE_MESSAGES에서 메시지를 찾습니다.
    - HttpException(code=10021, message="..."): 둘 다 지정
    - HttpException(message={"name": "required"}): 메시지는 dict/list도 허용
    """
    status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: int = 9999
    message: Any = None
    headers: Optional[Dict[str, str]] = None

    def __init__(self, code: Optional[int] = None, message: Any = None, *, status_code: Optional[int] = None,
                 headers: Optional[Dict[str, str]] = None):
        if code is not None:
            if not isinstance(code, int) or isinstance(code, bool):
                raise TypeError("code must be an integer")
            self.code = code
        if message is not None:
            self.message = message
        elif code is not None or type(self).message is None:
            self.message = get_message(self.code)
        if status_code is not None:
            self.status = status_code
        if headers is not None:
            self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class Success(HttpException):
    status = status.HTTP_201_CREATED
    code = 0
    message = "ok"


class Failed(HttpException):
    status = status.HTTP_400_BAD_REQUEST
    code = 10200
    message = "failed"


class AuthFailed(HttpException):
    status = status.HTTP_401_UNAUTHORIZED
    code = 10000
    message = "authentication failed"


class NotFound(HttpException):
    status = status.HTTP_404_NOT_FOUND
    code = 10020
    message = "resource not found"


class ParameterException(HttpException):
    """
    요청 파라미터 검증 실패.
    message는 단일 오류면 문자열, 여러 오류면 {필드: 메시지} dict 입니다.
    errors에는 항상 {필드: 메시지} 매핑이 담깁니다.
    """
    status = status.HTTP_400_BAD_REQUEST
    code = 10030
    message = "parameter error"

    def __init__(self, code: Optional[int] = None, message: Any = None, *,
                 errors: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None):
        super().__init__(code, message, status_code=status_code)
        self.errors: Dict[str, Any] = errors or {}


class InvalidTokenException(HttpException):
    status = status.HTTP_401_UNAUTHORIZED
    code = 10040
    message = "invalid token"


class ExpiredTokenException(HttpException):
    status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = 10050
    message = "expired token"


class UnknownException(HttpException):
    status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 9999
    message = "unknown server error"


class RepeatException(HttpException):
    status = status.HTTP_400_BAD_REQUEST
    code = 10060
    message = "duplicated field"


class Forbidden(HttpException):
    status = status.HTTP_403_FORBIDDEN
    code = 10070
    message = "forbidden"


class MethodNotAllowed(HttpException):
    status = status.HTTP_405_METHOD_NOT_ALLOWED
    code = 10080
    message = "method not allowed"


class RefreshException(HttpException):
    status = status.HTTP_401_UNAUTHORIZED
    code = 10100
    message = "refresh token failed"


class FileTooLargeException(HttpException):
    status = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = 10110
    message = "file too large"


class FileTooManyException(HttpException):
    status = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = 10120
    message = "too many files"


class FileExtensionException(HttpException):
    status = status.HTTP_406_NOT_ACCEPTABLE
    code = 10130
    message = "file extension not allowed"


class LimitException(HttpException):
    status = status.HTTP_401_UNAUTHORIZED
    code = 10140
    message = "too many requests, please retry later"


# =============================================================================
# 전역 예외 처리기
# =============================================================================
def request_label(request: Request) -> str:
    """응답 본문의 request 필드 값. 예: 'GET /cms/log?page=1'"""
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return f"{request.method} {url}"


def exception_response(request: Request, exc: HttpException) -> JSONResponse:
    body: Dict[str, Union[int, str, Any]] = exc.to_dict()
    body["request"] = request_label(request)
    return JSONResponse(status_code=exc.status, content=body, headers=exc.headers)


def success_response(request: Request, code: int = 0, message: Any = None) -> JSONResponse:
    """성공 응답도 오류 응답과 같은 {code, message, request} 형식으로 반환합니다. (HTTP 201)"""
    return exception_response(request, Success(code, message))


async def http_exception_handler(request: Request, exc: HttpException) -> JSONResponse:
    return exception_response(request, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # FastAPI/Pydantic 검증 오류도 동일한 형식(ParameterException)으로 변환합니다.
    errors: Dict[str, Any] = {}
    for err in exc.errors():
        key = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header"))
        errors.setdefault(key or "request", []).append(err.get("msg", "parameter error"))
    if len(errors) == 1:
        message: Any = next(iter(errors.values()))
        message = message[0] if len(message) == 1 else message
    else:
        message = errors
    return exception_response(request, ParameterException(message=message, errors=errors))


async def starlette_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return exception_response(request, NotFound())
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return exception_response(request, MethodNotAllowed())
    wrapped = HttpException(message=exc.detail, status_code=exc.status_code)
    response = exception_response(request, wrapped)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unknown_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception in %s", request_label(request), exc_info=exc)
    from cms.core.config import config  # 순환 import 방지

    unknown = UnknownException()
    if config.is_debug():
        unknown.message = f"{type(exc).__name__}: {exc}"
    return exception_response(request, unknown)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HttpException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_exception_handler)
    app.add_exception_handler(Exception, unknown_exception_handler)
