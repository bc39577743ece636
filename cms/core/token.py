# cms/core/token.py

"""
JWT access/refresh 토큰의 발급과 검증을 담당하는 모듈입니다.

토큰 클레임: {"identity": <사용자 id>, "type": "access"|"refresh", "scope": "cms", "exp": <epoch 초>}

서버 측 저장소가 없는 stateless 토큰이며, 서명/만료/type/scope 네 가지가 모두 맞을 때만 유효합니다.
HTTP 계층과 독립적이라 가드(guards.py)와 CLI, 테스트에서 그대로 사용할 수 있습니다.
"""

import enum
import logging
import time
from typing import Any, Dict, Optional, Tuple, Union

from jose import ExpiredSignatureError, JWTError, jwt

from cms.core.exceptions import ExpiredTokenException, InvalidTokenException

logger = logging.getLogger(__name__)

TOKEN_SCOPE = "cms"

Identity = Union[int, str]


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


# 만료/무효 오류 코드 (토큰 종류별로 구분)
EXPIRED_CODES = {TokenType.ACCESS: 10051, TokenType.REFRESH: 10052}
INVALID_CODES = {TokenType.ACCESS: 10041, TokenType.REFRESH: 10042}
WRONG_TYPE_CODE = 10250
WRONG_SCOPE_CODE = 10251


class TokenService:
    """
    하나의 비밀 키로 두 종류의 토큰을 발급/검증합니다.
    비밀 키와 만료 시간은 생성 시 한 번 읽으며 실행 중 교체는 지원하지 않습니다.
    """

    def __init__(
        self,
        secret: Optional[str],
        access_exp: int = 60 * 60,
        refresh_exp: int = 60 * 60 * 24 * 90,
        algorithm: str = "HS256",
    ):
        self.secret = secret
        self.access_exp = access_exp or 60 * 60
        self.refresh_exp = refresh_exp or 60 * 60 * 24 * 90
        self.algorithm = algorithm

    @classmethod
    def from_config(cls, config: Any) -> "TokenService":
        """키-값 설정 저장소(Config)에서 secret/access_exp/refresh_exp를 읽어 생성합니다."""
        return cls(
            secret=config.get_item("secret"),
            access_exp=config.get_item("access_exp"),
            refresh_exp=config.get_item("refresh_exp"),
            algorithm=config.get_item("algorithm", "HS256"),
        )

    def _require_secret(self) -> str:
        if not self.secret:
            raise RuntimeError("secret can not be empty")
        return self.secret

    def _create(self, identity: Identity, token_type: TokenType, lifetime: int) -> str:
        secret = self._require_secret()
        claims = {
            "identity": identity,
            "type": token_type.value,
            "scope": TOKEN_SCOPE,
            "exp": int(time.time()) + lifetime,
        }
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def create_access_token(self, identity: Identity) -> str:
        return self._create(identity, TokenType.ACCESS, self.access_exp)

    def create_refresh_token(self, identity: Identity) -> str:
        return self._create(identity, TokenType.REFRESH, self.refresh_exp)

    def verify_token(self, token: str, token_type: TokenType = TokenType.ACCESS) -> Dict[str, Any]:
        """
        토큰을 검증하고 클레임을 반환합니다.

        - 만료: ExpiredTokenException (access 10051 / refresh 10052)
        - 서명 오류, 형식 오류: InvalidTokenException (access 10041 / refresh 10042)
        - type 불일치: InvalidTokenException (10250)
        - scope 불일치: InvalidTokenException (10251)
        """
        secret = self._require_secret()
        token_type = TokenType(token_type)
        try:
            claims = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise ExpiredTokenException(EXPIRED_CODES[token_type]) from None
        except JWTError as e:
            logger.debug("Token decode failed: %s", e)
            raise InvalidTokenException(INVALID_CODES[token_type]) from None

        if claims.get("type") != token_type.value:
            raise InvalidTokenException(WRONG_TYPE_CODE)
        if claims.get("scope") != TOKEN_SCOPE:
            raise InvalidTokenException(WRONG_SCOPE_CODE)
        return claims

    def get_tokens(self, user: Any) -> Tuple[str, str]:
        """사용자 객체(id 속성)로 (access_token, refresh_token) 쌍을 발급합니다."""
        return self.create_access_token(user.id), self.create_refresh_token(user.id)


def get_tokens(user: Any, service: Optional[TokenService] = None) -> Tuple[str, str]:
    if service is None:
        from cms.core.security import token_service as service  # 순환 import 방지
    return service.get_tokens(user)
