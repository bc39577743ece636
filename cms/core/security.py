# cms/core/security.py

"""
비밀번호 해싱과 애플리케이션 전역 토큰 서비스 인스턴스를 제공하는 모듈입니다.
"""

import logging

from passlib.context import CryptContext

from cms.core.config import config
from cms.core.token import TokenService

logger = logging.getLogger(__name__)

# --- 비밀번호 해싱 설정 ---
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    일반 텍스트 비밀번호와 해싱된 비밀번호를 비교하여 일치하는지 확인합니다.
    저장된 해시 형식을 알 수 없으면 False를 반환합니다.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash has an unknown format")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# --- 토큰 서비스 ---
# 비밀 키와 만료 시간은 시작 시 한 번 설정 저장소에서 읽습니다.
token_service = TokenService.from_config(config)
