# cms/core/config.py

import json
import os
from typing import Any, Dict, List, Mapping, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from cms.utils.dicts import MISSING, deep_merge, get_path, has_path, set_path

# 프로젝트의 루트 디렉토리 경로를 계산합니다.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    """
    애플리케이션의 모든 설정을 정의하는 Pydantic BaseSettings 모델입니다.
    환경 변수 및 .env 파일에서 값을 자동으로 로드합니다.
    """

    # --- Pydantic Settings 설정 ---
    model_config = SettingsConfigDict(
        env_file=os.path.join(BASE_DIR, '.env'),  # 프로젝트 루트의 .env 파일을 명시적으로 지정
        env_file_encoding='utf-8',
        extra='ignore',                      # .env 파일에 정의되었지만 모델에 없는 변수는 무시
        case_sensitive=True
    )

    # --- 애플리케이션 기본 설정 ---
    APP_NAME: str = "CMS FastAPI API"
    APP_VERSION: str = "0.1.0"
    APP_ENV: str = Field("development", description="Application environment (e.g., development, production, testing)")
    DEBUG_MODE: bool = Field(False, description="Enable debug mode for detailed logging and error messages")

    # --- 데이터베이스 설정 ---
    DATABASE_URL: SecretStr = Field(..., description="Async database connection URL (e.g. postgresql+asyncpg://...)")

    # --- JWT (JSON Web Token) 설정 ---
    SECRET_KEY: SecretStr = Field(..., description="Secret key for JWT token signing. Keep this highly secure!")
    ALGORITHM: str = Field("HS256", description="Algorithm used for JWT signing (e.g., HS256)")
    ACCESS_TOKEN_EXPIRE_SECONDS: int = Field(60 * 60, description="Access token lifetime in seconds (1 hour)")
    REFRESH_TOKEN_EXPIRE_SECONDS: int = Field(60 * 60 * 24 * 90, description="Refresh token lifetime in seconds (~3 months)")

    # --- 파일 업로드 설정 ---
    UPLOAD_DIR: str = Field("/app/data/uploads", description="Directory for uploaded files.")
    SITE_DOMAIN: str = Field("http://localhost:8000", description="Public base URL used to build file URLs.")
    FILE_SINGLE_LIMIT: int = Field(1024 * 1024 * 2, description="Max size of a single uploaded file in bytes")
    FILE_TOTAL_LIMIT: int = Field(1024 * 1024 * 20, description="Max total size of one upload request in bytes")
    FILE_NUMS: int = Field(10, description="Max number of files in one upload request")
    FILE_INCLUDE: Optional[List[str]] = Field(None, description="Allowed file extensions, e.g. [\".jpg\", \".png\"]")
    FILE_EXCLUDE: Optional[List[str]] = Field(None, description="Forbidden file extensions")

    # --- 페이지네이션 / 플러그인 ---
    COUNT_DEFAULT: int = Field(10, description="Default page size")
    PLUGIN_PATH: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Plugins to load: {name: {enable: bool, path: 'dotted.module', ...}}"
    )

    # --- 로깅 설정 ---
    LOG_LEVEL: str = Field("INFO", description="Root log level")
    LOG_DIR: Optional[str] = Field(None, description="Directory for rotating log files. Console only when empty.")

    # --- 백그라운드 작업 (ARQ) ---
    ARQ_ENABLED: bool = Field(False, description="Create the ARQ redis pool on startup")
    REDIS_HOST: str = Field("localhost", description="Redis host for ARQ")
    REDIS_PORT: int = Field(6379, description="Redis port for ARQ")

    # --- 요청 빈도 제한 ---
    LIMIT_MAX: int = Field(2500, description="Requests allowed per client within LIMIT_DURATION_SECONDS")
    LIMIT_DURATION_SECONDS: int = Field(60 * 60, description="Rate limit window in seconds")

    def model_post_init(self, __context: Any) -> None:  # noqa: ANN001
        # APP_ENV가 development이고, UPLOAD_DIR이 기본값인 경우 로컬 경로로 변경
        if self.APP_ENV == "development" and self.UPLOAD_DIR == "/app/data/uploads":
            self.UPLOAD_DIR = os.path.join(BASE_DIR, "data", "uploads")


class Config:
    """
    점(.) 경로 기반의 키-값 설정 저장소입니다.

    Settings가 환경 변수를 읽는 역할이라면, Config는 애플리케이션 전역에서
    "key 하나로 값 조회"가 필요한 곳(토큰 서비스, 업로드 검사, 플러그인 설정 등)에
    사용됩니다. 플러그인 설정처럼 실행 중에 병합되는 값도 이곳에 저장됩니다.

        config.get_item("file.single_limit", 1024)
        config.set_item("poem.limit", 20)
    """

    def __init__(self, store: Optional[Mapping[str, Any]] = None):
        self._store: Dict[str, Any] = {}
        if store:
            self.load_from_obj(store)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Config":
        return cls({
            "app_name": settings.APP_NAME,
            "debug": settings.DEBUG_MODE,
            "secret": settings.SECRET_KEY.get_secret_value(),
            "algorithm": settings.ALGORITHM,
            "access_exp": settings.ACCESS_TOKEN_EXPIRE_SECONDS,
            "refresh_exp": settings.REFRESH_TOKEN_EXPIRE_SECONDS,
            "count_default": settings.COUNT_DEFAULT,
            "site_domain": settings.SITE_DOMAIN,
            "plugin_path": settings.PLUGIN_PATH,
            "file": {
                "store_dir": settings.UPLOAD_DIR,
                "single_limit": settings.FILE_SINGLE_LIMIT,
                "total_limit": settings.FILE_TOTAL_LIMIT,
                "nums": settings.FILE_NUMS,
                "include": settings.FILE_INCLUDE,
                "exclude": settings.FILE_EXCLUDE,
            },
            "limit": {
                "max": settings.LIMIT_MAX,
                "duration": settings.LIMIT_DURATION_SECONDS,
            },
        })

    def get_item(self, key: str, default: Any = None) -> Any:
        value = get_path(self._store, key)
        return default if value is MISSING else value

    def has_item(self, key: str) -> bool:
        return has_path(self._store, key)

    def set_item(self, key: str, value: Any) -> None:
        set_path(self._store, key, value)

    def load_from_obj(self, obj: Mapping[str, Any]) -> None:
        deep_merge(self._store, dict(obj))

    def load_from_file(self, filepath: str) -> None:
        """JSON 설정 파일을 읽어 저장소에 병합합니다. 상대 경로는 BASE_DIR 기준입니다."""
        path = filepath if os.path.isabs(filepath) else os.path.join(BASE_DIR, filepath)
        with open(path, encoding="utf-8") as fp:
            self.load_from_obj(json.load(fp))

    def is_debug(self) -> bool:
        return bool(self.get_item("debug", False))


settings = Settings()
config = Config.from_settings(settings)
