# cms/__init__.py

"""
CMS 백엔드 프레임워크의 메인 패키지입니다.

이 패키지는 인증(JWT), 권한 그룹 기반 인가, 선언형 요청 검증, 파일 업로드,
플러그인 로딩, 구조화된 오류 응답을 제공하는 FastAPI 애플리케이션을 구성합니다.

- `core`: 설정, 데이터베이스, 검증 엔진, 토큰, 가드, 권한 레지스트리 등 공통 핵심 요소.
- `domains`: 사용자/그룹/권한(usr), 작업 로그(log), 파일(file) 도메인.
- `utils`: 도메인에 속하지 않는 범용 유틸리티.
"""

APP_NAME = "CMS FastAPI API"
APP_VERSION = "0.1.0"
API_PREFIX = "/cms"  # 핵심 라우트의 공통 접두사 (main.py에서 적용)
PLUGIN_PREFIX = "/plugin"  # 플러그인 라우트의 공통 접두사

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "CMS backend framework with JWT authentication and group permissions."
__license__ = "MIT"
__all__ = []
