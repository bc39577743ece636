# cms/core/__init__.py

"""
CMS 애플리케이션의 핵심 구성 요소 패키지입니다.

주요 서브모듈:

- `config.py`: 환경 변수 설정(Pydantic Settings)과 키-값 설정 저장소(Config).
- `database.py`: 비동기 엔진과 세션 관리 (SQLModel 및 AsyncSQLAlchemy).
- `exceptions.py`: HTTP 예외 계층과 전역 예외 처리기.
- `validator.py`, `checks.py`: 선언형 요청 검증 엔진(Rule/Validator)과 내장 검사 함수.
- `token.py`: access/refresh 토큰 발급 및 검증.
- `permissions.py`: 라우트 권한 메타 정보 레지스트리와 PermissionRouter.
- `guards.py`, `dependencies.py`: 요청 단위 인가 가드와 FastAPI 의존성.
- `security.py`: 비밀번호 해싱.
- `uploads.py`: 업로드 파일 제한 검사.
- `plugin.py`: 플러그인 로더.
- `logging_config.py`: 로깅 설정과 요청 로깅 미들웨어.
- `tasks.py`: ARQ 워커용 공통 태스크.
"""

__title__ = "CMS Core"
__description__ = "Core components for the CMS FastAPI application."
__version__ = "0.1.0"
__all__ = []
