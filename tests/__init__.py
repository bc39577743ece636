# tests/__init__.py

"""
CMS 애플리케이션의 테스트 스위트 패키지입니다.

- `core/`: 검증 엔진, 토큰 서비스, 인가 가드, 권한 레지스트리, 설정, 예외, 업로드 검사,
           플러그인 로더에 대한 단위 테스트.
- `domains/`: usr / log / file 도메인 API 엔드포인트에 대한 통합 테스트.
- `plugins/`: 플러그인 로더 테스트에 사용하는 예제 플러그인.
- `conftest.py`: 테스트용 데이터베이스, 클라이언트, 사용자/그룹 팩토리 픽스처.
"""

__title__ = "CMS API Tests"
__all__ = []
