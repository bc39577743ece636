# cms/domains/usr/__init__.py

"""
'usr' 도메인 패키지입니다.

시스템 사용자, 권한 그룹, 그룹에 부여된 라우트 권한을 관리하고
로그인/토큰 갱신 및 관리자 엔드포인트를 제공합니다.

주요 서브모듈:
- `models.py`: cms_user, cms_group, cms_permission 테이블의 SQLModel 정의.
- `schemas.py`: 응답 직렬화와 CRUD 입력용 스키마.
- `validators.py`: 요청 본문/쿼리/경로 값 검증기(Validator).
- `crud.py`: 비동기 CRUD 로직과 인가 가드용 조회 어댑터.
- `routers.py`: /cms/user, /cms/admin 엔드포인트.
"""

__title__ = "CMS User Domain"
__description__ = "Manages users, groups and group permissions, and handles authentication."
__all__ = []
