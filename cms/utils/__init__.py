# cms/utils/__init__.py

"""
도메인에 속하지 않는 범용 유틸리티 패키지입니다.

- `dicts.py`: 점(.) 경로 기반 중첩 dict 조회/설정.
- `pagination.py`: page/count 쿼리 기반 페이지네이션.
"""
