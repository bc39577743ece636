# cms/domains/log/__init__.py

"""
'log' 도메인 패키지입니다.

operation_log 의존성이 남긴 작업 로그(cms_log)를 저장하고,
그룹 권한으로 보호되는 조회/검색 엔드포인트(/cms/log)를 제공합니다.
"""
