# tests/domains/__init__.py

"""
도메인별 API 통합 테스트 패키지입니다. (usr, admin, log, file)
"""
