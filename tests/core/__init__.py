# tests/core/__init__.py

"""
cms.core 구성 요소의 단위 테스트 패키지입니다.
"""
