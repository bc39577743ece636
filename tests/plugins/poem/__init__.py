"""
시 목록을 제공하는 샘플 플러그인입니다.

    PLUGIN_PATH='{"poem": {"enable": true, "path": "tests.plugins.poem"}}'
"""
