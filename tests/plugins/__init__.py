"""테스트용 샘플 플러그인 패키지입니다."""
