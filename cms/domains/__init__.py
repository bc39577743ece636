# cms/domains/__init__.py

"""
CMS 애플리케이션의 도메인 패키지입니다.

- `usr`: 사용자, 권한 그룹, 그룹별 권한과 인증 엔드포인트.
- `log`: 작업 로그(operation log) 기록과 조회.
- `file`: 파일 업로드와 로컬 저장.

각 도메인은 models / schemas / crud / routers 를 기본 구성으로 가지며,
필요에 따라 validators, services, tasks 모듈을 추가로 둡니다.
"""
