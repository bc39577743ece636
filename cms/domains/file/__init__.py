# cms/domains/file/__init__.py

"""
'file' 도메인 패키지입니다.

업로드된 파일을 로컬 디스크에 저장하고 MD5로 중복을 제거하며,
cms_file 테이블에 메타 정보를 기록합니다. (/cms/file)
"""
