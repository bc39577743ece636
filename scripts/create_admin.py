# flake8: noqa
# scripts/create_admin.py

import asyncio

import typer

from cms.core.database import create_db_and_tables, get_async_session_context
from cms.domains.usr import crud as usr_crud
from cms.domains.usr import schemas as usr_schemas
from cms.domains.usr.models import UserAdmin

cli = typer.Typer()


async def create_admin_user(user_in: usr_schemas.UserCreate) -> bool:
    """
    데이터베이스에 최고 관리자 사용자를 생성하는 비동기 함수
    """
    await create_db_and_tables()
    async with get_async_session_context() as db:
        if await usr_crud.user.get_by_username(db, username=user_in.username):
            typer.echo(f"오류: 이미 존재하는 사용자명입니다: {user_in.username}")
            return False
        await usr_crud.user.create(db, obj_in=user_in)
    typer.echo(f"관리자 계정이 성공적으로 생성되었습니다: {user_in.username}")
    return True


@cli.command()
def main(
    username: str = typer.Option(
        "root", '--username', '-u',
        prompt="관리자 사용자명(ID)을 입력하세요",
        help="로그인 시 사용할 사용자명(ID)입니다."
    ),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="관리자 비밀번호를 입력하세요",
        hide_input=True,
        confirmation_prompt=True,
        help="생성할 관리자 계정의 비밀번호입니다. (6~22자)"
    ),
    nickname: str = typer.Option(
        "root", '--nickname', '-n',
        help="관리자의 표시 이름입니다."
    ),
    email: str = typer.Option(
        None, '--email', '-e',
        help="관리자 이메일 주소입니다. (선택)"
    ),
):
    """
    CMS 애플리케이션을 위한 최고 관리자 계정을 생성합니다.
    """
    if not 6 <= len(password) <= 22:
        typer.echo("오류: 비밀번호는 6자 이상 22자 이하여야 합니다.")
        raise typer.Abort()

    user_data = usr_schemas.UserCreate(
        username=username,
        password=password,
        nickname=nickname,
        email=email,
        admin=UserAdmin.ADMIN,
    )
    if not asyncio.run(create_admin_user(user_data)):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
