# cms/domains/usr/validators.py

"""
'usr' 도메인 엔드포인트의 요청 검증기(Validator)를 정의하는 모듈입니다.
"""

from typing import List

from pydantic import TypeAdapter, ValidationError

from cms.core.checks import Coerced
from cms.core.validator import Rule, Validator, custom_validator

from . import schemas as usr_schemas


def _passwords_match(v: Validator, first: str, second: str):
    return v.get(f"body.{first}") == v.get(f"body.{second}"), "passwords must match", second


# =============================================================================
# 인증
# =============================================================================
class LoginValidator(Validator):
    username = Rule("isNotEmpty", "username is required")
    password = Rule("isNotEmpty", "password is required")


class RegisterValidator(Validator):
    username = [
        Rule("isNotEmpty", "username is required"),
        Rule("isLength", "username must be 2 to 24 characters", {"min": 2, "max": 24}),
    ]
    nickname = [
        Rule("isOptional"),
        Rule("isLength", "nickname must be 2 to 24 characters", {"min": 2, "max": 24}),
    ]
    group_id = [
        Rule("isOptional"),
        Rule("isInt", "group id must be a positive integer", {"min": 1}),
    ]
    email = [
        Rule("isOptional"),
        Rule("isEmail", "email is not valid"),
    ]
    password = [
        Rule("isNotEmpty", "password is required"),
        Rule("matches", "password must be 6 to 22 characters", r"^[A-Za-z0-9_*&$#@]{6,22}$"),
    ]
    confirm_password = Rule("isNotEmpty", "confirm password is required")

    @custom_validator(key="confirm_password")
    def validate_confirm_password(self):
        return _passwords_match(self, "password", "confirm_password")


class UpdateInfoValidator(Validator):
    email = [
        Rule("isOptional"),
        Rule("isEmail", "email is not valid"),
    ]
    nickname = [
        Rule("isOptional"),
        Rule("isLength", "nickname must be 2 to 24 characters", {"min": 2, "max": 24}),
    ]
    avatar = [
        Rule("isOptional"),
        Rule("isLength", "avatar path is too long", {"max": 500}),
    ]


class ResetPasswordValidator(Validator):
    new_password = [
        Rule("isNotEmpty", "new password is required"),
        Rule("matches", "password must be 6 to 22 characters", r"^[A-Za-z0-9_*&$#@]{6,22}$"),
    ]
    confirm_password = Rule("isNotEmpty", "confirm password is required")

    @custom_validator(key="confirm_password")
    def validate_confirm_password(self):
        return _passwords_match(self, "new_password", "confirm_password")


class ChangePasswordValidator(ResetPasswordValidator):
    old_password = Rule("isNotEmpty", "old password is required")


# =============================================================================
# 관리자
# =============================================================================
class PositiveIdValidator(Validator):
    id = Rule("isInt", "id must be a positive integer", {"min": 1})


class ResetUserPasswordValidator(ResetPasswordValidator):
    id = Rule("isInt", "id must be a positive integer", {"min": 1})


class UpdateUserGroupValidator(PositiveIdValidator):
    group_id = Rule("isInt", "group id must be a positive integer", {"min": 1})


class UserListValidator(Validator):
    group_id = [
        Rule("isOptional"),
        Rule("isInt", "group id must be a positive integer", {"min": 1}),
    ]


_permission_items = TypeAdapter(List[usr_schemas.PermissionItem])


def as_permission_items(value) -> Coerced:
    """[{permission, module}, ...] 목록을 PermissionItem 목록으로 변환합니다. 두 값 모두 비어 있지 않은 문자열이어야 합니다."""
    try:
        items = _permission_items.validate_python(value)
    except ValidationError:
        return Coerced(False)
    return Coerced(all(item.permission and item.module for item in items), items)


class NewGroupValidator(Validator):
    name = Rule("isNotEmpty", "group name is required")
    info = Rule("isOptional")
    permissions = [
        Rule("isOptional", []),
        Rule(as_permission_items, "permissions must be a list of {permission, module}"),
    ]


class UpdateGroupValidator(PositiveIdValidator):
    name = Rule("isNotEmpty", "group name is required")
    info = Rule("isOptional")


class DispatchPermissionValidator(Validator):
    group_id = Rule("isInt", "group id must be a positive integer", {"min": 1})
    permission = Rule("isNotEmpty", "permission is required")
    module = Rule("isNotEmpty", "module is required")


class DispatchPermissionsValidator(Validator):
    group_id = Rule("isInt", "group id must be a positive integer", {"min": 1})
    permissions = Rule(as_permission_items, "permissions must be a list of {permission, module}")

    @custom_validator
    def validate_permissions(self):
        return bool(self.get("body.permissions")), "permissions must not be empty"
