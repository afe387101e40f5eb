"""
认证相关的 Pydantic Schema
---------------------------------
功能：
- 定义各认证接口的请求体，字段名与前端约定一致（驼峰，如 passwordConfirm）
- `user_to_dict`：对外返回的用户信息，不含密码与找回密码字段
"""

from typing import Annotated, Any, Dict

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

from .user import User

# 先去除首尾空白再校验长度，纯空白视为缺失
Fullname = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
PhoneNumber = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SignupRequest(_CamelModel):
    """注册请求"""
    fullname: Fullname = Field(..., description="姓名")
    phonenumber: PhoneNumber = Field(..., description="手机号")
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=6, max_length=128, description="密码（至少6位）")
    password_confirm: str = Field(..., alias="passwordConfirm", min_length=1, description="确认密码")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "fullname": "A B",
                "phonenumber": "+100",
                "email": "a@b.com",
                "password": "secret1",
                "passwordConfirm": "secret1",
            }
        },
    )


class LoginRequest(_CamelModel):
    """登录请求"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(_CamelModel):
    """刷新 Token 请求（缺失时返回 401 而非 400）"""
    refresh_token: str = Field("", alias="refreshToken")


class SendOTPRequest(_CamelModel):
    """发送验证码请求"""
    email: EmailStr


class VerifyOTPRequest(_CamelModel):
    """校验验证码请求"""
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=16)


class ResetPasswordRequest(_CamelModel):
    """重置密码请求"""
    temporary_reset_token: str = Field(..., alias="temporaryResetToken", min_length=1)
    new_password: str = Field("", alias="newPassword")
    confirm_password: str = Field("", alias="confirmPassword")


def user_to_dict(user: User) -> Dict[str, Any]:
    """用户信息响应（不含密码、找回密码字段）"""
    return {
        "id": user.id,
        "fullname": user.fullname,
        "phonenumber": user.phonenumber,
        "email": user.email,
        "role": user.role.value if user.role else None,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }
