"""
用户数据模型
---------------------------------
功能：
- 定义 User 表结构：id、姓名、手机号、邮箱、密码哈希、角色、找回密码字段、时间戳
- 手机号与邮箱均唯一，邮箱统一存小写
- 密码哈希为延迟加载列（deferred），默认查询不返回，登录等场景显式 undefer

使用：
- 读写统一经过 services/user_store.py，不在路由中直接改密码字段
"""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum, String
from sqlalchemy.orm import deferred

from .base import Base


class UserRole(str, enum.Enum):
    """用户角色（封闭枚举）"""
    USER = "user"
    ADMIN = "admin"


def _new_user_id() -> str:
    return uuid4().hex


class User(Base):
    """用户模型"""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_user_id, comment="用户ID")
    fullname = Column(String(100), nullable=False, comment="姓名")
    phonenumber = Column(String(32), unique=True, index=True, nullable=False, comment="手机号")
    email = Column(String(255), unique=True, index=True, nullable=False, comment="邮箱（小写）")
    password_hash = deferred(Column(String(255), nullable=False, comment="密码哈希"))
    role = Column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        default=UserRole.USER,
        comment="角色",
    )

    # 找回密码：OTP 待验证时存 sha256(otp)，验证通过后存 sha256(重置凭证)
    reset_otp_hash = Column(String(64), nullable=True, index=True, comment="OTP/重置凭证哈希")
    reset_otp_expires = Column(DateTime, nullable=True, comment="OTP/重置凭证过期时间")
    reset_ticket_issued = Column(Boolean, nullable=False, default=False, comment="是否已签发重置凭证")

    created_at = Column(DateTime, default=datetime.utcnow, comment="创建时间")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, comment="更新时间")

    def clear_reset_state(self) -> None:
        self.reset_otp_hash = None
        self.reset_otp_expires = None
        self.reset_ticket_issued = False

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
