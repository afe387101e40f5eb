"""
用户凭证存储
---------------------------------
功能：
- 密码哈希与验证（passlib + bcrypt，自动加盐，运行在线程池中避免阻塞事件循环）
- 用户的创建、按邮箱/ID/重置凭证查询、列表查询
- `persist_user`：显式的"保存前哈希"，只有密码确实变更时才重新哈希，并同时清空找回密码状态

使用：
- 注册：`UserStore(db).create(...)`
- 登录：`find_by_email(email, include_password=True)` + `verify_password()`
- 重置密码：`persist_user(user, raw_password=新密码)`
"""

from datetime import datetime
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext
from sqlalchemy import inspect, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from ..models.user import User
from ..utils.errors import DuplicateResourceError
from ..utils.logger import log

# 密码加密上下文（使用 bcrypt）
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def hash_password(password: str) -> str:
    """
    对密码进行哈希加密（每次生成新的盐）

    Args:
        password: 明文密码

    Returns:
        加密后的密码哈希
    """
    return await run_in_threadpool(pwd_context.hash, password)


async def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    验证密码是否正确（bcrypt 比较，不做明文比较）

    Args:
        plain_password: 明文密码
        hashed_password: 数据库中存储的密码哈希

    Returns:
        密码是否匹配
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return await run_in_threadpool(pwd_context.verify, plain_password, hashed_password)
    except ValueError:
        # 存储的哈希格式无法识别
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserStore:
    """用户表的读写入口，每个请求使用一个实例"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, fullname: str, phonenumber: str, email: str, raw_password: str) -> User:
        """
        创建用户

        Raises:
            DuplicateResourceError: 邮箱或手机号已被注册
        """
        email = normalize_email(email)
        if await self.find_by_email(email) is not None:
            raise DuplicateResourceError("该邮箱已被注册")

        user = User(
            fullname=fullname.strip(),
            phonenumber=phonenumber.strip(),
            email=email,
        )
        await self.persist_user(user, raw_password=raw_password)
        log.info(f"新用户注册：{user.id}")
        return user

    async def find_by_email(self, email: str, include_password: bool = False) -> Optional[User]:
        stmt = select(User).where(User.email == normalize_email(email))
        if include_password:
            stmt = stmt.options(undefer(User.password_hash))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def find_by_reset_ticket(self, ticket_hash: str) -> Optional[User]:
        stmt = select(User).where(
            User.reset_otp_hash == ticket_hash,
            User.reset_ticket_issued.is_(True),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_users(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def verify_password(self, user: User, candidate: str) -> bool:
        # 未显式加载密码列时不触发懒加载，直接视为不匹配
        if "password_hash" in inspect(user).unloaded:
            return False
        return await verify_password(candidate, user.password_hash)

    async def persist_user(self, user: User, raw_password: Optional[str] = None) -> User:
        """
        保存用户

        Args:
            user: 待保存的用户
            raw_password: 新的明文密码；传入即表示密码发生了变更，
                会先哈希再落库，并清空 OTP/重置凭证；不传则保留原哈希

        Raises:
            DuplicateResourceError: 触发唯一约束（邮箱/手机号）
        """
        if raw_password is not None:
            user.password_hash = await hash_password(raw_password)
            user.clear_reset_state()

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            log.warning(f"用户保存触发唯一约束：{e.orig}")
            raise DuplicateResourceError("邮箱或手机号已被注册") from e
        return user

    async def issue_reset_ticket(
        self, user: User, otp_hash: str, ticket_hash: str, expires: datetime
    ) -> bool:
        """
        以单条条件 UPDATE 消费验证码并写入重置凭证

        只有该验证码仍处于待验证状态时才会命中，同一验证码的并发校验只有一个成功。

        Returns:
            是否写入成功
        """
        stmt = (
            update(User)
            .where(
                User.id == user.id,
                User.reset_otp_hash == otp_hash,
                User.reset_ticket_issued.is_(False),
            )
            .values(reset_otp_hash=ticket_hash, reset_otp_expires=expires, reset_ticket_issued=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        if result.rowcount != 1:
            return False
        await self.db.refresh(user)
        return True
