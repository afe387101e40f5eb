"""
认证服务
---------------------------------
功能：
- 登录校验：邮箱 + 密码
- 刷新访问 Token：校验刷新 Token 并确认用户仍然存在
- 路由保护：`get_current_user` 依赖，从 Authorization 头解析 Bearer Token，
  校验后查出用户并作为依赖返回
- 提供 Token 签发器、发信服务、找回密码流程的依赖注入函数（均来自 app.state）

使用：
@router.get("/protected")
async def protected_route(current_user: User = Depends(get_current_user)):
    return {"user_id": current_user.id}
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer
from fastapi.security.http import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_db
from ..models.user import User
from ..utils.errors import UnauthorizedError
from ..utils.logger import log
from .otp_service import PasswordResetFlow
from .token_service import TokenIssuer
from .user_store import UserStore

# HTTP Bearer 认证方案（缺失时由我们自己抛 401）
security = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_mailer(request: Request):
    return request.app.state.mailer


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_reset_flow(
    request: Request,
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> PasswordResetFlow:
    return PasswordResetFlow(store, issuer, get_mailer(request), request.app.state.settings)


async def authenticate(store: UserStore, email: str, password: str) -> User:
    """
    校验邮箱与密码

    Raises:
        UnauthorizedError: 用户不存在或密码错误（不区分两者）
    """
    user = await store.find_by_email(email, include_password=True)
    if user is None or not await store.verify_password(user, password):
        log.info("登录失败：邮箱或密码错误")
        raise UnauthorizedError("邮箱或密码错误")
    return user


async def refresh_access_token(store: UserStore, issuer: TokenIssuer, refresh_token: Optional[str]) -> str:
    """
    用刷新 Token 换取新的访问 Token（刷新 Token 本身不轮换）

    Raises:
        UnauthorizedError: 刷新 Token 缺失、无效、过期，或用户已不存在
    """
    if not refresh_token:
        raise UnauthorizedError("缺少刷新 Token")
    user_id = issuer.verify_refresh(refresh_token)
    user = await store.find_by_id(user_id)
    if user is None:
        raise UnauthorizedError("刷新 Token 无效：用户不存在")
    return issuer.issue_access(user.id)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> User:
    """
    获取当前登录用户（依赖注入函数）

    Raises:
        UnauthorizedError: 未携带 Token、Token 无效/过期、用户已不存在
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("未登录：缺少 Bearer Token")

    try:
        user_id = issuer.verify_access(credentials.credentials)
    except UnauthorizedError as e:
        log.warning(f"{request.method} {request.url.path} 拒绝访问：{e.message}")
        raise

    user = await store.find_by_id(user_id)
    if user is None:
        raise UnauthorizedError("用户不存在")

    return user
