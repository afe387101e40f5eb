"""
认证路由
---------------------------------
功能：
- POST /api/v1/auth/signup          - 用户注册（返回 Token 对）
- POST /api/v1/auth/login           - 用户登录（返回 Token 对）
- POST /api/v1/auth/refresh-token   - 用刷新 Token 换取新的访问 Token
- POST /api/v1/auth/send-otp        - 发送找回密码验证码（别名 forgot-password）
- POST /api/v1/auth/verify-otp      - 校验验证码，返回临时重置凭证
- PATCH/PUT /api/v1/auth/reset-password - 凭临时重置凭证设置新密码
- POST /api/v1/auth/logout          - 退出（无状态，客户端丢弃 Token）
- GET  /api/v1/auth/me              - 获取当前用户信息
- GET  /api/v1/auth/users           - 用户列表

使用：
- 在 main.py 中通过 app.include_router(router, prefix="/api/v1/auth") 挂载
- 受保护接口需在请求头中携带 Authorization: Bearer <accessToken>
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status

from ..models.auth_schema import (
    LoginRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    SendOTPRequest,
    SignupRequest,
    VerifyOTPRequest,
    user_to_dict,
)
from ..models.response_schema import ApiResponse
from ..models.user import User
from ..services.auth_service import (
    authenticate,
    get_current_user,
    get_reset_flow,
    get_token_issuer,
    get_user_store,
    refresh_access_token,
)
from ..services.otp_service import PasswordResetFlow
from ..services.token_service import TokenIssuer
from ..services.user_store import UserStore
from ..utils.errors import NotFoundError, ValidationError
from ..utils.logger import log

router = APIRouter()

OTP_SENT_MESSAGE = "如果该邮箱已注册，验证码已发送"


def _token_response(user: User, issuer: TokenIssuer, message: str) -> ApiResponse:
    pair = issuer.issue_pair(user.id)
    return ApiResponse.ok({**pair.to_dict(), "user": user_to_dict(user)}, message=message)


# ============================================================================
# 公开接口
# ============================================================================

@router.post("/signup", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    req: SignupRequest,
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """
    用户注册

    请求体：
    - fullname / phonenumber / email / password / passwordConfirm

    返回：
    - accessToken、refreshToken、user
    """
    if req.password != req.password_confirm:
        raise ValidationError("两次输入的密码不一致")

    user = await store.create(req.fullname, req.phonenumber, req.email, req.password)
    return _token_response(user, issuer, "注册成功")


@router.post("/login", response_model=ApiResponse)
async def login(
    req: LoginRequest,
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """
    用户登录

    返回：
    - accessToken、refreshToken、user
    """
    user = await authenticate(store, req.email, req.password)
    log.info(f"用户登录：{user.id}")
    return _token_response(user, issuer, "登录成功")


@router.post("/refresh-token", response_model=ApiResponse)
async def refresh_token(
    req: RefreshTokenRequest,
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """用刷新 Token 换取新的访问 Token（刷新 Token 本身保持不变）"""
    access_token = await refresh_access_token(store, issuer, req.refresh_token)
    return ApiResponse.ok({"accessToken": access_token})


@router.post("/send-otp", response_model=ApiResponse)
@router.post("/forgot-password", response_model=ApiResponse)
async def send_otp(
    req: SendOTPRequest,
    background_tasks: BackgroundTasks,
    flow: PasswordResetFlow = Depends(get_reset_flow),
):
    """
    发送找回密码验证码

    无论邮箱是否注册、邮件是否发送成功都返回相同结果，避免账号枚举；
    邮件在响应发出后由后台任务发送。
    """
    await flow.send_otp(req.email, background_tasks)
    return ApiResponse.ok(message=OTP_SENT_MESSAGE)


@router.post("/verify-otp", response_model=ApiResponse)
async def verify_otp(req: VerifyOTPRequest, flow: PasswordResetFlow = Depends(get_reset_flow)):
    """
    校验验证码

    返回：
    - temporaryResetToken：临时重置凭证，用于 reset-password
    """
    ticket = await flow.verify_otp(req.email, req.otp)
    return ApiResponse.ok({"temporaryResetToken": ticket}, message="验证码校验通过")


@router.api_route("/reset-password", methods=["PATCH", "PUT"], response_model=ApiResponse)
async def reset_password(req: ResetPasswordRequest, flow: PasswordResetFlow = Depends(get_reset_flow)):
    """
    重置密码并重新登录

    请求体：
    - temporaryResetToken / newPassword / confirmPassword

    返回：
    - 新的 accessToken、refreshToken、user
    """
    user, pair = await flow.reset_password(
        req.temporary_reset_token, req.new_password, req.confirm_password
    )
    return ApiResponse.ok({**pair.to_dict(), "user": user_to_dict(user)}, message="密码重置成功")


# ============================================================================
# 受保护接口
# ============================================================================

@router.post("/logout", response_model=ApiResponse)
async def logout(current_user: User = Depends(get_current_user)):
    """退出登录：服务端无状态，客户端丢弃 accessToken 与 refreshToken 即可"""
    log.info(f"用户退出：{current_user.id}")
    return ApiResponse.ok(message="已退出登录，请在客户端删除 Token")


@router.get("/me", response_model=ApiResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """
    获取当前用户信息

    需要在请求头中携带 Token：
    Authorization: Bearer <token>
    """
    return ApiResponse.ok(user_to_dict(current_user))


@router.get("/users", response_model=ApiResponse)
async def get_all_users(
    current_user: User = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """用户列表（不含密码及找回密码字段）"""
    users = await store.list_users()
    if not users:
        raise NotFoundError("没有用户")
    return ApiResponse.ok({"count": len(users), "users": [user_to_dict(u) for u in users]})
