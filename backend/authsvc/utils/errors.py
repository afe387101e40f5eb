"""
错误分类与全局异常处理
---------------------------------
功能：
- 定义业务可预期错误（AppError 及其子类），每类错误自带 HTTP 状态码与可直接返回给客户端的安全提示；
- `ConfigurationError` 仅用于启动阶段，出现即终止进程；
- `register_exception_handlers` 将各类异常统一转换为 `ApiResponse` 结构：
  - AppError → 对应状态码 + 错误信息；
  - 请求体缺字段/类型错误 → 400；
  - 路由不存在等 HTTPException → 原状态码；
  - 其他未预期异常 → 服务端记录完整堆栈，客户端只收到通用提示。
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..models.response_schema import ApiResponse
from .logger import log


class ConfigurationError(Exception):
    """必填配置缺失（密钥、连接串等），进程不得对外服务"""


class AppError(Exception):
    """可预期的业务错误"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "服务器内部错误"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "请求参数错误"


class DuplicateResourceError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "资源已存在"


class InvalidOTPError(ValidationError):
    default_message = "验证码无效或已过期"


class InvalidResetTicketError(ValidationError):
    default_message = "重置凭证无效或已过期"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "未授权"


class TokenExpiredError(UnauthorizedError):
    default_message = "Token 已过期"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "资源不存在"


class MailDeliveryError(AppError):
    default_message = "邮件发送失败，请稍后重试"


def _error_body(status_code: int, message: str, data=None) -> dict:
    return ApiResponse.error(message=message, code=status_code, data=data).model_dump()


def register_exception_handlers(app: FastAPI) -> None:
    """在应用上注册统一异常处理"""

    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} 失败：{exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.status_code, exc.message),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(400, "请填写所有必填字段且格式正确", {"fields": fields}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "请求失败"
        if exc.status_code == 404 and message == "Not Found":
            message = f"找不到 {request.url.path}"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        log.error(f"{request.method} {request.url.path} 未处理异常：{exc}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(500, "服务器开小差了，请稍后再试"),
        )
