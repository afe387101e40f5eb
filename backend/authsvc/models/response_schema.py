"""
统一返回模型（ApiResponse）
---------------------------------
功能：
- 认证接口统一返回结构：code、message、data；
- 成功时 code 为 0，失败时 code 与 HTTP 状态码一致（由全局异常处理填充）；
- `ok` 与 `error` 工厂方法供路由与异常处理快速构建返回体。
"""

from typing import Any, Optional
from pydantic import BaseModel


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Optional[Any] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": 0,
                "message": "登录成功",
                "data": {"accessToken": "eyJ...", "refreshToken": "eyJ...", "user": {"id": "9f1c..."}},
            }
        }
    }

    @classmethod
    def ok(cls, data: Any | None = None, message: str = "success") -> "ApiResponse":
        return cls(code=0, message=message, data=data)

    @classmethod
    def error(cls, message: str = "error", code: int = 1, data: Any | None = None) -> "ApiResponse":
        return cls(code=code, message=message, data=data)
