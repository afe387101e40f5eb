"""
后端基础配置（pydantic-settings + .env 自动加载）
---------------------------------
功能：
- 定义 `Settings`：JWT 签名密钥与有效期、OTP 有效期、数据库连接串、
  SMTP 发信配置、允许的跨域源、运行环境、监听端口、日志等级。
- 启动时只构造一次（`load_settings()`），之后显式传入 Token 签发器、
  发信服务与数据库初始化，不在业务代码里到处读取环境变量。
- 缺少必填项（密钥、连接串、发信配置）时抛出 `ConfigurationError`，
  进程在 `main()` 中记录日志后退出，不对外提供服务。

使用说明：
- 可通过系统环境变量或项目根目录的 `.env` 注入；环境变量已存在时不被 .env 覆盖；
- `JWT_REFRESH_SECRET` 未设置时回退为 `JWT_SECRET`；
- `ALLOWED_ORIGINS` 为逗号分隔的字符串，`*` 表示允许任意来源。
"""

from enum import Enum
from typing import List, Optional

from dotenv import find_dotenv
from pydantic import Field, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.errors import ConfigurationError


# 自动定位 .env：优先当前工作目录向上查找，找不到时不加载文件
_ENV_FILE = find_dotenv(filename=".env", usecwd=True) or None


class Environment(str, Enum):
    """运行环境"""
    DEVELOPMENT = "DEVELOPMENT"
    STAGING = "STAGING"
    PRODUCTION = "PRODUCTION"


class Settings(BaseSettings):
    # ── JWT ──────────────────────────────────────────────────────────────
    jwt_secret: str = Field(..., min_length=1)
    jwt_refresh_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_access_expire_minutes: int = Field(15, gt=0)
    jwt_refresh_expire_days: int = Field(7, gt=0)

    # ── OTP / 重置凭证 ───────────────────────────────────────────────────
    otp_expire_minutes: int = Field(10, gt=0)
    reset_ticket_expire_minutes: int = Field(10, gt=0)

    # ── 数据库 ───────────────────────────────────────────────────────────
    database_url: str = Field(..., min_length=1)

    # ── 发信（SMTP） ─────────────────────────────────────────────────────
    email_from: str = Field(..., min_length=3)
    mail_sender_name: str = "SafeJourney"
    smtp_host: str = Field(..., min_length=1)
    smtp_port: int = 587
    smtp_username: str = Field(..., min_length=1)
    smtp_password: str = Field(..., min_length=1)
    smtp_use_tls: bool = True

    # ── 服务 ─────────────────────────────────────────────────────────────
    allowed_origins: str = "*"
    environment: Environment = Environment.DEVELOPMENT
    host: str = "0.0.0.0"
    port: int = 5050
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def _upper_environment(cls, value):
        return value.upper() if isinstance(value, str) else value

    @property
    def refresh_secret(self) -> str:
        """刷新 Token 的签名密钥，未单独配置时回退为访问密钥。"""
        return self.jwt_refresh_secret or self.jwt_secret

    @property
    def cors_origins(self) -> List[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return origins or ["*"]

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION


def load_settings(**overrides) -> Settings:
    """
    构造并校验配置对象

    Args:
        overrides: 显式传入的配置项（测试中常用 `_env_file=None` 屏蔽 .env）

    Returns:
        校验通过的 Settings

    Raises:
        ConfigurationError: 必填项缺失或取值非法
    """
    try:
        return Settings(**overrides)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]).upper() for err in e.errors()})
        raise ConfigurationError(f"配置缺失或非法：{', '.join(fields)}") from e
