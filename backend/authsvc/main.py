"""
后端入口（FastAPI 应用）
---------------------------------
功能：
- `create_app(settings)`：按校验过的配置创建应用，配置 CORS、统一异常处理，
  挂载认证路由（前缀 `/api/v1/auth`），暴露健康检查 `/healthz`；
- lifespan 中创建数据库引擎、建表，关闭时释放连接池；Token 签发器与发信服务在创建时挂到 app.state；
- 生产环境（ENVIRONMENT=PRODUCTION）关闭 /docs、/redoc 与 /openapi.json；
- `main()`：命令行入口，配置缺失时记录日志并以状态码 1 退出，不对外服务。

使用：
- python -m authsvc.main
- uvicorn "authsvc.main:create_app" --factory
"""

import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config.database import create_engine_from_settings, create_session_factory, init_models
from .config.settings import Settings, load_settings
from .routers.auth_router import router as auth_router
from .services.email_service import Mailer
from .services.token_service import TokenIssuer
from .utils.errors import ConfigurationError, register_exception_handlers
from .utils.logger import log, setup_logging


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine_from_settings(settings)
        await init_models(engine)
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        log.info(f"认证服务启动（{settings.environment.value}）")
        try:
            yield
        finally:
            await engine.dispose()
            log.info("认证服务已停止，数据库连接已释放")

    # 生产环境不暴露交互式文档与 OpenAPI 描述
    docs_enabled = not settings.is_production
    app = FastAPI(
        title="Auth API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings
    app.state.token_issuer = TokenIssuer(settings)
    app.state.mailer = Mailer(settings)

    # allow_credentials 与通配来源不能同时使用
    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/healthz")
    async def healthz():
        """健康检查接口：用于确认服务已启动且可访问。"""
        return {"status": "ok"}

    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    return app


def main() -> None:
    # 配置尚未加载，先按默认等级输出启动错误
    setup_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        log.critical(f"启动失败：{e}")
        sys.exit(1)

    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
