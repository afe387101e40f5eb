"""
数据库连接配置
---------------------------------
功能：
- 根据配置中的 `DATABASE_URL` 创建异步引擎与会话工厂（启动时创建一次，挂在 app.state 上）
- 启动时建表（`init_models`），关闭时释放连接池
- 提供依赖注入函数 `get_db` 供路由使用，每个请求一个独立会话

使用：
- 在路由中通过 Depends(get_db) 获取数据库会话
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .settings import Settings
from ..models.base import Base


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """按连接串创建异步引擎；SQLite 不支持连接池参数，单独处理。"""
    url = settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False, future=True)
    return create_async_engine(
        url,
        echo=False,
        future=True,
        pool_pre_ping=True,  # 使用前检查连接可用
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """创建所有表（已存在的表不会重建）"""
    # 导入模型，确保注册到 Base.metadata
    from ..models import user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    依赖注入：获取数据库会话

    使用示例：
    @router.get("/example")
    async def example(db: AsyncSession = Depends(get_db)):
        ...
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
