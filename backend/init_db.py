"""
数据库初始化脚本
---------------------------------
功能：
- 按 DATABASE_URL 创建 users 表（服务启动时也会自动建表，此脚本用于部署前预先建表）

使用：
python backend/init_db.py
"""

import asyncio
import sys

from authsvc.config.database import create_engine_from_settings, init_models
from authsvc.config.settings import load_settings
from authsvc.models.base import Base
from authsvc.utils.errors import ConfigurationError


async def init_database():
    """初始化数据库表"""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print("正在初始化数据库...")
    engine = create_engine_from_settings(settings)
    await init_models(engine)
    await engine.dispose()

    print("✅ 数据库表创建成功！")
    print(f"   已创建表：{', '.join(Base.metadata.tables.keys())}")


if __name__ == "__main__":
    asyncio.run(init_database())
