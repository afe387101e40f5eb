"""
数据库模型基类
---------------------------------
功能：
- 提供统一的 Base 供 User 等模型继承
- 启动时 `Base.metadata.create_all` 依赖所有模型已导入并注册到同一 metadata
"""

from sqlalchemy.orm import declarative_base

# 创建统一的 Base
Base = declarative_base()
