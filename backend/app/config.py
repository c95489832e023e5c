"""
应用配置
所有配置项都可以通过环境变量覆盖
"""
import os

# 数据库连接
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./database.db")

# 日志级别
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# 允许的跨域来源，逗号分隔
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# 登录令牌有效期（小时）
TOKEN_TTL_HOURS = int(os.getenv("TOKEN_TTL_HOURS", "72"))

# 是否记录操作日志
OPERATION_LOG_ENABLED = os.getenv("OPERATION_LOG_ENABLED", "1") not in ("0", "false", "False")
