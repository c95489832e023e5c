"""
FastAPI主应用入口
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import traceback
from app.config import CORS_ORIGINS, LOG_LEVEL, OPERATION_LOG_ENABLED
from app.db.database import engine, Base
from app.middleware.operation_log import OperationLogMiddleware

# 导入所有模型以确保表被创建
from app.models import User, AppSetting, Booking, ReportEntry, OperationLog  # noqa: F401

logging.basicConfig(level=LOG_LEVEL, format='[%(asctime)s] %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger("studio.app")

# 创建数据库表
Base.metadata.create_all(bind=engine)

# 创建FastAPI应用
app = FastAPI(
    title="排练室预约管理API",
    description="排练室预约、计价、财务报表与工资统计",
    version="1.0.0"
)

if OPERATION_LOG_ENABLED:
    app.add_middleware(OperationLogMiddleware)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 全局异常处理
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """全局异常处理器，确保所有错误都返回CORS头"""
    traceback_str = traceback.format_exc()
    logger.error("未处理的异常: %s %s: %s\n%s", request.method, request.url.path, exc, traceback_str)
    return JSONResponse(
        status_code=500,
        content={
            "detail": f"内部服务器错误: {exc}",
            "traceback": traceback_str if app.debug else None
        },
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "*",
            "Access-Control-Allow-Headers": "*",
        }
    )


@app.get("/")
async def root():
    """根路径"""
    return {"message": "排练室预约管理API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """健康检查"""
    return {"status": "ok"}


# 注册API路由
from app.api import auth, users, settings, bookings, reports, schedule, operation_logs  # noqa: E402
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(settings.router)
app.include_router(bookings.router)
app.include_router(reports.router)
app.include_router(schedule.router)
app.include_router(operation_logs.router)
