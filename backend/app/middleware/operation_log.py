"""
操作日志中间件
记录所有修改数据的API操作
"""
import logging
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError
from app.api.auth import token_email
from app.db.database import SessionLocal
from app.models.operation_log import OperationLog

logger = logging.getLogger("studio.audit")

# 请求体中不记录的字段
SENSITIVE_PATHS = ("/login", "/register", "/api/users")


class OperationLogMiddleware(BaseHTTPMiddleware):
    """操作日志中间件"""

    # 不需要记录日志的路径
    EXCLUDED_PATHS = [
        "/",
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    ]

    # 模块映射：根据路径判断操作模块
    MODULE_MAP = {
        "/api/bookings": "预约管理",
        "/api/reports": "财务报表",
        "/api/settings": "价格设置",
        "/api/schedule": "工作时间",
        "/api/users": "员工管理",
        "/api/operation-logs": "操作日志",
        "/login": "认证",
        "/logout": "认证",
        "/register": "认证",
    }

    # 操作类型映射：根据HTTP方法判断操作类型
    ACTION_MAP = {
        "POST": "创建",
        "PUT": "更新",
        "DELETE": "删除",
        "PATCH": "修改",
    }

    # 更具体的操作：(方法, 路径片段) -> 操作名称
    SPECIFIC_ACTIONS = [
        ("POST", "/quote", "计算价格"),
        ("POST", "/draft-from-event", "日历事件转预约"),
        ("POST", "/cancel", "取消预约"),
        ("POST", "/reject", "标记不计入报表"),
        ("POST", "/repair-links", "修复报表关联"),
        ("POST", "/api/reports/bookings/", "加入报表"),
        ("DELETE", "/api/reports/entries/", "移出报表"),
        ("PUT", "/prices/rooms", "修改房间价格"),
        ("PUT", "/prices/equipment", "修改设备价格"),
        ("POST", "/login", "登录"),
        ("POST", "/logout", "退出登录"),
        ("POST", "/register", "注册"),
    ]

    def resolve_module(self, path: str) -> str:
        for path_prefix, module_name in self.MODULE_MAP.items():
            if path.startswith(path_prefix):
                return module_name
        return "未知模块"

    def resolve_action(self, method: str, path: str) -> str:
        for action_method, fragment, name in self.SPECIFIC_ACTIONS:
            if method == action_method and fragment in path:
                return name
        return self.ACTION_MAP.get(method, method)

    async def dispatch(self, request: Request, call_next):
        """处理请求并记录日志"""
        # 只记录修改类请求，跳过查询和CORS预检
        if request.method in ("GET", "HEAD", "OPTIONS") or request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = request.url.path
        ip_address = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent", "")

        user_email = "未知用户"
        auth_header = request.headers.get("authorization", "")
        if auth_header.lower().startswith("bearer "):
            user_email = token_email(auth_header[7:].strip()) or user_email

        request_data = None
        if method in ("POST", "PUT", "PATCH") and not path.startswith(SENSITIVE_PATHS):
            body = await request.body()
            if body:
                request_data = body.decode("utf-8", errors="replace")[:2000]  # 限制长度

        response = await call_next(request)

        execution_time = int((time.time() - start_time) * 1000)
        status_code = response.status_code
        error_message = f"HTTP {status_code} 错误" if status_code >= 400 else None

        db = SessionLocal()
        try:
            db.add(OperationLog(
                user_email=user_email,
                action=self.resolve_action(method, path),
                module=self.resolve_module(path),
                method=method,
                path=path,
                ip_address=ip_address,
                user_agent=user_agent[:500] if user_agent else None,
                request_data=request_data,
                status_code=status_code,
                error_message=error_message,
                execution_time=execution_time
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("记录操作日志失败: %s", e)
        finally:
            db.close()

        return response
