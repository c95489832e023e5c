"""
数据库模型
"""
from app.models.user import User
from app.models.app_setting import AppSetting
from app.models.booking import Booking
from app.models.report_entry import ReportEntry
from app.models.operation_log import OperationLog

__all__ = [
    "User",
    "AppSetting",
    "Booking",
    "ReportEntry",
    "OperationLog",
]
