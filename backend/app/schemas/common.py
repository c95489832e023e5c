"""
通用的Pydantic工具
"""
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

# 工作室所在时区
STUDIO_TZ = ZoneInfo("Europe/Kyiv")


def format_datetime_local(dt: Optional[datetime]) -> Optional[str]:
    """将UTC时间转换为本地时间字符串"""
    if dt is None:
        return None
    # 如果时间没有时区信息，假设它是 UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    local_dt = dt.astimezone(STUDIO_TZ)
    return local_dt.strftime("%Y-%m-%d %H:%M:%S")
