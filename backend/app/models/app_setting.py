"""
应用设置模型（价格表、工作时间等以JSON保存）
"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from app.db.database import Base


class AppSetting(Base):
    """应用设置表"""
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True, comment="设置键")
    value = Column(Text, nullable=False, comment="设置值（JSON）")
    description = Column(String(200), comment="设置说明")
    updated_by = Column(String(255), nullable=True, comment="最后修改人")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")
