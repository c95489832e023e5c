"""
员工用户模型
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.sql import func
from app.db.database import Base


class User(Base):
    """员工用户表"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True, comment="邮箱（小写）")
    display_name = Column(String(100), nullable=True, comment="显示名称")
    password_hash = Column(String(255), nullable=False, comment="密码哈希")
    role = Column(String(20), default="admin", nullable=False, comment="角色：owner=所有者, admin=管理员")
    is_active = Column(Boolean, default=True, comment="是否启用")
    created_by = Column(String(255), nullable=True, comment="创建人邮箱")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")
    deleted_at = Column(DateTime(timezone=True), nullable=True, comment="删除时间")

    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_role", "role"),
    )

    @property
    def is_owner(self) -> bool:
        return self.role == "owner"
