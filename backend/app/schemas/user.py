"""
员工用户相关的Pydantic模型
"""
from pydantic import BaseModel, Field, EmailStr, field_serializer
from typing import Literal, Optional
from datetime import datetime
from app.schemas.common import format_datetime_local

Role = Literal["owner", "admin"]


class UserBase(BaseModel):
    """用户基础模型"""
    email: EmailStr = Field(..., description="邮箱")
    display_name: Optional[str] = Field(None, description="显示名称", max_length=100)
    role: Role = Field("admin", description="角色：owner=所有者, admin=管理员")
    is_active: bool = Field(True, description="是否启用")


class UserCreate(UserBase):
    """创建用户模型"""
    password: str = Field(..., description="密码", min_length=6)


class UserUpdate(BaseModel):
    """更新用户模型"""
    display_name: Optional[str] = Field(None, description="显示名称", max_length=100)
    password: Optional[str] = Field(None, description="密码", min_length=6)
    role: Optional[Role] = Field(None, description="角色")
    is_active: Optional[bool] = Field(None, description="是否启用")


class UserResponse(BaseModel):
    """用户响应模型"""
    id: int
    email: str
    display_name: Optional[str] = None
    role: str
    is_active: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_serializer('created_at', 'updated_at')
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        return format_datetime_local(dt)
