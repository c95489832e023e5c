"""
价格表相关的Pydantic模型
"""
from pydantic import BaseModel, Field, field_serializer
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from app.schemas.common import format_datetime_local


class RoomTariff(BaseModel):
    """房间价格（四档）"""
    weekday_day_price: Decimal = Field(..., ge=0, description="工作日17:00前")
    weekday_day_resident_price: Decimal = Field(..., ge=0, description="工作日17:00前（常驻）")
    weekday_evening_price: Decimal = Field(..., ge=0, description="工作日17:00后及周末")
    weekday_evening_resident_price: Decimal = Field(..., ge=0, description="工作日17:00后及周末（常驻）")


class Room(BaseModel):
    """排练房间"""
    id: str = Field(..., description="房间ID", max_length=50)
    name: str = Field(..., description="名称", max_length=100)
    tariffs: RoomTariff


class Equipment(BaseModel):
    """租赁设备"""
    id: str = Field(..., description="设备ID", max_length=50)
    name: str = Field(..., description="名称", max_length=100)
    price_per_hour: Decimal = Field(..., ge=0, description="每小时价格（不享受常驻折扣）")


class PriceTable(BaseModel):
    """价格表快照"""
    rooms: List[Room] = Field(default_factory=list)
    equipment: List[Equipment] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @field_serializer('updated_at')
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        return format_datetime_local(dt)

    def find_room(self, room_id: Optional[str]) -> Optional[Room]:
        for room in self.rooms:
            if room.id == room_id:
                return room
        return None

    def find_equipment(self, equipment_id: Optional[str]) -> Optional[Equipment]:
        for item in self.equipment:
            if item.id == equipment_id:
                return item
        return None


class RoomsUpdate(BaseModel):
    """更新房间价格请求"""
    rooms: List[Room] = Field(..., min_length=1)


class EquipmentUpdate(BaseModel):
    """更新设备价格请求"""
    equipment: List[Equipment] = Field(..., min_length=1)
