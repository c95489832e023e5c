"""
价格表设置API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.auth import get_current_user, require_owner
from app.db.database import get_db
from app.models.user import User
from app.schemas.settings import EquipmentUpdate, PriceTable, RoomsUpdate
from app.services.price_table import PriceTableStore, get_price_table_store

router = APIRouter(prefix="/api/settings", tags=["价格设置"])


def current_price_table(
    db: Session = Depends(get_db),
    store: PriceTableStore = Depends(get_price_table_store)
) -> PriceTable:
    """FastAPI依赖：本次请求使用的价格表"""
    return store.load(db)


@router.get("/prices", response_model=PriceTable)
def get_prices(
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """获取房间和设备价格"""
    return price_table


@router.put("/prices/rooms", response_model=PriceTable)
def update_room_prices(
    request: RoomsUpdate,
    db: Session = Depends(get_db),
    store: PriceTableStore = Depends(get_price_table_store),
    owner: User = Depends(require_owner)
):
    """更新房间价格"""
    return store.update_rooms(db, request.rooms, owner.email)


@router.put("/prices/equipment", response_model=PriceTable)
def update_equipment_prices(
    request: EquipmentUpdate,
    db: Session = Depends(get_db),
    store: PriceTableStore = Depends(get_price_table_store),
    owner: User = Depends(require_owner)
):
    """更新设备价格"""
    return store.update_equipment(db, request.equipment, owner.email)
