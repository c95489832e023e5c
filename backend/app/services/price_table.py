"""
价格表的存取

价格表以JSON保存在 app_settings 表中（key=price_table）。
每次计价都显式传入价格表，不使用进程级的全局可变价格。
"""
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.app_setting import AppSetting
from app.schemas.settings import Equipment, PriceTable, Room, RoomTariff

logger = logging.getLogger("studio.settings")

PRICE_TABLE_KEY = "price_table"

DEFAULT_ROOMS: List[Room] = [
    Room(
        id="standart",
        name="Standart",
        tariffs=RoomTariff(
            weekday_day_price=Decimal("230"),
            weekday_day_resident_price=Decimal("190"),
            weekday_evening_price=Decimal("280"),
            weekday_evening_resident_price=Decimal("230"),
        ),
    ),
    Room(
        id="main",
        name="Main",
        tariffs=RoomTariff(
            weekday_day_price=Decimal("270"),
            weekday_day_resident_price=Decimal("220"),
            weekday_evening_price=Decimal("330"),
            weekday_evening_resident_price=Decimal("270"),
        ),
    ),
]

DEFAULT_EQUIPMENT: List[Equipment] = [
    Equipment(id="guitar", name="Електро-гітара", price_per_hour=Decimal("100")),
    Equipment(id="bass", name="Бас-гітара", price_per_hour=Decimal("100")),
    Equipment(id="cymbals", name="Тарілки", price_per_hour=Decimal("100")),
    Equipment(id="cymbal-one", name="Тарілка одна", price_per_hour=Decimal("50")),
]


def default_price_table() -> PriceTable:
    return PriceTable(
        rooms=[room.model_copy(deep=True) for room in DEFAULT_ROOMS],
        equipment=[item.model_copy(deep=True) for item in DEFAULT_EQUIPMENT],
    )


def merge_with_defaults(table: PriceTable) -> PriceTable:
    """
    合并内置默认项
    按ID取并集：已保存的价格保持不变，新版本加入的房间/设备追加到末尾
    """
    rooms = list(table.rooms)
    known_rooms = {room.id for room in rooms}
    rooms.extend(room.model_copy(deep=True) for room in DEFAULT_ROOMS if room.id not in known_rooms)

    equipment = list(table.equipment)
    known_equipment = {item.id for item in equipment}
    equipment.extend(item.model_copy(deep=True) for item in DEFAULT_EQUIPMENT if item.id not in known_equipment)

    return PriceTable(rooms=rooms, equipment=equipment, updated_at=table.updated_at)


def _dump(table: PriceTable) -> str:
    return table.model_dump_json(include={"rooms", "equipment"})


class PriceTableStore:
    """
    价格表读取
    读取失败时依次回退到最近一次成功读取的价格表、内置默认价格表
    """

    def __init__(self):
        self.last_known_good: Optional[PriceTable] = None

    def load(self, db: Session) -> PriceTable:
        try:
            setting = db.query(AppSetting).filter(AppSetting.key == PRICE_TABLE_KEY).first()
            if setting is None:
                table = default_price_table()
                self._save(db, table, updated_by=None)
                logger.info("价格表不存在，已写入默认价格")
            else:
                stored = PriceTable.model_validate(json.loads(setting.value))
                stored.updated_at = setting.updated_at
                table = merge_with_defaults(stored)
                if len(table.rooms) != len(stored.rooms) or len(table.equipment) != len(stored.equipment):
                    self._save(db, table, updated_by=None)
                    logger.info("价格表已合并新的默认项")
        except (SQLAlchemyError, ValueError) as e:
            db.rollback()
            logger.error("读取价格表失败: %s", e)
            if self.last_known_good is not None:
                return self.last_known_good
            return default_price_table()

        self.last_known_good = table
        return table

    def _save(self, db: Session, table: PriceTable, updated_by: Optional[str]) -> PriceTable:
        setting = db.query(AppSetting).filter(AppSetting.key == PRICE_TABLE_KEY).first()
        if setting is None:
            setting = AppSetting(key=PRICE_TABLE_KEY, value=_dump(table), description="房间与设备价格表")
            db.add(setting)
        else:
            setting.value = _dump(table)
        setting.updated_by = updated_by
        db.commit()
        db.refresh(setting)
        table.updated_at = setting.updated_at or datetime.now(timezone.utc)
        return table

    def update_rooms(self, db: Session, rooms: List[Room], updated_by: Optional[str]) -> PriceTable:
        current = self.load(db)
        table = self._save(db, PriceTable(rooms=rooms, equipment=current.equipment), updated_by)
        self.last_known_good = table
        logger.info("房间价格已更新: %s", updated_by)
        return table

    def update_equipment(self, db: Session, equipment: List[Equipment], updated_by: Optional[str]) -> PriceTable:
        current = self.load(db)
        table = self._save(db, PriceTable(rooms=current.rooms, equipment=equipment), updated_by)
        self.last_known_good = table
        logger.info("设备价格已更新: %s", updated_by)
        return table


price_table_store = PriceTableStore()


def get_price_table_store() -> PriceTableStore:
    """FastAPI依赖：价格表存取对象"""
    return price_table_store
