"""
排练预约模型
"""
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, Text, JSON, Index
from sqlalchemy.sql import func
from app.db.database import Base


class Booking(Base):
    """预约表"""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    band_name = Column(String(200), nullable=False, comment="乐队名称")
    date = Column(String(10), nullable=False, index=True, comment="日期 yyyy-MM-dd")
    start_time = Column(String(5), nullable=False, comment="开始时间 HH:mm")
    end_time = Column(String(5), nullable=False, comment="结束时间 HH:mm")
    room_id = Column(String(50), nullable=False, index=True, comment="主房间ID（第一个房间）")
    room_bookings = Column(JSON, nullable=False, default=list, comment="房间及小时数 [{room_id, hours}]")
    is_resident = Column(Boolean, default=False, nullable=False, comment="是否常驻乐队")
    equipment = Column(JSON, nullable=False, default=list, comment="设备ID列表")
    equipment_bookings = Column(JSON, nullable=True, comment="设备独立小时数 [{equipment_id, hours}]")
    payment_type = Column(String(20), default="cash", nullable=False, comment="支付方式：cash, card, mixed")
    cash_amount = Column(Numeric(10, 2), nullable=True, comment="混合支付现金部分")
    card_amount = Column(Numeric(10, 2), nullable=True, comment="混合支付刷卡部分")
    total_hours = Column(Integer, default=0, nullable=False, comment="总小时数（各房间小时之和）")
    equipment_hours = Column(Integer, default=0, nullable=False, comment="设备小时数")
    total_price = Column(Numeric(10, 2), default=0, nullable=False, comment="总价")
    notes = Column(Text, nullable=True, comment="备注")
    source = Column(String(20), default="manual", nullable=False, comment="来源：manual, calendar, telegram")
    status = Column(String(20), default="active", nullable=False, index=True, comment="状态：active, cancelled")
    cancelled_at = Column(DateTime(timezone=True), nullable=True, comment="取消时间")
    cancelled_by = Column(String(255), nullable=True, comment="取消人")
    report_status = Column(String(20), default="pending", nullable=False, index=True, comment="报表状态：pending, reported, rejected")
    report_id = Column(Integer, nullable=True, comment="报表记录ID")
    created_by = Column(String(255), nullable=True, comment="创建人邮箱")
    version = Column(Integer, nullable=False, default=1, comment="版本号（乐观锁）")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_bookings_date", "date"),
        Index("idx_bookings_report_status", "report_status"),
        # ID不复用
        {"sqlite_autoincrement": True},
    )
