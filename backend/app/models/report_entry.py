"""
报表记录模型（预约加入财务报表时的快照）
"""
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, Text, JSON, Index
from sqlalchemy.sql import func
from app.db.database import Base


class ReportEntry(Base):
    """报表记录表"""
    __tablename__ = "report_entries"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, nullable=True, index=True, comment="原预约ID")
    band_name = Column(String(200), nullable=False, comment="乐队名称")
    date = Column(String(10), nullable=False, index=True, comment="日期 yyyy-MM-dd")
    room_id = Column(String(50), nullable=False, index=True, comment="主房间ID")
    room_name = Column(String(100), nullable=False, comment="主房间名称")
    room_bookings = Column(JSON, nullable=False, default=list, comment="房间明细 [{room_id, room_name, hours, price}]")
    start_time = Column(String(5), nullable=False, comment="开始时间")
    end_time = Column(String(5), nullable=False, comment="结束时间")
    total_hours = Column(Integer, default=0, nullable=False, comment="总小时数")
    room_price = Column(Numeric(10, 2), default=0, nullable=False, comment="房间费用")
    equipment_price = Column(Numeric(10, 2), default=0, nullable=False, comment="设备费用")
    total_price = Column(Numeric(10, 2), default=0, nullable=False, comment="总价")
    payment_type = Column(String(20), default="cash", nullable=False, comment="支付方式")
    cash_amount = Column(Numeric(10, 2), nullable=True, comment="混合支付现金部分")
    card_amount = Column(Numeric(10, 2), nullable=True, comment="混合支付刷卡部分")
    is_resident = Column(Boolean, default=False, nullable=False, comment="是否常驻乐队")
    equipment = Column(JSON, nullable=False, default=list, comment="设备ID列表")
    equipment_names = Column(JSON, nullable=False, default=list, comment="设备名称列表")
    equipment_hours = Column(Integer, default=0, nullable=False, comment="设备小时数")
    equipment_bookings = Column(JSON, nullable=False, default=list, comment="设备独立小时数")
    notes = Column(Text, nullable=True, comment="备注")
    source = Column(String(20), default="manual", nullable=False, comment="来源")
    created_by = Column(String(255), nullable=False, index=True, comment="提成归属员工邮箱")
    version = Column(Integer, nullable=False, default=1, comment="版本号（乐观锁）")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_report_entries_date", "date"),
        Index("idx_report_entries_created_by", "created_by"),
        {"sqlite_autoincrement": True},
    )
