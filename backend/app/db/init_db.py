"""
数据库初始化脚本
"""
import logging
from app.db.database import engine, Base, SessionLocal
from app.models import User, AppSetting, Booking, ReportEntry, OperationLog  # noqa: F401
from app.services.price_table import PriceTableStore

logger = logging.getLogger("studio.init")


def init_db():
    """初始化数据库，创建所有表并写入默认价格表"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        PriceTableStore().load(db)
    finally:
        db.close()
    logger.info("数据库表创建完成！")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='[%(asctime)s] %(levelname)s %(name)s: %(message)s')
    init_db()
