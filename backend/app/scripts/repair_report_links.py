"""
修复预约上的报表状态
以报表记录为准：报表记录已删除的预约恢复为待报，
存在报表记录但预约未标记的补上标记
"""
import sys
import os
import logging

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from app.db.database import SessionLocal
from app.services.report_links import repair_report_links

logger = logging.getLogger("studio.scripts")


def main():
    db = SessionLocal()
    try:
        fixed = repair_report_links(db)
        if fixed:
            logger.info("成功修复 %s 条记录", fixed)
        else:
            logger.info("没有需要修复的记录")
    except Exception:
        db.rollback()
        logger.exception("修复失败")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='[%(asctime)s] %(levelname)s %(name)s: %(message)s')
    logger.info("开始修复报表关联...")
    main()
    logger.info("修复完成！")
