"""
创建或提升所有者账号
用法: python -m app.scripts.setup_owner owner@example.com 密码
"""
import sys
import os
import logging

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from app.api.auth import get_password_hash, normalize_email
from app.db.database import SessionLocal, engine, Base
from app.models.user import User

logger = logging.getLogger("studio.scripts")


def setup_owner(email: str, password: str = None) -> User:
    """已存在的用户提升为所有者，不存在时用给定密码创建"""
    Base.metadata.create_all(bind=engine)
    email = normalize_email(email)
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            if not password:
                raise ValueError("新建所有者需要提供密码")
            user = User(
                email=email,
                password_hash=get_password_hash(password),
                created_by="manual-setup",
            )
            db.add(user)
        user.role = "owner"
        user.is_active = True
        user.deleted_at = None
        db.commit()
        db.refresh(user)
        logger.info("所有者已设置: %s", user.email)
        return user
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='[%(asctime)s] %(levelname)s %(name)s: %(message)s')
    if len(sys.argv) < 2:
        print("用法: python -m app.scripts.setup_owner <email> [password]")
        sys.exit(1)
    setup_owner(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None)
