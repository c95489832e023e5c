"""
员工与角色管理API（仅所有者）
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timezone
import logging
from app.api.auth import get_password_hash, normalize_email, require_owner
from app.db.database import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate, UserResponse

router = APIRouter(prefix="/api/users", tags=["员工管理"])
logger = logging.getLogger("studio.users")


def _active_owner_count(db: Session) -> int:
    return db.query(User).filter(
        User.role == "owner",
        User.is_active.is_(True),
        User.deleted_at.is_(None)
    ).count()


@router.get("", response_model=List[UserResponse])
def get_users(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    owner: User = Depends(require_owner)
):
    """获取员工列表"""
    query = db.query(User).filter(User.deleted_at.is_(None))
    if search:
        query = query.filter(User.email.like(f"%{search.lower()}%"))
    return query.order_by(User.created_at).all()


@router.post("", response_model=UserResponse)
def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    owner: User = Depends(require_owner)
):
    """添加员工并分配角色"""
    email = normalize_email(user.email)
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="邮箱已存在")

    db_user = User(
        email=email,
        display_name=user.display_name,
        password_hash=get_password_hash(user.password),
        role=user.role,
        is_active=user.is_active,
        created_by=owner.email,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("%s 添加员工 %s (%s)", owner.email, db_user.email, db_user.role)
    return db_user


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    owner: User = Depends(require_owner)
):
    """修改员工角色、密码或状态"""
    db_user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if not db_user:
        raise HTTPException(status_code=404, detail="用户不存在")

    update_data = user_update.model_dump(exclude_unset=True)
    demoting = db_user.is_owner and (
        update_data.get("role", "owner") != "owner" or update_data.get("is_active") is False
    )
    if demoting and _active_owner_count(db) <= 1:
        raise HTTPException(status_code=400, detail="至少需要保留一个所有者")

    if "password" in update_data:
        update_data["password_hash"] = get_password_hash(update_data.pop("password"))
    for field, value in update_data.items():
        setattr(db_user, field, value)

    db.commit()
    db.refresh(db_user)
    logger.info("%s 修改员工 %s", owner.email, db_user.email)
    return db_user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    owner: User = Depends(require_owner)
):
    """删除员工（软删除）"""
    db_user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if not db_user:
        raise HTTPException(status_code=404, detail="用户不存在")
    if db_user.id == owner.id:
        raise HTTPException(status_code=400, detail="不能删除自己")
    if db_user.is_owner and _active_owner_count(db) <= 1:
        raise HTTPException(status_code=400, detail="至少需要保留一个所有者")

    db_user.deleted_at = datetime.now(timezone.utc)
    db_user.is_active = False
    db.commit()
    logger.info("%s 删除员工 %s", owner.email, db_user.email)
    return {"message": "用户删除成功"}
