"""
认证相关API
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta
import logging
import secrets
import bcrypt
from app.config import TOKEN_TTL_HOURS
from app.db.database import get_db
from app.models.user import User

router = APIRouter(prefix="", tags=["认证"])  # 不使用/api前缀，因为前端直接调用/login
security = HTTPBearer(auto_error=False)
logger = logging.getLogger("studio.auth")

# 登录令牌存储 {token: {"email": ..., "created_at": ...}}
tokens = {}


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_password_hash(password: str) -> str:
    """生成密码哈希"""
    # bcrypt限制密码长度不能超过72字节，需要截断
    encoded = password.encode('utf-8')[:72]
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    encoded = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode('utf-8'))
    except ValueError:
        return False


def issue_token(email: str) -> str:
    token = secrets.token_urlsafe(32)
    tokens[token] = {"email": email, "created_at": datetime.now()}
    return token


def token_email(token: Optional[str]) -> Optional[str]:
    """令牌对应的邮箱，过期令牌会被清除"""
    data = tokens.get(token) if token else None
    if data is None:
        return None
    if datetime.now() - data["created_at"] > timedelta(hours=TOKEN_TTL_HOURS):
        tokens.pop(token, None)
        return None
    return data["email"]


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """当前登录的员工"""
    email = token_email(credentials.credentials if credentials else None)
    if not email:
        raise HTTPException(status_code=401, detail="未登录或登录已过期")
    user = db.query(User).filter(User.email == email, User.deleted_at.is_(None)).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="用户不存在或已停用")
    return user


def require_owner(user: User = Depends(get_current_user)) -> User:
    """只有所有者可以访问"""
    if not user.is_owner:
        raise HTTPException(status_code=403, detail="需要所有者权限")
    return user


def initial_role(db: Session) -> str:
    """系统中还没有所有者时，第一个用户成为所有者"""
    has_owner = db.query(User).filter(User.role == "owner", User.deleted_at.is_(None)).first()
    return "admin" if has_owner else "owner"


class LoginRequest(BaseModel):
    """登录请求"""
    email: str = Field(..., description="邮箱")
    password: str = Field(..., description="密码")


class RegisterRequest(LoginRequest):
    """注册请求"""
    password: str = Field(..., description="密码", min_length=6)
    display_name: Optional[str] = Field(None, description="显示名称", max_length=100)


class LoginResponse(BaseModel):
    """登录响应"""
    accessToken: str = Field(..., description="访问令牌")
    email: str = Field(..., description="邮箱")
    role: str = Field(..., description="角色")


class UserInfoResponse(BaseModel):
    """用户信息响应"""
    email: str
    display_name: Optional[str] = None
    role: str
    permissions: list = []


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """用户登录"""
    email = normalize_email(request.email)
    user = db.query(User).filter(User.email == email, User.deleted_at.is_(None)).first()
    if not user or not user.is_active or not verify_password(request.password, user.password_hash):
        logger.warning("登录失败: %s", email)
        raise HTTPException(status_code=401, detail="邮箱或密码错误")

    token = issue_token(user.email)
    logger.info("登录成功: %s (%s)", user.email, user.role)
    return LoginResponse(accessToken=token, email=user.email, role=user.role)


@router.post("/register", response_model=LoginResponse)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    员工注册
    没有所有者时注册者成为所有者，否则成为管理员
    """
    email = normalize_email(request.email)
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="邮箱已存在")

    user = User(
        email=email,
        display_name=request.display_name,
        password_hash=get_password_hash(request.password),
        role=initial_role(db),
        created_by=email,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("新用户注册: %s (%s)", user.email, user.role)

    token = issue_token(user.email)
    return LoginResponse(accessToken=token, email=user.email, role=user.role)


@router.post("/userInfo", response_model=UserInfoResponse)
def get_user_info(user: User = Depends(get_current_user)):
    """获取当前用户信息"""
    permissions = ["admin", "owner"] if user.is_owner else ["admin"]
    return UserInfoResponse(
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        permissions=permissions
    )


@router.post("/logout")
def logout(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """退出登录"""
    if credentials and credentials.credentials in tokens:
        del tokens[credentials.credentials]
    return {"message": "退出成功"}
