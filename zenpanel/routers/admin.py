import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from zenpanel.config import settings
from zenpanel.database import get_db
from zenpanel.models.admin import Admin
from zenpanel.schemas.admin import AdminCreate, AdminPasswordChange, AdminResponse, Token
from zenpanel.utils.auth import create_access_token, decode_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])
bearer = HTTPBearer(auto_error=False)


def _find_admin(db: Session, username: str) -> Optional[Admin]:
    return db.query(Admin).filter(Admin.username == username).first()


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Admin:
    """Every /api route except the public subscription depends on this."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    claims = decode_access_token(credentials.credentials)
    if not claims or not claims.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    admin = _find_admin(db, claims["sub"])
    if admin is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not found")
    return admin


def require_sudo(admin: Admin = Depends(get_current_admin)) -> Admin:
    if not admin.is_sudo:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Sudo required")
    return admin


@router.post("/token", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    admin = _find_admin(db, form_data.username)
    if admin is None or not verify_password(form_data.password, admin.hashed_password):
        logger.warning("Failed login for %r", form_data.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    admin.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return Token(
        access_token=create_access_token(admin.username, admin.is_sudo),
        expires_in=settings.jwt_expire_minutes * 60,
    )


@router.get("/me", response_model=AdminResponse)
def me(admin: Admin = Depends(get_current_admin)):
    return AdminResponse.model_validate(admin)


@router.put("/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    body: AdminPasswordChange,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    if not verify_password(body.current_password, admin.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is wrong")
    admin.hashed_password = hash_password(body.new_password)
    db.commit()


@router.get("", response_model=list[AdminResponse])
def list_admins(
    db: Session = Depends(get_db),
    _: Admin = Depends(require_sudo),
):
    return db.query(Admin).order_by(Admin.username).all()


@router.post("", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
def create_admin(
    body: AdminCreate,
    db: Session = Depends(get_db),
    sudo: Admin = Depends(require_sudo),
):
    if _find_admin(db, body.username):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username exists")
    admin = Admin(username=body.username, hashed_password=hash_password(body.password), is_sudo=body.is_sudo)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Admin %s created by %s", admin.username, sudo.username)
    return AdminResponse.model_validate(admin)
