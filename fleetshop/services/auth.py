"""Authentication service: DB-backed sessions, bcrypt passwords."""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta

import bcrypt
from fastapi import Request, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.config import get_settings
from fleetshop.models.auth_models import User, UserSession
from fleetshop.services.permissions import effective_permissions

SESSION_COOKIE_NAME = "fleetshop_session"


@dataclass
class AuthContext:
    user_id: str
    session_id: str
    role: str  # see permissions.ROLES
    display_name: str
    permissions: dict = field(default_factory=dict)


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def _hash_token(token: str) -> str:
    """SHA-256 hash of a session token for DB storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


async def authenticate(db: AsyncSession, login: str, password: str) -> User | None:
    result = await db.execute(select(User).where(User.login == login))
    user = result.scalars().first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        return None
    return user


async def create_session(user: User, db: AsyncSession, ip_address: str = "") -> str:
    """Create a DB-backed session. Returns the raw token (not the hash)."""
    token = secrets.token_urlsafe(48)
    now = datetime.now(timezone.utc)
    session = UserSession(
        user_id=user.id,
        token_hash=_hash_token(token),
        expires_at=now + timedelta(days=get_settings().auth.session_max_age_days),
        ip_address=ip_address,
    )
    user.last_login_at = now
    db.add(session)
    await db.commit()
    return token


async def validate_session(token: str, db: AsyncSession) -> tuple[User, UserSession] | None:
    """Look up session by token hash, return (user, session) if valid."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == _hash_token(token))
    )
    session = result.scalars().first()
    if not session or _aware(session.expires_at) <= datetime.now(timezone.utc):
        return None

    user = await db.get(User, session.user_id)
    if not user or not user.is_active:
        return None
    return user, session


async def remove_session(token: str, db: AsyncSession) -> str | None:
    """Delete a session by token; returns its id when one existed."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == _hash_token(token))
    )
    session = result.scalars().first()
    if not session:
        return None
    await db.delete(session)
    await db.commit()
    return session.id


def build_context(user: User, session_id: str) -> AuthContext:
    return AuthContext(
        user_id=user.id,
        session_id=session_id,
        role=user.role,
        display_name=user.display_name,
        permissions=effective_permissions(user.role, user.custom_permissions),
    )


async def get_current_user(request: Request, db: AsyncSession) -> AuthContext:
    """Read session cookie, validate, return AuthContext or raise 401."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    found = await validate_session(token, db)
    if not found:
        raise HTTPException(status_code=401, detail="Session expired")
    user, session = found
    return build_context(user, session.id)
