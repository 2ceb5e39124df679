"""Staff account persistence. Authentication itself lives outside this service.

Passwords are stored as ``pbkdf2_sha256$<iterations>$<salt>$<digest>`` so the
service that checks them can read the work factor from the row.
"""

from __future__ import annotations

import base64
import hashlib
import os

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .exceptions import ConflictError

HASH_SCHEME = "pbkdf2_sha256"
HASH_ITERATIONS = 390_000


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def hash_password(password: str, *, iterations: int = HASH_ITERATIONS) -> str:
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_SCHEME}${iterations}${_b64(salt)}${_b64(digest)}"


def list_users(db: Session) -> list[models.User]:
    return list(db.scalars(select(models.User).order_by(models.User.id)))


def create_user(db: Session, payload: schemas.UserCreate) -> models.User:
    user = models.User(
        username=payload.username,
        email=payload.email,
        hashed_password=hash_password(payload.password),
        role=payload.role,
    )
    db.add(user)
    try:
        db.commit()
    except DBIntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Username '{payload.username}' already exists") from exc
    db.refresh(user)
    return user

