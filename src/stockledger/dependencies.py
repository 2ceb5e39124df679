"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from .config import Settings
from .database import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide a database session for FastAPI routes."""

    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
