"""
Shared FastAPI dependencies.
Everything is read from app.state, which create_app() populates from Settings.
"""
from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from config import Settings


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request):
    return request.app.state.dispatcher
