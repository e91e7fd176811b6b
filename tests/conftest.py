"""Shared fixtures: in-memory database, app with a recording email dispatcher, users and tokens."""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from config import Settings
from database import Base, build_engine, build_session_factory
from main import create_app
from Coupon_module.Coupon_model import Coupon
from Login_module.User import user_crud
from Login_module.User.user_model import UserRole
from Login_module.Utils import security
from Login_module.Utils.datetime_utils import now_ist
from Medicine_module.Medicine_model import Medicine


class RecordingDispatcher:
    """Stands in for EmailDispatcher; keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []

    def send_welcome(self, background_tasks, user):
        self.sent.append(("welcome", user.email, {}))

    def send_password_reset(self, background_tasks, user, reset_url):
        self.sent.append(("password_reset", user.email, {"reset_url": reset_url}))

    def send_order_confirmation(self, background_tasks, user, order):
        self.sent.append(("order_confirmation", user.email, {"order_number": order.order_number}))

    def send_order_status(self, background_tasks, user, order):
        self.sent.append(("order_status", user.email, {"status": order.order_status.value}))

    def of_kind(self, kind):
        return [message for message in self.sent if message[0] == kind]


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        SECRET_KEY="test-secret-key-that-is-long-enough-for-hs256",
        BCRYPT_ROUNDS=4,
        RUN_MIGRATIONS=False,
        ENABLE_SCHEDULER=False,
        EMAIL_USER="",
        EMAIL_PASSWORD="",
        FRONTEND_URL="http://shop.test",
        DELIVERY_CHARGE=0.0,
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def app(settings, engine, dispatcher):
    app = create_app(settings, engine=engine)
    app.state.dispatcher = dispatcher
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user(db_session, settings):
    return user_crud.create_user(
        db_session,
        name="Asha Rao",
        email="asha@example.com",
        password="customer-pass",
        bcrypt_rounds=settings.BCRYPT_ROUNDS
    )


@pytest.fixture
def admin(db_session, settings):
    return user_crud.create_user(
        db_session,
        name="Store Admin",
        email="admin@example.com",
        password="admin-pass",
        role=UserRole.ADMIN,
        bcrypt_rounds=settings.BCRYPT_ROUNDS
    )


def bearer(settings, user):
    token = security.create_access_token(settings, {"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(settings, user):
    return bearer(settings, user)


@pytest.fixture
def admin_headers(settings, admin):
    return bearer(settings, admin)


@pytest.fixture
def make_coupon(db_session):
    """Factory for coupons inserted straight into the database."""

    def _make(code="SAVE10", **overrides):
        values = {
            "discount_percent": 10.0,
            "min_order_amount": 0.0,
            "max_discount": None,
            "valid_from": now_ist() - timedelta(days=1),
            "valid_until": now_ist() + timedelta(days=30),
            "usage_limit": None,
            "used_count": 0,
            "is_active": True,
        }
        values.update(overrides)
        coupon = Coupon(code=code, **values)
        db_session.add(coupon)
        db_session.commit()
        db_session.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def medicines(db_session):
    paracetamol = Medicine(name="Paracetamol 500mg", price=50.0, stock=100)
    cough_syrup = Medicine(name="Cough Syrup 100ml", price=120.0, stock=5)
    db_session.add_all([paracetamol, cough_syrup])
    db_session.commit()
    db_session.refresh(paracetamol)
    db_session.refresh(cough_syrup)
    return paracetamol, cough_syrup
