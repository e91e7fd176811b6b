"""Tests for email rendering, SMTP delivery, background dispatch and the reset token sweep job."""
import asyncio
import logging
import smtplib
from datetime import timedelta
from types import SimpleNamespace

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError

from Login_module.Token import Reset_token_crud
from Login_module.Token import scheduler as token_scheduler
from Login_module.Utils.datetime_utils import now_ist
from Notification_module.dispatcher import EmailDispatcher
from Notification_module.email_service import EmailService
from Orders_module.Order_model import OrderStatus


def customer():
    return SimpleNamespace(name="Asha Rao", email="asha@example.com")


def placed_order():
    return SimpleNamespace(
        order_number="ORD20261017120000ABCD1234",
        order_status=OrderStatus.SHIPPED,
        items=[SimpleNamespace(medicine_name="Paracetamol 500mg", quantity=2, unit_price=50.0)],
        subtotal=100.0,
        discount=10.0,
        coupon_code="SAVE10",
        delivery_charge=0.0,
        total_amount=90.0,
    )


class FakeSMTP:
    sent = []

    def __init__(self, host, port):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def sendmail(self, from_addr, to_addr, message):
        FakeSMTP.sent.append((from_addr, to_addr, message))


class BrokenEmailService(EmailService):
    def send_template(self, to_email, subject, template_name, context):
        raise smtplib.SMTPException("connection refused")


def run_background(background_tasks):
    asyncio.run(background_tasks())


class TestTemplates:
    def test_welcome(self, settings):
        html = EmailService(settings).render_template("welcome.html", name="Asha Rao")
        assert "Welcome, Asha Rao!" in html

    def test_password_reset(self, settings):
        html = EmailService(settings).render_template(
            "password_reset.html", name="Asha", reset_url="http://shop.test/reset-password/abc123"
        )
        assert 'href="http://shop.test/reset-password/abc123"' in html

    def test_order_confirmation(self, settings):
        order = placed_order()
        html = EmailService(settings).render_template(
            "order_confirmation.html",
            name="Asha",
            order_number=order.order_number,
            items=[{"name": "Paracetamol 500mg", "quantity": 2, "unit_price": 50.0}],
            subtotal=order.subtotal,
            discount=order.discount,
            coupon_code=order.coupon_code,
            delivery_charge=order.delivery_charge,
            total_amount=order.total_amount,
        )
        assert order.order_number in html
        assert "Discount (SAVE10)" in html
        assert "90.00" in html

    def test_order_status(self, settings):
        html = EmailService(settings).render_template(
            "order_status.html", name="Asha", order_number="ORD1", status="shipped", total_amount=90.0
        )
        assert "<strong>shipped</strong>" in html

    def test_names_are_escaped(self, settings):
        html = EmailService(settings).render_template("welcome.html", name="<script>x</script>")
        assert "<script>" not in html


class TestEmailService:
    def test_skipped_when_not_configured(self, settings, monkeypatch):
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
        FakeSMTP.sent = []

        assert EmailService(settings).send_email("asha@example.com", "Hi", "<p>Hi</p>") is False
        assert FakeSMTP.sent == []

    def test_sends_over_smtp_when_configured(self, settings, monkeypatch):
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
        FakeSMTP.sent = []
        configured = settings.model_copy(update={"EMAIL_USER": "mailer@medstore.com", "EMAIL_PASSWORD": "app-pass"})

        sent = EmailService(configured).send_template(
            "asha@example.com", "Welcome to MedStore", "welcome.html", {"name": "Asha"}
        )

        assert sent is True
        from_addr, to_addr, message = FakeSMTP.sent[0]
        assert (from_addr, to_addr) == ("mailer@medstore.com", "asha@example.com")
        assert "Welcome to MedStore" in message


class TestEmailDispatcher:
    def test_delivery_runs_as_background_task(self, settings, monkeypatch):
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
        FakeSMTP.sent = []
        configured = settings.model_copy(update={"EMAIL_USER": "mailer@medstore.com", "EMAIL_PASSWORD": "app-pass"})
        dispatcher = EmailDispatcher(EmailService(configured))
        background_tasks = BackgroundTasks()

        dispatcher.send_password_reset(background_tasks, customer(), "http://shop.test/reset-password/abc")
        assert FakeSMTP.sent == []

        run_background(background_tasks)
        assert len(FakeSMTP.sent) == 1

    def test_failed_send_is_logged_not_raised(self, settings, caplog):
        dispatcher = EmailDispatcher(BrokenEmailService(settings))
        background_tasks = BackgroundTasks()

        dispatcher.send_welcome(background_tasks, customer())
        dispatcher.send_order_confirmation(background_tasks, customer(), placed_order())
        dispatcher.send_order_status(background_tasks, customer(), placed_order())

        with caplog.at_level(logging.ERROR, logger="Notification_module.dispatcher"):
            run_background(background_tasks)

        failures = [r for r in caplog.records if "Email delivery failed" in r.getMessage()]
        assert len(failures) == 3
        assert "connection refused" in failures[0].getMessage()

    def test_forgot_password_succeeds_when_smtp_is_down(self, app, client, user, settings):
        app.state.dispatcher = EmailDispatcher(BrokenEmailService(settings))

        response = client.post("/auth/forgot-password", json={"email": user.email})

        assert response.status_code == 200
        assert response.json()["status"] == "success"


class TestResetTokenSweepJob:
    def test_job_clears_expired_tokens(self, engine, db_session, user, settings):
        from database import build_session_factory

        Reset_token_crud.issue_reset_token(db_session, user, settings)
        user.reset_password_expires = now_ist() - timedelta(minutes=1)
        db_session.commit()

        token_scheduler.cleanup_reset_tokens_job(build_session_factory(engine))

        db_session.expire_all()
        assert user.reset_password_token is None

    def test_job_logs_and_survives_database_errors(self, engine, monkeypatch, caplog):
        from database import build_session_factory

        def failing_cleanup(db):
            raise SQLAlchemyError("database is locked")

        monkeypatch.setattr(token_scheduler, "clear_expired_reset_tokens", failing_cleanup)

        with caplog.at_level(logging.ERROR, logger="Login_module.Token.scheduler"):
            token_scheduler.cleanup_reset_tokens_job(build_session_factory(engine))

        assert any("database is locked" in r.getMessage() for r in caplog.records)

    def test_scheduler_registers_job(self, engine):
        from database import build_session_factory

        background_scheduler = token_scheduler.start_scheduler(build_session_factory(engine), interval_minutes=30)
        try:
            job = background_scheduler.get_job("reset_token_cleanup")
            assert job is not None
            assert job.trigger.interval == timedelta(minutes=30)
        finally:
            token_scheduler.shutdown_scheduler(background_scheduler)
        assert not background_scheduler.running
