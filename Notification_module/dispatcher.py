"""
Fire-and-forget email dispatch.

Work is handed to FastAPI BackgroundTasks and runs after the response is
sent. Request handlers never await delivery, and a failed send is logged
without affecting the operation that triggered it.
"""
import logging
from typing import Any, Dict

from fastapi import BackgroundTasks

from .email_service import EmailService

logger = logging.getLogger(__name__)


class EmailDispatcher:
    def __init__(self, email_service: EmailService):
        self.email_service = email_service

    def _deliver(self, to_email: str, subject: str, template_name: str, context: Dict[str, Any]) -> None:
        try:
            self.email_service.send_template(to_email, subject, template_name, context)
        except Exception as e:
            logger.error(f"Email delivery failed | Template: {template_name} | Error: {e}")

    def submit(
        self,
        background_tasks: BackgroundTasks,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any]
    ) -> None:
        background_tasks.add_task(self._deliver, to_email, subject, template_name, context)

    def send_welcome(self, background_tasks: BackgroundTasks, user) -> None:
        self.submit(
            background_tasks,
            user.email,
            "Welcome to MedStore",
            "welcome.html",
            {"name": user.name}
        )

    def send_password_reset(self, background_tasks: BackgroundTasks, user, reset_url: str) -> None:
        self.submit(
            background_tasks,
            user.email,
            "Reset your MedStore password",
            "password_reset.html",
            {"name": user.name, "reset_url": reset_url}
        )

    def send_order_confirmation(self, background_tasks: BackgroundTasks, user, order) -> None:
        self.submit(
            background_tasks,
            user.email,
            f"Order confirmed - {order.order_number}",
            "order_confirmation.html",
            {
                "name": user.name,
                "order_number": order.order_number,
                "items": [
                    {"name": item.medicine_name, "quantity": item.quantity, "unit_price": item.unit_price}
                    for item in order.items
                ],
                "subtotal": order.subtotal,
                "discount": order.discount,
                "coupon_code": order.coupon_code,
                "delivery_charge": order.delivery_charge,
                "total_amount": order.total_amount,
            }
        )

    def send_order_status(self, background_tasks: BackgroundTasks, user, order) -> None:
        self.submit(
            background_tasks,
            user.email,
            f"Order {order.order_number} is {order.order_status.value}",
            "order_status.html",
            {
                "name": user.name,
                "order_number": order.order_number,
                "status": order.order_status.value,
                "total_amount": order.total_amount,
            }
        )
