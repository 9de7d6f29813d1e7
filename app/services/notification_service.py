# app/services/notification_service.py
import logging

from app.core.whatsapp_client import NotificationGateway
from app.models.order import Order

logger = logging.getLogger(__name__)


def format_rupiah(amount: int) -> str:
    """1500000 -> 'Rp 1.500.000'"""
    return "Rp " + f"{amount:,}".replace(",", ".")


class NotificationService:
    """
    Templated WhatsApp messages for order lifecycle events.

    Every method is called after the state change has been committed.
    Delivery is best-effort: a failed send is logged and reported as
    False, never raised, and never rolls the order back.
    """

    def __init__(
        self,
        gateway: NotificationGateway,
        admin_phone: str,
        store_name: str = "ZOGAMING",
        processing_timeout_minutes: int = 30,
    ):
        self.gateway = gateway
        self.admin_phone = admin_phone
        self.store_name = store_name
        self.processing_timeout_minutes = processing_timeout_minutes

    def _dispatch(self, kind: str, order: Order, phone: str, message: str) -> bool:
        try:
            sent = self.gateway.send(phone, message)
        except Exception:
            # Gateways must not raise; still never let one break a transition.
            logger.exception("Notification %s for %s raised", kind, order.order_number)
            return False

        if sent:
            logger.info("Notification %s sent for %s", kind, order.order_number)
        else:
            logger.warning("Notification %s NOT delivered for %s", kind, order.order_number)
        return sent

    def notify_admin_payment(self, order: Order) -> bool:
        message = (
            "🔔 *PAYMENT CLAIMED*\n\n"
            f"Order *{order.order_number}* has been marked as paid and is ready to process.\n\n"
            f"👤 Customer: {order.customer_name}\n"
            f"💳 Method: {order.payment_method or '-'}\n"
            f"💰 Total: {format_rupiah(order.total_amount)}\n\n"
            "Please verify the payment in the Admin Panel."
        )
        return self._dispatch("admin_payment", order, self.admin_phone, message)

    def notify_customer_processing(self, order: Order) -> bool:
        minutes = self.processing_timeout_minutes
        message = (
            "✅ *PAYMENT RECEIVED*\n\n"
            f"Hi! We received your payment for order *{order.order_number}*.\n\n"
            "Your order is being processed by our admin.\n\n"
            f"⏰ *Estimated time: at most {minutes} minutes*\n"
            f"If your order has not arrived after {minutes} minutes, you will be refunded.\n\n"
            f"Thank you for shopping at {self.store_name}! 🎮"
        )
        return self._dispatch("customer_processing", order, order.customer_phone, message)

    def notify_customer_delivery(self, order: Order) -> bool:
        message = (
            "🎮 *ORDER COMPLETED*\n\n"
            f"Order ID: *{order.order_number}*\n\n"
            "Here is your account:\n"
            f"📧 Email: {order.account_email}\n"
            f"🔑 Password: {order.account_password}\n\n"
            "Please change the password right after logging in.\n"
            f"Thank you for shopping at {self.store_name}! 🎮"
        )
        return self._dispatch("customer_delivery", order, order.customer_phone, message)

    def notify_customer_cancelled(self, order: Order) -> bool:
        message = (
            "❌ *ORDER CANCELLED*\n\n"
            f"Order *{order.order_number}* has been cancelled because the payment window expired.\n\n"
            "If you already paid, please contact the admin to process a refund.\n\n"
            f"{self.store_name} 🎮"
        )
        return self._dispatch("customer_cancelled", order, order.customer_phone, message)

    def notify_customer_refund(self, order: Order) -> bool:
        message = (
            "💰 *REFUND IN PROGRESS*\n\n"
            f"Order *{order.order_number}* was not processed within "
            f"{self.processing_timeout_minutes} minutes.\n\n"
            "Your money will be returned. Please allow 1x24 hours for the refund.\n\n"
            "We apologize for the inconvenience.\n"
            f"{self.store_name} 🎮"
        )
        return self._dispatch("customer_refund", order, order.customer_phone, message)
