"""
WhatsApp Link Builder

Builds WhatsApp deep links with pre-filled messages. Nothing is sent from the
server: the orderer (or mitra / driver) taps the link and sends the message
from their own phone.

Two link flavours:
1. whatsapp://send?phone=...&text=...   receiver notification (opens the app)
2. https://wa.me/<number>?text=...      contact links shown in the dashboards
"""

import os
import re
from enum import Enum
from typing import Optional
from urllib.parse import quote

from dotenv import load_dotenv

from modules.orders.order_schema import OrderPlacementRequest

from .trust_errors import TrustMechanismError

load_dotenv()

TRACKING_BASE_URL = os.getenv("TRACKING_BASE_URL", "https://treksistem.com/track")

# encodeURIComponent leaves these unescaped
URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(text: str) -> str:
    return quote(text, safe=URI_COMPONENT_SAFE)


def tracking_url(order_id: str, base_url: Optional[str] = None) -> str:
    return f"{(base_url or TRACKING_BASE_URL).rstrip('/')}/{order_id}"


def format_amount(amount: float) -> str:
    return f"{amount:,.0f}"


# ============================================
# RECEIVER NOTIFICATION
# ============================================


def build_receiver_message(
    request: OrderPlacementRequest,
    order_id: str,
    service_name: str,
    base_url: Optional[str] = None,
) -> str:
    """Indonesian notification text the orderer forwards to the receiver"""
    order_type = service_name
    if request.has_advance_payment:
        order_type += f" (dengan talangan Rp {format_amount(request.advance_payment_amount)})"
    if request.contains_valuables:
        order_type += " - Barang Penting"

    details = request.details
    lines = [
        "Halo! 👋",
        "",
        f"Anda akan menerima kiriman *{order_type}* dari {request.orderer_identifier} "
        "melalui platform Treksistem.",
        "",
        "📦 *Detail Pengiriman:*",
        f"🆔 Order ID: {order_id}",
        f"📍 Dari: {details.pickup_address.text}",
        f"📍 Ke: {details.dropoff_address.text}",
    ]
    if details.notes:
        lines.append(f"📝 Catatan: {details.notes}")
    lines += [
        "",
        f"🔗 *Lacak Pengiriman:* {tracking_url(order_id, base_url)}",
        "",
        "⚠️ *Penting:*",
        "• Harap konfirmasi kesiapan menerima kepada pengirim",
        "• Periksa identitas driver saat pengantaran",
        "• Laporkan jika ada masalah melalui platform",
        "",
        "Terima kasih! 🙏",
        "- Tim Treksistem",
    ]
    return "\n".join(lines)


def generate_receiver_notification_link(
    request: OrderPlacementRequest,
    order_id: str,
    service_name: str,
    base_url: Optional[str] = None,
) -> str:
    """
    whatsapp://send deep link that opens a chat with the receiver, message
    pre-filled.

    Raises:
        TrustMechanismError MISSING_RECEIVER_WA: no receiver number on the request
    """
    if not request.receiver_wa_number:
        raise TrustMechanismError(
            "Cannot generate receiver notification link without receiver WhatsApp number",
            "MISSING_RECEIVER_WA",
        )

    phone = request.receiver_wa_number.lstrip("+")
    message = build_receiver_message(request, order_id, service_name, base_url)
    return f"whatsapp://send?phone={phone}&text={encode_uri_component(message)}"


# ============================================
# CONTACT LINKS
# ============================================


class WhatsAppMessageType(Enum):
    MITRA_TO_ORDERER = "mitra_to_orderer"
    MITRA_TO_RECEIVER = "mitra_to_receiver"
    MITRA_TO_DRIVER = "mitra_to_driver"
    DRIVER_TO_ORDERER = "driver_to_orderer"
    DRIVER_TO_RECEIVER = "driver_to_receiver"
    USER_TO_MITRA = "user_to_mitra"


class WhatsAppMessageTemplates:
    """Standard pre-filled texts for dashboard contact buttons"""

    @staticmethod
    def short_id(order_id: str) -> str:
        return f"{order_id[:8]}..."

    @classmethod
    def mitra_to_orderer(cls, order_id: str) -> str:
        return (
            f"Hello! This is regarding your Treksistem order {cls.short_id(order_id)} "
            "Please let me know if you have any questions."
        )

    @classmethod
    def mitra_to_receiver(cls, order_id: str) -> str:
        return (
            f"Hello! This is regarding Treksistem order {cls.short_id(order_id)} which is "
            "being delivered to you. Please let me know if you have any questions."
        )

    @classmethod
    def mitra_to_driver(cls, order_id: str, driver_name: Optional[str] = None) -> str:
        greeting = f"Hi {driver_name}!" if driver_name else "Hi!"
        return (
            f"{greeting} You have been assigned to Treksistem order {cls.short_id(order_id)} "
            "Please check your driver app for details."
        )

    @classmethod
    def driver_to_orderer(cls, order_id: str) -> str:
        return (
            f"Hello! I'm your Treksistem driver for order {cls.short_id(order_id)} "
            "Please let me know if you have any questions about your delivery."
        )

    @classmethod
    def driver_to_receiver(cls, order_id: str) -> str:
        return (
            f"Hello! I'm your Treksistem driver for order {cls.short_id(order_id)} "
            "I'm handling your delivery. Please let me know if you have any questions."
        )

    @classmethod
    def user_to_mitra(cls, order_id: str) -> str:
        return (
            f"Hello! I have a question about my Treksistem order {cls.short_id(order_id)} "
            "Could you please help me?"
        )

    @classmethod
    def render(cls, message_type: WhatsAppMessageType, order_id: str, **kwargs) -> str:
        return getattr(cls, message_type.value)(order_id, **kwargs)


def build_contact_link(phone_number: Optional[str], text: str = "") -> Optional[str]:
    """
    https://wa.me link for a phone number, optionally with pre-filled text.

    Returns None when the number has no digits.
    """
    if not phone_number:
        return None

    cleaned = re.sub(r"[^\d+]", "", phone_number)
    if not cleaned.strip("+"):
        return None

    # keep a single leading '+'
    if cleaned.startswith("+"):
        cleaned = "+" + cleaned[1:].replace("+", "")
    else:
        cleaned = cleaned.replace("+", "")

    link = f"https://wa.me/{cleaned}"
    if text:
        link += f"?text={encode_uri_component(text)}"
    return link
