# app/core/whatsapp_client.py
from __future__ import annotations

"""
WhatsApp client utilities for the ZOGAMING backend.

Responsibilities:
  - Send a plain text message to a phone number through the Fonnte API.
  - Report delivery as a boolean; never raise into the caller.
  - Bound every HTTP call with a timeout so a slow channel cannot hold
    up the order lifecycle.

Typical .env configuration:

    FONNTE_API_URL=https://api.fonnte.com/send
    FONNTE_API_TOKEN=<token from fonnte.com>
    FONNTE_COUNTRY_CODE=62
    NOTIFY_TIMEOUT_SECONDS=10
"""

import logging
from typing import Protocol

import requests

logger = logging.getLogger(__name__)

# Placeholder shipped in .env templates; treated the same as "not configured"
PLACEHOLDER_TOKEN = "your-fonnte-api-token"


class NotificationGateway(Protocol):
    """Anything that can deliver a text message to a phone number."""

    def send(self, phone: str, message: str) -> bool: ...


def normalize_phone(phone: str, country_code: str = "62") -> str:
    """
    Normalize a customer phone number to the international digits format.

    Examples (country_code="62"):
      - "0812-3456-7890" -> "6281234567890"
      - "+62 812 3456"   -> "628123456"
      - "628123456"      -> "628123456"
    """
    digits = "".join(ch for ch in phone if ch.isdigit())
    if digits.startswith("0"):
        return country_code + digits[1:]
    return digits


class WhatsAppGateway:
    """
    Fonnte-backed WhatsApp sender.

    send() returns True only when Fonnte acknowledges the message with
    {"status": true}. Network errors, timeouts, non-JSON bodies and
    missing configuration all yield False.
    """

    def __init__(
        self,
        api_url: str,
        token: str | None,
        country_code: str = "62",
        timeout: float = 10.0,
    ):
        self.api_url = api_url
        self.token = token
        self.country_code = country_code
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.token) and self.token != PLACEHOLDER_TOKEN

    def send(self, phone: str, message: str) -> bool:
        target = normalize_phone(phone, self.country_code)

        if not self.configured:
            logger.info(
                "WhatsApp token not configured. Message would be sent to %s:\n%s",
                target,
                message,
            )
            return False

        try:
            response = requests.post(
                self.api_url,
                headers={"Authorization": self.token},
                json={
                    "target": target,
                    "message": message,
                    "countryCode": self.country_code,
                },
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("WhatsApp send to %s failed: %s", target, exc)
            return False

        logger.info("WhatsApp send result for %s: %s", target, data)
        return isinstance(data, dict) and data.get("status") is True
