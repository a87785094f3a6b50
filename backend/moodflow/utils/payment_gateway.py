"""
Mobile-money payment gateway used to unlock the premium tier.
"""
import re
import time
import random
import string
import logging
from typing import Dict, Any

from backend.moodflow.errors import PaymentError

logger = logging.getLogger(__name__)

KENYAN_MOBILE_PATTERN = re.compile(r'^(?:\+?254|0)?(7\d{8})$')


class PaymentGateway:
    """Capability interface: charge a phone number, return a confirmation."""

    provider = "base"

    def pay(self, phone_number: str, amount: int) -> Dict[str, Any]:
        """Charge `amount` to `phone_number`.

        Returns:
            Confirmation dict with at least "transaction_id".

        Raises:
            PaymentError: With a human-readable reason on failure.
        """
        raise NotImplementedError


class MockMpesaGateway(PaymentGateway):
    """Simulates InterSend's M-Pesa API. No money moves."""

    provider = "mpesa"

    def __init__(self, delay: float = 2.5, succeed: bool = True):
        self.delay = delay
        self.succeed = succeed

    def _wait(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def pay(self, phone_number: str, amount: int) -> Dict[str, Any]:
        phone_number = (phone_number or '').strip()
        logger.info(f"Initiating M-Pesa payment for {phone_number} of KES {amount}...")

        if not KENYAN_MOBILE_PATTERN.match(phone_number):
            self._wait(min(self.delay, 0.5))
            raise PaymentError("Invalid Kenyan phone number format. Use e.g., 0712345678.")

        if amount <= 0:
            self._wait(min(self.delay, 0.5))
            raise PaymentError("Payment amount must be positive.")

        # Simulate network delay and API processing
        self._wait(self.delay)

        if not self.succeed:
            logger.error("M-Pesa payment failed.")
            raise PaymentError("The payment could not be processed. Please try again.")

        suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=7))
        transaction_id = f"MPESA_{int(time.time() * 1000)}_{suffix}"
        logger.info(f"Payment successful. Transaction ID: {transaction_id}")
        return {
            "transaction_id": transaction_id,
            "phone_number": phone_number,
            "amount": amount,
            "provider": self.provider,
        }
