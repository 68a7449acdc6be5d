"""
Email gateway client for sending transactional auth emails via HTTP gateway.

Uses HMAC-SHA256 signature for request authentication.
"""

import hashlib
import hmac
import json
import logging

import requests

logger = logging.getLogger(__name__)


class EmailGatewayError(Exception):
    """Raised when email gateway request fails."""


class EmailGatewayClient:
    """Send emails via HTTP gateway with HMAC signature verification."""

    def __init__(
        self,
        gateway_url: str,
        api_key: str,
        hmac_secret: str,
        timeout_seconds: float = 5,
    ):
        """
        Initialize with gateway credentials.

        Args:
            gateway_url: Full URL to the email gateway endpoint
            api_key: API key for X-API-Key header
            hmac_secret: Secret for HMAC-SHA256 signature
            timeout_seconds: Upper bound on a single gateway request

        Raises:
            ValueError: If any credential is empty or the timeout is not positive
        """
        if not gateway_url:
            raise ValueError("gateway_url is required")
        if not api_key:
            raise ValueError("api_key is required")
        if not hmac_secret:
            raise ValueError("hmac_secret is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.gateway_url = gateway_url
        self.api_key = api_key
        self.hmac_secret = hmac_secret
        self.timeout_seconds = timeout_seconds

    def _sign_and_send(self, payload: dict) -> None:
        """
        Sign payload with HMAC and send to gateway.

        Raises:
            EmailGatewayError: On any failure
        """
        payload_json = json.dumps(payload, separators=(",", ":"))

        signature = hmac.new(
            self.hmac_secret.encode("utf-8"),
            payload_json.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

        headers = {
            "Content-Type": "application/json",
            "X-API-Key": self.api_key,
            "X-Signature": signature,
        }

        try:
            response = requests.post(
                self.gateway_url,
                data=payload_json,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Email gateway connection failed: {e}")
            raise EmailGatewayError(f"Connection failed: {e}")

        try:
            response_data = response.json()
        except ValueError:
            logger.error(f"Email gateway returned invalid JSON (status {response.status_code})")
            raise EmailGatewayError("Invalid response from gateway")

        if not isinstance(response_data, dict):
            logger.error(f"Email gateway returned non-object JSON (status {response.status_code})")
            raise EmailGatewayError("Invalid response from gateway")

        if response.status_code != 200 or not response_data.get("success"):
            error_msg = response_data.get("message", "Unknown error")
            logger.error(f"Email gateway error: {error_msg}")
            raise EmailGatewayError(f"Gateway error: {error_msg}")

    def send_otp(self, recipient: str, otp: str, expiry_minutes: int) -> None:
        """
        Send an admin panel verification code.

        Args:
            recipient: Address that receives the code
            otp: The one-time passcode
            expiry_minutes: Code lifetime, quoted in the email body

        Raises:
            EmailGatewayError: On any failure
        """
        payload = {
            "type": "custom",
            "email": recipient,
            "subject": "Your Admin Panel Verification Code",
            "body": (
                f"Here's your verification code: {otp}\n\n"
                f"This code will expire in {expiry_minutes} minutes.\n"
                "If you didn't request this code, please secure your account immediately."
            ),
            "sender": "auth",
        }
        self._sign_and_send(payload)
        logger.info(f"Verification code email sent to {recipient}")

    def send_password_reset_link(self, recipient: str, reset_url: str, expiry_minutes: int) -> None:
        """
        Send an admin panel password reset link.

        Raises:
            EmailGatewayError: On any failure
        """
        payload = {
            "type": "custom",
            "email": recipient,
            "subject": "Admin Panel Password Reset",
            "body": (
                "Use the link below to reset your password:\n\n"
                f"{reset_url}\n\n"
                f"This link expires in {expiry_minutes} minutes. "
                "If you didn't request this, please ignore this email."
            ),
            "sender": "auth",
        }
        self._sign_and_send(payload)
        logger.info(f"Password reset email sent to {recipient}")
