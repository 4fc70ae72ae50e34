"""
Twilio Verify client for phone-number verification codes.

Twilio generates, delivers, expires and checks the code; this side only
starts a verification and asks whether a submitted code is approved.
"""

import logging
from dataclasses import dataclass

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

logger = logging.getLogger(__name__)

# Twilio error codes with a distinct user-facing meaning
TWILIO_NOT_FOUND = 20404  # verification expired, approved already, or never started
TWILIO_TOO_MANY_REQUESTS = 20429
TWILIO_INVALID_PHONE = 60200
TWILIO_MAX_CHECK_ATTEMPTS = 60202
TWILIO_MAX_SEND_ATTEMPTS = 60203


class SMSVerificationError(Exception):
    """Twilio Verify request failed. `code` holds the Twilio error code, if any."""

    def __init__(self, message: str, code: int | None = None):
        self.code = code
        super().__init__(message)


@dataclass
class VerificationCheck:
    """Outcome of a verification check."""

    status: str

    @property
    def approved(self) -> bool:
        return self.status == "approved"


class TwilioVerifyClient:
    """Start and check SMS verifications through a Twilio Verify service."""

    def __init__(self, account_sid: str, auth_token: str, verify_service_sid: str):
        """
        Raises:
            ValueError: If any credential is empty
        """
        if not account_sid:
            raise ValueError("account_sid is required")
        if not auth_token:
            raise ValueError("auth_token is required")
        if not verify_service_sid:
            raise ValueError("verify_service_sid is required")

        self._client = Client(account_sid, auth_token)
        self._service_sid = verify_service_sid

    def _service(self):
        return self._client.verify.v2.services(self._service_sid)

    @staticmethod
    def _require_e164(phone: str) -> None:
        if not phone or not phone.startswith("+"):
            raise SMSVerificationError(
                "Invalid phone number format. Must include country code (e.g., +1234567890)",
                code=TWILIO_INVALID_PHONE,
            )

    def send_verification(self, phone: str) -> str:
        """
        Start (or restart) an SMS verification for phone.

        Returns:
            The Twilio verification status (normally "pending").

        Raises:
            SMSVerificationError: On invalid number or any Twilio failure
        """
        self._require_e164(phone)

        try:
            verification = self._service().verifications.create(to=phone, channel="sms")
        except TwilioRestException as e:
            logger.error(f"Twilio Verify send failed: {e.msg} (code {e.code})")
            raise SMSVerificationError(_send_error_message(e), code=e.code)
        except TwilioException as e:
            logger.error(f"Twilio Verify send failed: {e}")
            raise SMSVerificationError(f"SMS verification send failed: {e}")

        logger.info(f"SMS verification started for ...{phone[-4:]}: {verification.status}")
        return verification.status

    def check_verification(self, phone: str, code: str) -> VerificationCheck:
        """
        Check a submitted code.

        A wrong code is not an error: it comes back as a non-approved status.

        Raises:
            SMSVerificationError: On Twilio failures, including expired
                verifications (20404) and too many checks (60202)
        """
        self._require_e164(phone)

        try:
            check = self._service().verification_checks.create(to=phone, code=code)
        except TwilioRestException as e:
            logger.warning(f"Twilio Verify check failed: {e.msg} (code {e.code})")
            raise SMSVerificationError(_check_error_message(e), code=e.code)
        except TwilioException as e:
            logger.error(f"Twilio Verify check failed: {e}")
            raise SMSVerificationError(f"SMS verification check failed: {e}")

        logger.info(f"SMS verification check for ...{phone[-4:]}: {check.status}")
        return VerificationCheck(status=check.status)


def _send_error_message(error: TwilioRestException) -> str:
    if error.code == TWILIO_INVALID_PHONE:
        return "Invalid phone number format"
    if error.code == TWILIO_MAX_SEND_ATTEMPTS:
        return "Max send attempts reached. Please try again later."
    if error.code == TWILIO_TOO_MANY_REQUESTS:
        return "Too many requests. Please wait a moment and try again."
    return f"SMS verification send failed: {error.msg}"


def _check_error_message(error: TwilioRestException) -> str:
    if error.code == TWILIO_NOT_FOUND:
        return "Verification code expired or not found. Please request a new code."
    if error.code == TWILIO_MAX_CHECK_ATTEMPTS:
        return "Too many verification attempts. Please request a new code."
    return f"SMS verification check failed: {error.msg}"
