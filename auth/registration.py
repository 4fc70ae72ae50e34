"""Registration with email + SMS one-time passwords.

A registration is a RegistrationSession document moving through:

    created -> email verified -> (mobile verified) -> consumed into a User

The email code is generated and checked here. The SMS code belongs to
Twilio Verify; this side only tracks whether it was approved. The mobile step
is reachable only after the email step, and consuming the session is a
single atomic delete, so a session creates at most one account.
"""

import logging

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import (
    DeliveryError,
    EmailAlreadyRegisteredError,
    EmailNotVerifiedError,
    InvalidInputError,
    InvalidOTPError,
    OTPAttemptsExceededError,
    OTPExpiredError,
    RegistrationSessionNotFoundError,
)
from auth.otp import check_email_otp, new_email_challenge
from auth.passwords import hash_password
from auth.rate_limiter import RateLimiter
from auth.registration_store import RegistrationSessionStore
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.session import TokenManager
from auth.types import (
    AuthenticatedUser,
    MobileChallenge,
    OTPChannel,
    PendingUser,
    RegistrationSession,
    RegistrationStarted,
)
from auth.validation import (
    require_otp,
    validate_email,
    validate_name,
    validate_password,
    validate_phone,
)
from clients.email_client import EmailGatewayClient, EmailGatewayError
from clients.sms_client import (
    TWILIO_MAX_CHECK_ATTEMPTS,
    TWILIO_NOT_FOUND,
    SMSVerificationError,
    TwilioVerifyClient,
)

logger = logging.getLogger(__name__)


class RegistrationManager:
    """Owns a pending registration from submission to account creation."""

    def __init__(
        self,
        config: AuthConfig,
        store: RegistrationSessionStore,
        auth_db: AuthDatabase,
        token_manager: TokenManager,
        email_client: EmailGatewayClient,
        sms_client: TwilioVerifyClient,
        security_logger: SecurityLogger,
        resend_limiter: RateLimiter,
    ):
        self._config = config
        self._store = store
        self._auth_db = auth_db
        self._token_manager = token_manager
        self._email_client = email_client
        self._sms_client = sms_client
        self._security_logger = security_logger
        self._resend_limiter = resend_limiter

    def _load(self, session_id: str) -> RegistrationSession:
        session = self._store.get(session_id)
        if session is None:
            raise RegistrationSessionNotFoundError()
        return session

    def _save(self, session: RegistrationSession) -> None:
        if not self._store.save(session):
            # Expired or consumed between load and save
            raise RegistrationSessionNotFoundError()

    def _send_email_code(self, session: RegistrationSession) -> str | None:
        """
        Deliver the session's email code.

        Returns the code when it should be exposed to the caller (dev mode),
        else None.

        Raises:
            DeliveryError: If delivery failed and dev mode is off.
        """
        email = session.pending_user.email
        code = session.email_challenge.code

        try:
            self._email_client.send_otp(
                email=email,
                code=code,
                expires_in_minutes=self._config.email_otp_expiry_minutes,
            )
        except EmailGatewayError as e:
            self._security_logger.log(
                SecurityEvent.OTP_DELIVERY_FAILED,
                email=email,
                details={"channel": OTPChannel.EMAIL.value, "error": str(e)},
            )
            if not self._config.expose_dev_otp:
                raise DeliveryError(
                    "Failed to send email OTP. Please check your email configuration or try again."
                )
            logger.warning(f"[DEV] Email delivery failed; OTP for {email}: {code}")
            return code

        self._security_logger.log(SecurityEvent.EMAIL_OTP_SENT, email=email)
        return code if self._config.expose_dev_otp else None

    def _start_sms_verification(self, phone: str, email: str) -> None:
        """
        Raises:
            DeliveryError: If Twilio refused or failed.
        """
        try:
            self._sms_client.send_verification(phone)
        except SMSVerificationError as e:
            self._security_logger.log(
                SecurityEvent.OTP_DELIVERY_FAILED,
                email=email,
                details={"channel": OTPChannel.MOBILE.value, "error": str(e), "code": e.code},
            )
            raise DeliveryError(str(e))

        self._security_logger.log(SecurityEvent.MOBILE_OTP_SENT, email=email)

    # ------------------------------------------------------------------
    # Registration initiation
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        email: str,
        phone: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> RegistrationStarted:
        """
        Validate the submission, store a session and send both codes.

        Raises:
            InvalidInputError: Malformed field. Nothing stored or sent.
            EmailAlreadyRegisteredError: Account exists. Nothing stored or sent.
            DeliveryError: Email code could not be sent (session discarded).
        """
        name = validate_name(name)
        email = validate_email(email)
        password = validate_password(password)
        phone = validate_phone(phone)

        if self._auth_db.get_user_by_email(email) is not None:
            raise EmailAlreadyRegisteredError("Email already registered")

        session = self._store.create(
            PendingUser(name=name, email=email, phone=phone, password=password),
            new_email_challenge(self._config.email_otp_expiry_minutes),
        )

        self._security_logger.log(
            SecurityEvent.REGISTRATION_STARTED,
            email=email,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            dev_code = self._send_email_code(session)
        except DeliveryError:
            self._store.consume(session.session_id)
            raise

        # A failed SMS send is recoverable through resend
        try:
            self._start_sms_verification(phone, email)
        except DeliveryError as e:
            logger.error(f"SMS verification send failed during registration: {e}")

        return RegistrationStarted(session_id=session.session_id, dev_email_otp=dev_code)

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    def verify_email_otp(self, session_id: str, otp: str) -> None:
        """
        Check the email code.

        Raises:
            RegistrationSessionNotFoundError: Missing or expired session.
            OTPAttemptsExceededError: Attempt budget spent; resend required.
            OTPExpiredError: Code expired (counts as an attempt).
            InvalidOTPError: Code mismatch (counts as an attempt).
        """
        otp = require_otp(otp)
        session = self._load(session_id)
        challenge = session.email_challenge
        email = session.pending_user.email

        if challenge.verified:
            return

        if challenge.attempts >= self._config.otp_max_attempts:
            self._security_logger.log(SecurityEvent.EMAIL_OTP_LOCKED, email=email)
            raise OTPAttemptsExceededError()

        try:
            check_email_otp(challenge, otp)
        except (OTPExpiredError, InvalidOTPError) as e:
            challenge.attempts += 1
            self._save(session)
            self._security_logger.log(
                SecurityEvent.EMAIL_OTP_FAILED,
                email=email,
                details={"reason": str(e), "attempts": challenge.attempts},
            )
            logger.info(f"Email OTP rejected ({e}), attempts={challenge.attempts}")
            raise

        challenge.verified = True
        self._save(session)
        self._security_logger.log(SecurityEvent.EMAIL_OTP_VERIFIED, email=email)

    # ------------------------------------------------------------------
    # Mobile verification (terminal)
    # ------------------------------------------------------------------

    def verify_mobile_otp(
        self,
        session_id: str,
        otp: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthenticatedUser:
        """
        Check the SMS code with Twilio and, if approved, create the account.

        Raises:
            RegistrationSessionNotFoundError: Missing, expired or already consumed.
            EmailNotVerifiedError: Email step not completed.
            InvalidOTPError: Twilio did not approve the code (retry allowed).
            OTPExpiredError: Twilio verification expired or not found.
            OTPAttemptsExceededError: Twilio check attempts exhausted.
            DeliveryError: Twilio unavailable.
            EmailAlreadyRegisteredError: The email was registered meanwhile.
        """
        otp = require_otp(otp)
        session = self._load(session_id)
        pending = session.pending_user

        if not session.email_challenge.verified:
            raise EmailNotVerifiedError()

        session.mobile_challenge.attempts += 1
        self._save(session)

        try:
            check = self._sms_client.check_verification(pending.phone, otp)
        except SMSVerificationError as e:
            self._security_logger.log(
                SecurityEvent.MOBILE_OTP_FAILED,
                email=pending.email,
                details={"reason": str(e), "code": e.code},
            )
            if e.code == TWILIO_NOT_FOUND:
                raise OTPExpiredError(str(e))
            if e.code == TWILIO_MAX_CHECK_ATTEMPTS:
                raise OTPAttemptsExceededError(str(e))
            raise DeliveryError(str(e))

        if not check.approved:
            self._security_logger.log(
                SecurityEvent.MOBILE_OTP_FAILED,
                email=pending.email,
                details={"reason": "not_approved", "status": check.status},
            )
            raise InvalidOTPError("Invalid verification code. Please try again.")

        if not self._store.consume(session.session_id):
            # Another request completed this registration first
            raise RegistrationSessionNotFoundError()

        user = self._auth_db.create_user(
            name=pending.name,
            email=pending.email,
            phone=pending.phone,
            password_hash=hash_password(pending.password, rounds=self._config.bcrypt_rounds),
            is_email_verified=True,
            is_phone_verified=True,
        )
        token = self._token_manager.create_token(user.id)

        self._security_logger.log(
            SecurityEvent.REGISTRATION_COMPLETED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"Registration completed for user {user.id}")

        return AuthenticatedUser(user=user, token=token)

    # ------------------------------------------------------------------
    # Resend
    # ------------------------------------------------------------------

    def resend_otp(self, session_id: str, channel: str) -> str | None:
        """
        Send a fresh code on one channel.

        email: new code and expiry, attempts reset, previous code invalidated.
        mobile: Twilio restarts its verification; local attempts reset.
        Verification flags never change here.

        Returns:
            The new email code in dev mode, else None.

        Raises:
            InvalidInputError: Unknown channel.
            RegistrationSessionNotFoundError: Missing or expired session.
            RateLimitedError: Too many resends for this session.
            DeliveryError: The provider failed.
        """
        try:
            otp_channel = OTPChannel(channel)
        except ValueError:
            raise InvalidInputError('Invalid type. Must be "email" or "mobile"')

        session = self._load(session_id)
        self._resend_limiter.check_rate_limit(session.session_id)
        email = session.pending_user.email

        if otp_channel is OTPChannel.EMAIL:
            challenge = new_email_challenge(self._config.email_otp_expiry_minutes)
            challenge.verified = session.email_challenge.verified
            session.email_challenge = challenge
            self._save(session)
            dev_code = self._send_email_code(session)
        else:
            session.mobile_challenge = MobileChallenge(
                verified=session.mobile_challenge.verified,
                attempts=0,
            )
            self._save(session)
            self._start_sms_verification(session.pending_user.phone, email)
            dev_code = None

        self._security_logger.log(
            SecurityEvent.OTP_RESENT,
            email=email,
            details={"channel": otp_channel.value},
        )
        return dev_code
