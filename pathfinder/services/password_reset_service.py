"""
HR Path-Finder
Password reset by one-time code.

    send_otp        → 6-digit code mailed synchronously, valid OTP_TTL_MINUTES
    verify_otp      → code spent, short-lived reset JWT returned
    reset_password  → reset JWT + new password

Codes are stored as bcrypt hashes; requesting a new code discards every
unused one for the same address.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt as pyjwt
from flask import current_app

from pathfinder.core.exceptions import TokenExpiredError, ValidationError
from pathfinder.models import db
from pathfinder.models.audit import write_audit
from pathfinder.models.auth import PasswordResetOtp
from pathfinder.notifications import PasswordResetOtpNotification, notify
from pathfinder.services import user_service
from pathfinder.services.jwt_service import decode_password_reset_token, generate_password_reset_token
from pathfinder.utils.crypto import generate_otp, hash_password, verify_password
from pathfinder.utils.helpers import normalize_email

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
INVALID_OTP_MESSAGE = "Invalid or expired OTP. Please request a new one."


def _known_email(value) -> str:
    email = normalize_email(value)
    if user_service.get_user_by_email(email) is None:
        raise ValidationError(
            "Unknown email",
            details={"email": "We could not find a user with that email address."},
        )
    return email


def cleanup_expired(now: datetime | None = None) -> int:
    """Delete every expired code; returns the number removed."""
    now = now or datetime.now(timezone.utc)
    removed = PasswordResetOtp.query.filter(PasswordResetOtp.expires_at <= now).delete(
        synchronize_session=False,
    )
    return removed


def send_otp(email, ip_address: str | None = None) -> PasswordResetOtp:
    email = _known_email(email)
    ttl = current_app.config.get("OTP_TTL_MINUTES", 10)

    cleanup_expired()
    PasswordResetOtp.query.filter_by(email=email, used=False).delete(synchronize_session=False)

    otp = generate_otp(OTP_LENGTH)
    record = PasswordResetOtp(
        email=email,
        otp_hash=hash_password(otp),
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=ttl),
        ip_address=ip_address,
    )
    db.session.add(record)
    db.session.commit()

    notify(email, PasswordResetOtpNotification(otp, expires_in=ttl))
    logger.info("Password reset OTP sent: otp=%s ip=%s", record.id, ip_address,
                extra={"event_type": "password.otp_sent"})
    return record


def verify_otp(email, otp) -> str:
    """Spend a valid code and return the reset token."""
    email = _known_email(email)
    if not isinstance(otp, str) or len(otp) != OTP_LENGTH or not otp.isdigit():
        raise ValidationError("Invalid OTP", details={"otp": f"The otp must be {OTP_LENGTH} digits."})

    now = datetime.now(timezone.utc)
    candidates = (
        PasswordResetOtp.query
        .filter(
            PasswordResetOtp.email == email,
            PasswordResetOtp.used.is_(False),
            PasswordResetOtp.expires_at > now,
        )
        .order_by(PasswordResetOtp.created_at.desc(), PasswordResetOtp.id.desc())
        .all()
    )
    record = next((c for c in candidates if c.is_valid(now) and verify_password(otp, c.otp_hash)), None)
    if record is None:
        logger.warning("Invalid OTP attempt for %s", email, extra={"event_type": "password.otp_rejected"})
        raise ValidationError("Invalid OTP", details={"otp": INVALID_OTP_MESSAGE})

    record.used = True
    db.session.commit()
    logger.info("OTP verified: otp=%s", record.id, extra={"event_type": "password.otp_verified"})
    return generate_password_reset_token(email)


def reset_password(token, password, confirmation=None):
    if not isinstance(token, str) or not token:
        raise ValidationError("token is required", details={"token": "The token field is required."})
    try:
        payload = decode_password_reset_token(token)
    except pyjwt.ExpiredSignatureError as exc:
        raise TokenExpiredError("The password reset session has expired. Please request a new OTP.") from exc
    except pyjwt.InvalidTokenError as exc:
        raise ValidationError("Invalid reset token", details={"token": "Please verify your OTP first."}) from exc

    user_service.validate_new_password(password, confirmation)
    user = user_service.get_user_by_email(payload.get("email"))
    if user is None:
        raise ValidationError("Unknown email", details={"email": "Email mismatch. Please start the process again."})

    user_service.set_password(user, password)
    write_audit(entity_type="user", entity_id=user.id, action="password.reset", actor_user_id=user.id)
    db.session.commit()
    logger.info("Password reset for user %s", user.id, extra={"event_type": "password.reset", "user_id": user.id})
    return user
