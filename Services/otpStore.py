import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from Utils.appError import OtpExpiredError, OtpMismatchError, OtpNotFoundError

logger = logging.getLogger("verification")

OTP_NAMESPACE = "otp"
OTP_MIN = 100000
OTP_MAX = 999999


def _digest(code: str) -> str:
    return hashlib.sha256(str(code).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class OtpRecord:
    email: str
    code_digest: str
    issued_at: datetime
    expires_at: datetime
    bound_item_id: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def matches(self, code: str) -> bool:
        return hmac.compare_digest(self.code_digest, _digest(code))


class OtpStore:
    """Issues and consumes one-time codes, one live record per email."""

    def __init__(self, state, ttl_seconds: int = 600, clock=datetime.utcnow):
        self.state = state
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    @staticmethod
    def generate_code() -> str:
        return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))

    def issue(self, email: str, bound_item_id: Optional[str] = None) -> str:
        """Create a fresh code for ``email``, replacing any code issued before."""
        self.purge_expired()

        code = self.generate_code()
        now = self.clock()
        record = OtpRecord(
            email=email,
            code_digest=_digest(code),
            issued_at=now,
            expires_at=now + self.ttl,
            bound_item_id=bound_item_id,
        )
        with self.state.locked(OTP_NAMESPACE, email):
            replaced = self.state.get(OTP_NAMESPACE, email) is not None
            self.state.put(OTP_NAMESPACE, email, record)

        logger.info(
            f"OTP issued for {email} (item={bound_item_id or '-'}, replaced_previous={replaced})"
        )
        return code

    def consume(self, email: str, code: str) -> Optional[str]:
        """
        Redeem ``code`` for ``email``.

        Returns:
            The item id the code was bound to, or None for unbound codes.

        Raises:
            OtpNotFoundError: no live record for the email.
            OtpExpiredError: the record expired; it is deleted.
            OtpMismatchError: wrong code; the record is kept for another try.
        """
        with self.state.locked(OTP_NAMESPACE, email):
            record = self.state.get(OTP_NAMESPACE, email)
            if record is None:
                logger.warning(f"OTP consume for {email}: no active code")
                raise OtpNotFoundError("No active verification code for this email. Request a new one.")

            if record.is_expired(self.clock()):
                self.state.pop(OTP_NAMESPACE, email)
                logger.warning(f"OTP consume for {email}: code expired")
                raise OtpExpiredError("Verification code expired. Request a new one.")

            if not record.matches(code):
                logger.warning(f"OTP consume for {email}: code mismatch")
                raise OtpMismatchError("Invalid verification code.")

            self.state.pop(OTP_NAMESPACE, email)

        logger.info(f"OTP consumed for {email}")
        return record.bound_item_id

    def purge_expired(self) -> int:
        """Drop records whose expiry has passed. Returns the number removed."""
        now = self.clock()
        removed = 0
        for email, record in self.state.snapshot(OTP_NAMESPACE).items():
            if not record.is_expired(now):
                continue
            with self.state.locked(OTP_NAMESPACE, email):
                current = self.state.get(OTP_NAMESPACE, email)
                # A newer record may have replaced the snapshot entry
                if current is not None and current.is_expired(now):
                    self.state.pop(OTP_NAMESPACE, email)
                    removed += 1
        if removed:
            logger.info(f"Purged {removed} expired OTP record(s)")
        return removed
