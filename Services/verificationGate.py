"""
Email verification gate.

Verification is split in two steps. ``verify_code`` redeems an OTP and grants
the email one verification; ``consume_verification`` spends it from inside a
privileged action. Each successful verification therefore authorizes exactly
one downstream effect.
"""
import logging

from Utils.appError import DeliveryFailedError, UnauthorizedError
from Utils.email import DeliveryError

logger = logging.getLogger("verification")

VERIFIED_NAMESPACE = "verified"


class VerificationGate:
    def __init__(self, otp_store, state, notifier):
        self.otp_store = otp_store
        self.state = state
        self.notifier = notifier

    def request_code(self, email, purpose="create", authorization_check=None, bound_item_id=None):
        """
        Issue and mail a code to ``email``.

        ``authorization_check`` is a callable supplied by the caller context
        (e.g. "email must be the item's reporter"); a falsy result refuses the
        request before any code exists.
        """
        if authorization_check is not None and not authorization_check(email):
            logger.warning(f"OTP request refused for {email} (purpose={purpose})")
            raise UnauthorizedError("This email is not allowed to request a code for this action.")

        code = self.otp_store.issue(email, bound_item_id=bound_item_id)
        try:
            self.notifier.send_otp(email, code, purpose=purpose)
        except DeliveryError as e:
            logger.error(f"OTP delivery to {email} failed: {e}")
            raise DeliveryFailedError("Failed to send OTP. Please try again later.")

    def verify_code(self, email, code):
        """Redeem a code and return the item id it was bound to (if any)."""
        bound_item_id = self.otp_store.consume(email, code)
        self.state.add_member(VERIFIED_NAMESPACE, email)
        logger.info(f"Email verified: {email}")
        return bound_item_id

    def is_verified(self, email) -> bool:
        return self.state.has_member(VERIFIED_NAMESPACE, email)

    def consume_verification(self, email) -> bool:
        consumed = self.state.discard_member(VERIFIED_NAMESPACE, email)
        if consumed:
            logger.info(f"Verification consumed for {email}")
        return consumed
