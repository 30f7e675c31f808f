from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ----------------------------
# Rate Limiter (configured from RATELIMIT_* keys in init_app)
# ----------------------------
limiter = Limiter(get_remote_address)


def otp_request_limit():
    return current_app.config.get("OTP_REQUEST_LIMIT", "5 per minute")


def get_workflow():
    """The verification/lifecycle services wired for the current app."""
    return current_app.extensions["workflow"]
