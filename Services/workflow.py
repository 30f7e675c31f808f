from dataclasses import dataclass
from datetime import datetime

from Services.imageStore import GridFsImageStore
from Services.itemLifecycle import ItemLifecycle
from Services.itemRepository import ItemRepository
from Services.notifier import Notifier
from Services.otpStore import OtpStore
from Services.quotaTracker import QuotaTracker
from Services.stateStore import InMemoryStateStore
from Services.verificationGate import VerificationGate
from Utils.email import Mailer


@dataclass
class Workflow:
    state: object
    otp_store: OtpStore
    gate: VerificationGate
    quotas: QuotaTracker
    notifier: Notifier
    lifecycle: ItemLifecycle


def build_workflow(config, state=None, mailer=None, image_store=None, clock=datetime.utcnow):
    """Wire the verification and lifecycle services from a Flask config mapping."""
    state = state or InMemoryStateStore()
    mailer = mailer or Mailer.from_config(config)
    image_store = image_store or GridFsImageStore(max_width=config["PHOTO_MAX_WIDTH"])

    ttl = config["OTP_TTL_SECONDS"]
    notifier = Notifier(mailer, brand=config["MAIL_BRAND"], ttl_minutes=max(ttl // 60, 1))
    otp_store = OtpStore(state, ttl_seconds=ttl, clock=clock)
    gate = VerificationGate(otp_store, state, notifier)
    quotas = QuotaTracker(state, limit=config["SUBMISSION_QUOTA"])
    lifecycle = ItemLifecycle(
        ItemRepository(),
        gate,
        quotas,
        notifier,
        image_store=image_store,
        institution_domain=config["INSTITUTION_DOMAIN"],
        claim_consumes_verification=config["CLAIM_CONSUMES_VERIFICATION"],
    )
    return Workflow(state, otp_store, gate, quotas, notifier, lifecycle)
