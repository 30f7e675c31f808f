"""
Item lifecycle: lost/found -> resolved.

Every mutating operation validates its preconditions in a fixed order and
finishes with a conditional update against the store, so two concurrent
requests can never both move the same item out of an open state. Courtesy
mails are sent after the change is committed and only reported through the
``notified`` flag.
"""
import logging
from typing import NamedTuple, Optional

from Models.itemModel import Item, ItemStatus, Response
from Services.quotaTracker import CLAIM, SIGHTING
from Utils.appError import (
    ConflictError, InvalidEmailError, NotFoundError, NotVerifiedError,
    RequestValidationError, UnauthorizedError
)
from Utils.requestSchemas import ClaimRequest, CreateItemRequest, SightingRequest, parse_request
from Utils.validators import is_institutional_email

logger = logging.getLogger(__name__)


class TransitionResult(NamedTuple):
    item: Item
    notified: bool


class ItemLifecycle:
    def __init__(self, repository, gate, quotas, notifier, image_store=None,
                 institution_domain="chitkara.edu.in", claim_consumes_verification=True):
        self.repository = repository
        self.gate = gate
        self.quotas = quotas
        self.notifier = notifier
        self.image_store = image_store
        self.institution_domain = institution_domain
        self.claim_consumes_verification = claim_consumes_verification

    # =====================================
    #  READS
    # =====================================
    def get(self, item_id) -> Item:
        item = self.repository.find(item_id)
        if not item:
            raise NotFoundError("Item not found")
        return item

    def list_items(self, status=None):
        return self.repository.list_recent(status=status)

    # =====================================
    #  CREATE
    # =====================================
    def create(self, fields, photo: Optional[tuple] = None) -> Item:
        """
        Persist a new lost/found item for a freshly verified reporter.

        Args:
            fields: CreateItemRequest or a raw dict of the same fields.
            photo: optional ``(bytes, filename)`` tuple.
        """
        if not isinstance(fields, CreateItemRequest):
            fields = parse_request(CreateItemRequest, fields)
        if fields.status not in ItemStatus.open_values():
            raise RequestValidationError("Status must be 'lost' or 'found'")

        prepared = None
        if photo is not None:
            if self.image_store is None:
                raise RequestValidationError("Photo uploads are not enabled")
            data, filename = photo
            prepared = self.image_store.prepare(data)

        if not self.gate.consume_verification(fields.reporter_email):
            raise NotVerifiedError("Email not verified with OTP")

        photo_url = photo_ref = None
        if prepared is not None:
            stored = self.image_store.store(prepared, filename)
            photo_url, photo_ref = stored.url, stored.reference_id

        item = self.repository.create(
            name=fields.name,
            description=fields.description,
            location=fields.location,
            status=fields.status,
            reporter_name=fields.reporter_name,
            reporter_email=fields.reporter_email,
            photo=photo_url,
            photo_ref=photo_ref,
        )
        logger.info(f"✅ Item {item.id} reported as {item.status} by {item.reporter_email}")
        return item

    # =====================================
    #  SIGHTINGS & CLAIMS
    # =====================================
    def _require_institutional(self, email):
        if not is_institutional_email(email, self.institution_domain):
            raise InvalidEmailError(f"Please use your @{self.institution_domain} student email")

    def _require_open(self, item_id) -> Item:
        item = self.get(item_id)
        if not item.is_open:
            raise ConflictError("This item has already been resolved")
        return item

    def _append(self, item_id, kind, response) -> Item:
        item = self.repository.append_response(item_id, kind, response)
        if item is None:
            # Lost a race with resolve (or a delete) between the check and the update
            self._require_open(item_id)
            raise ConflictError("This item has already been resolved")
        return item

    def record_sighting(self, item_id, report) -> TransitionResult:
        if not isinstance(report, SightingRequest):
            report = parse_request(SightingRequest, report)

        self._require_institutional(report.email)
        self._require_open(item_id)
        self.quotas.try_reserve(SIGHTING, report.email)

        sighting = Response(name=report.name, contact=report.contact,
                            details=report.details, email=report.email)
        item = self._append(item_id, SIGHTING, sighting)
        logger.info(f"👀 Sighting recorded on item {item_id} by {report.email}")

        notified = self.notifier.sighting_reported(item, sighting)
        return TransitionResult(item, notified)

    def record_claim(self, item_id, claim) -> TransitionResult:
        if not isinstance(claim, ClaimRequest):
            claim = parse_request(ClaimRequest, claim)

        self._require_institutional(claim.email)
        self._require_open(item_id)

        if self.claim_consumes_verification:
            verified = self.gate.consume_verification(claim.email)
        else:
            verified = self.gate.is_verified(claim.email)
        if not verified:
            raise NotVerifiedError("Verify your email with an OTP before claiming an item")

        self.quotas.try_reserve(CLAIM, claim.email)

        response = Response(name=claim.name, contact=claim.contact,
                            details=claim.details, email=claim.email)
        item = self._append(item_id, CLAIM, response)
        logger.info(f"🙋 Claim recorded on item {item_id} by {claim.email}")

        notified = self.notifier.claim_submitted(item, response)
        return TransitionResult(item, notified)

    # =====================================
    #  RESOLVE
    # =====================================
    def resolve(self, item_id, requester_email) -> TransitionResult:
        item = self.get(item_id)

        if requester_email != item.reporter_email:
            raise UnauthorizedError("Unauthorized to resolve this item")
        if not item.is_open:
            raise ConflictError("This item has already been resolved")
        if not self.gate.consume_verification(requester_email):
            raise NotVerifiedError("Email not verified with OTP")

        resolved = self.repository.mark_resolved(item_id)
        if resolved is None:
            raise ConflictError("This item has already been resolved")
        logger.info(f"✅ Item {item_id} resolved by {requester_email}")

        notified = self.notifier.item_resolved(resolved, requester_email)
        return TransitionResult(resolved, notified)
