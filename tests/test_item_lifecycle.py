import io

import pytest
from PIL import Image as PILImage

from Models.itemModel import Item
from Services.imageStore import GridFsImageStore
from Utils.appError import (
    ConflictError, InvalidEmailError, NotFoundError, NotVerifiedError,
    QuotaExceededError, RequestValidationError, StorageError, UnauthorizedError
)

from conftest import OTHER_STUDENT, REPORTER, STUDENT

ITEM_FIELDS = {
    "name": "Black umbrella",
    "description": "Folding umbrella with a wooden handle",
    "location": "Block C canteen",
    "status": "found",
    "reporter_name": "Asha",
    "reporter_email": REPORTER,
}


def sighting(email=STUDENT, **overrides):
    data = {"name": "Rahul", "contact": "9876543210", "details": "Saw it near the lift", "email": email}
    data.update(overrides)
    return data


def claim(email=STUDENT, **overrides):
    data = {"name": "Rahul", "email": email, "details": "It has my initials on the strap"}
    data.update(overrides)
    return data


# =====================================
#  CREATE
# =====================================
def test_create_without_verification_fails(workflow, mailer):
    workflow.gate.request_code(REPORTER)  # requested but never verified

    with pytest.raises(NotVerifiedError):
        workflow.lifecycle.create(dict(ITEM_FIELDS))
    assert Item.objects.count() == 0


def test_create_consumes_the_verification(workflow, verify):
    verify(REPORTER)

    item = workflow.lifecycle.create(dict(ITEM_FIELDS, status="lost"))

    assert Item.objects(id=item.id).first().status == "lost"
    assert not workflow.gate.is_verified(REPORTER)
    with pytest.raises(NotVerifiedError):
        workflow.lifecycle.create(dict(ITEM_FIELDS))


def test_create_rejects_resolved_initial_status(workflow, verify):
    verify(REPORTER)

    with pytest.raises(RequestValidationError):
        workflow.lifecycle.create(dict(ITEM_FIELDS, status="resolved"))
    # validation happens before the verification is spent
    assert workflow.gate.is_verified(REPORTER)


def test_create_requires_mandatory_fields(workflow, verify):
    verify(REPORTER)
    fields = dict(ITEM_FIELDS)
    del fields["location"]

    with pytest.raises(RequestValidationError) as exc:
        workflow.lifecycle.create(fields)
    assert "location" in str(exc.value)


def test_create_with_photo_stores_reference(workflow, verify, image_store):
    verify(REPORTER)

    item = workflow.lifecycle.create(dict(ITEM_FIELDS), photo=(b"jpeg-bytes", "umbrella.jpg"))

    assert item.photo == "/uploads/photo_1.jpg"
    assert item.photo_ref == "img-1"
    assert image_store.stored == [(b"jpeg-bytes", "umbrella.jpg")]


def test_photo_storage_failure_aborts_creation(workflow, verify, image_store):
    verify(REPORTER)
    image_store.fail = True

    with pytest.raises(StorageError):
        workflow.lifecycle.create(dict(ITEM_FIELDS), photo=(b"jpeg-bytes", "umbrella.jpg"))
    assert Item.objects.count() == 0


def test_unreadable_photo_keeps_the_verification(workflow, verify):
    workflow.lifecycle.image_store = GridFsImageStore()
    verify(REPORTER)

    with pytest.raises(RequestValidationError):
        workflow.lifecycle.create(dict(ITEM_FIELDS), photo=(b"not an image", "x.jpg"))

    assert workflow.gate.is_verified(REPORTER)
    assert Item.objects.count() == 0


def test_oversized_photo_is_a_validation_error(workflow, verify, monkeypatch):
    workflow.lifecycle.image_store = GridFsImageStore()
    monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 1000)
    raw = io.BytesIO()
    PILImage.new("1", (200, 200)).save(raw, format="PNG")
    verify(REPORTER)

    with pytest.raises(RequestValidationError):
        workflow.lifecycle.create(dict(ITEM_FIELDS), photo=(raw.getvalue(), "b.png"))
    assert workflow.gate.is_verified(REPORTER)


def test_create_sends_no_notification(workflow, verify, mailer):
    verify(REPORTER)
    sent_before = len(mailer.sent)

    workflow.lifecycle.create(dict(ITEM_FIELDS))
    assert len(mailer.sent) == sent_before


def test_list_items_newest_first(workflow, make_item, clock):
    first = make_item(name="First")
    make_item(name="Second")
    Item.objects(id=first.id).update(set__created_at=clock.now)

    names = [item.name for item in workflow.lifecycle.list_items()]
    assert names.index("Second") < names.index("First")
    assert [i.name for i in workflow.lifecycle.list_items(status="lost")] == names


def test_get_unknown_or_malformed_id(workflow):
    with pytest.raises(NotFoundError):
        workflow.lifecycle.get("not-an-object-id")
    with pytest.raises(NotFoundError):
        workflow.lifecycle.get("65f0c0ffee0000000000beef")


# =====================================
#  SIGHTINGS
# =====================================
def test_sighting_notifies_reporter(workflow, make_item, mailer):
    item = make_item()

    result = workflow.lifecycle.record_sighting(str(item.id), sighting())

    assert result.notified is True
    assert [s.email for s in result.item.sightings] == [STUDENT]
    assert mailer.to(REPORTER)[-1]["subject"] == f"New sighting: {item.name}"


def test_third_sighting_exceeds_quota_without_notification(workflow, make_item, mailer):
    item = make_item()
    flags = [workflow.lifecycle.record_sighting(str(item.id), sighting()).notified for _ in range(2)]
    mails_to_reporter = len(mailer.to(REPORTER))

    with pytest.raises(QuotaExceededError):
        workflow.lifecycle.record_sighting(str(item.id), sighting())

    assert flags == [True, True]
    assert len(mailer.to(REPORTER)) == mails_to_reporter
    assert len(Item.objects(id=item.id).first().sightings) == 2


def test_quota_spans_items(workflow, make_item):
    first, second = make_item(), make_item()
    workflow.lifecycle.record_sighting(str(first.id), sighting())
    workflow.lifecycle.record_sighting(str(second.id), sighting())

    with pytest.raises(QuotaExceededError):
        workflow.lifecycle.record_sighting(str(first.id), sighting())


def test_sighting_requires_institutional_email(workflow, make_item):
    item = make_item()

    with pytest.raises(InvalidEmailError):
        workflow.lifecycle.record_sighting(str(item.id), sighting(email="rahul@gmail.com"))
    assert workflow.quotas.used("sighting", "rahul@gmail.com") == 0


def test_sighting_survives_mail_failure(workflow, make_item, mailer):
    item = make_item()
    mailer.fail = True

    result = workflow.lifecycle.record_sighting(str(item.id), sighting())

    assert result.notified is False
    assert len(Item.objects(id=item.id).first().sightings) == 1


def test_sighting_on_missing_item(workflow):
    with pytest.raises(NotFoundError):
        workflow.lifecycle.record_sighting("65f0c0ffee0000000000beef", sighting())
    assert workflow.quotas.used("sighting", STUDENT) == 0


# =====================================
#  CLAIMS
# =====================================
def test_claim_with_non_institutional_email_mutates_nothing(workflow, make_item, verify):
    item = make_item()
    verify("claimant@gmail.com", purpose="claim")

    with pytest.raises(InvalidEmailError):
        workflow.lifecycle.record_claim(str(item.id), claim(email="claimant@gmail.com"))

    assert workflow.quotas.used("claim", "claimant@gmail.com") == 0
    assert workflow.gate.is_verified("claimant@gmail.com")
    assert Item.objects(id=item.id).first().claims == []


def test_claim_requires_verification(workflow, make_item):
    item = make_item()

    with pytest.raises(NotVerifiedError):
        workflow.lifecycle.record_claim(str(item.id), claim())
    assert workflow.quotas.used("claim", STUDENT) == 0


def test_claim_consumes_verification(workflow, make_item, verify, mailer):
    item = make_item()
    verify(STUDENT, purpose="claim")

    result = workflow.lifecycle.record_claim(str(item.id), claim())

    assert result.notified is True
    assert result.item.claims[0].email == STUDENT
    assert mailer.to(REPORTER)[-1]["subject"] == f"New claim: {item.name}"
    with pytest.raises(NotVerifiedError):
        workflow.lifecycle.record_claim(str(item.id), claim())


def test_claim_quota(workflow, make_item, verify):
    item = make_item()
    for _ in range(2):
        verify(OTHER_STUDENT, purpose="claim")
        workflow.lifecycle.record_claim(str(item.id), claim(email=OTHER_STUDENT))

    verify(OTHER_STUDENT, purpose="claim")
    with pytest.raises(QuotaExceededError):
        workflow.lifecycle.record_claim(str(item.id), claim(email=OTHER_STUDENT))


def test_claim_policy_without_consumption(workflow, make_item, verify):
    workflow.lifecycle.claim_consumes_verification = False
    item = make_item()
    verify(STUDENT, purpose="claim")

    workflow.lifecycle.record_claim(str(item.id), claim())

    assert workflow.gate.is_verified(STUDENT)


# =====================================
#  RESOLVE
# =====================================
def test_resolve_by_verified_reporter(workflow, make_item, verify, mailer):
    item = make_item()
    verify(REPORTER, purpose="resolve")

    result = workflow.lifecycle.resolve(str(item.id), REPORTER)

    assert result.item.status == "resolved"
    assert result.item.resolved_at is not None
    assert result.notified is True
    assert mailer.to(REPORTER)[-1]["subject"] == f"Item Resolved: {item.name}"


def test_resolve_by_someone_else_is_unauthorized(workflow, make_item, verify):
    item = make_item()
    verify(STUDENT)

    with pytest.raises(UnauthorizedError):
        workflow.lifecycle.resolve(str(item.id), STUDENT)
    assert workflow.gate.is_verified(STUDENT)


def test_resolve_requires_live_verification(workflow, make_item):
    item = make_item()  # creation consumed the reporter's verification

    with pytest.raises(NotVerifiedError):
        workflow.lifecycle.resolve(str(item.id), REPORTER)
    assert Item.objects(id=item.id).first().status == "lost"


def test_second_resolve_conflicts(workflow, make_item, verify):
    item = make_item()
    verify(REPORTER, purpose="resolve")
    workflow.lifecycle.resolve(str(item.id), REPORTER)

    verify(REPORTER, purpose="resolve")
    with pytest.raises(ConflictError):
        workflow.lifecycle.resolve(str(item.id), REPORTER)
    # the conflict is detected before spending the verification
    assert workflow.gate.is_verified(REPORTER)


def test_resolve_missing_item(workflow):
    with pytest.raises(NotFoundError):
        workflow.lifecycle.resolve("65f0c0ffee0000000000beef", REPORTER)


def test_resolve_notification_failure_keeps_resolution(workflow, make_item, verify, mailer):
    item = make_item()
    verify(REPORTER, purpose="resolve")
    mailer.fail = True

    result = workflow.lifecycle.resolve(str(item.id), REPORTER)

    assert result.notified is False
    assert Item.objects(id=item.id).first().status == "resolved"


def test_no_responses_after_resolution(workflow, make_item, verify):
    item = make_item()
    verify(REPORTER, purpose="resolve")
    workflow.lifecycle.resolve(str(item.id), REPORTER)

    with pytest.raises(ConflictError):
        workflow.lifecycle.record_sighting(str(item.id), sighting())
    verify(STUDENT, purpose="claim")
    with pytest.raises(ConflictError):
        workflow.lifecycle.record_claim(str(item.id), claim())
    assert workflow.quotas.used("sighting", STUDENT) == 0


def test_conditional_resolve_loses_race(workflow, make_item, verify):
    item = make_item()
    verify(REPORTER, purpose="resolve")
    # another request resolved the item after our read
    assert workflow.lifecycle.repository.mark_resolved(str(item.id)) is not None
    assert workflow.lifecycle.repository.mark_resolved(str(item.id)) is None

    with pytest.raises(ConflictError):
        workflow.lifecycle.resolve(str(item.id), REPORTER)
