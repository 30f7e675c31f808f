import re
from datetime import datetime, timedelta

import pytest
from mongoengine import disconnect

from app import create_app
from Models.itemModel import Item
from Services.imageStore import StoredImage
from Services.workflow import build_workflow
from Utils.appError import StorageError
from Utils.config import TestConfig
from Utils.db import init_db
from Utils.email import DeliveryError

REPORTER = "reporter@inst.edu"
STUDENT = "rahul1234.becse21@chitkara.edu.in"
OTHER_STUDENT = "priya5678.btechece22@chitkara.edu.in"

OTP_LINE = re.compile(r"Your OTP is: (\d{6})")


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, body, html=None):
        if self.fail:
            raise DeliveryError("SMTP server unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})

    def to(self, email):
        return [m for m in self.sent if m["to"] == email]

    def last_code(self, email):
        for message in reversed(self.sent):
            if message["to"] == email:
                match = OTP_LINE.search(message["body"])
                if match:
                    return match.group(1)
        raise AssertionError(f"no OTP mailed to {email}")


class FakeClock:
    def __init__(self, start=datetime(2024, 3, 1, 9, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeImageStore:
    def __init__(self):
        self.stored = []
        self.fail = False

    def prepare(self, data):
        return data

    def store(self, data, original_name="photo"):
        if self.fail:
            raise StorageError("Could not store the photo. The item was not created.")
        self.stored.append((data, original_name))
        n = len(self.stored)
        return StoredImage(url=f"/uploads/photo_{n}.jpg", reference_id=f"img-{n}")

    def load(self, filename):
        return None


def config_dict(config_class=TestConfig):
    return {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def db():
    init_db(TestConfig.MONGODB_URI, mock=True)
    yield
    Item.drop_collection()
    disconnect(alias="default")


@pytest.fixture
def workflow(db, mailer, clock, image_store):
    return build_workflow(config_dict(), mailer=mailer, image_store=image_store, clock=clock)


@pytest.fixture
def verify(workflow, mailer):
    """Run the OTP round trip so ``email`` holds one unconsumed verification."""
    def _verify(email, purpose="create"):
        workflow.gate.request_code(email, purpose=purpose)
        workflow.gate.verify_code(email, mailer.last_code(email))
    return _verify


@pytest.fixture
def make_item(workflow, verify):
    def _make_item(status="lost", reporter=REPORTER, **overrides):
        verify(reporter)
        fields = {
            "name": "Blue water bottle",
            "description": "Steel bottle with a dent near the cap",
            "location": "Library, 2nd floor",
            "status": status,
            "reporter_name": "Asha",
            "reporter_email": reporter,
        }
        fields.update(overrides)
        return workflow.lifecycle.create(fields)
    return _make_item


@pytest.fixture
def app(mailer, clock, image_store, tmp_path):
    class AppTestConfig(TestConfig):
        LOG_DIR = str(tmp_path / "logs")

    app = create_app(AppTestConfig, mailer=mailer, image_store=image_store, clock=clock)
    yield app
    Item.drop_collection()
    disconnect(alias="default")


@pytest.fixture
def client(app):
    return app.test_client()
