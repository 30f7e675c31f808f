from mongoengine import (
    Document, EmbeddedDocument, StringField, DateTimeField,
    EmbeddedDocumentListField, ValidationError
)
from datetime import datetime
from enum import Enum


class ItemStatus(Enum):
    LOST = "lost"
    FOUND = "found"
    RESOLVED = "resolved"

    @classmethod
    def open_values(cls):
        return [cls.LOST.value, cls.FOUND.value]


class Response(EmbeddedDocument):
    """A sighting report or an ownership claim left on an item."""
    name = StringField(required=True, max_length=100)
    contact = StringField(max_length=50)
    details = StringField(required=True, max_length=1000)
    email = StringField(max_length=254)
    submitted_at = DateTimeField(default=datetime.utcnow)

    def to_json(self, private=False):
        data = {
            'name': self.name,
            'details': self.details,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
        }
        if private:
            data['contact'] = self.contact
            data['email'] = self.email
        return data


class Item(Document):
    name = StringField(max_length=200, required=True)
    description = StringField(max_length=1000, required=True)
    location = StringField(max_length=300, required=True)
    status = StringField(choices=[(e.value, e.value) for e in ItemStatus], required=True)

    # Photo stored in GridFS (see ItemImage)
    photo = StringField()
    photo_ref = StringField()

    reporter_name = StringField(max_length=100, required=True)
    reporter_email = StringField(max_length=254, required=True)

    sightings = EmbeddedDocumentListField(Response)
    claims = EmbeddedDocumentListField(Response)

    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)
    resolved_at = DateTimeField()

    meta = {
        'collection': 'lost_found_items',
        'indexes': [
            'status',
            'reporter_email',
            '-created_at'
        ]
    }

    def clean(self):
        """Reject documents that would break the lifecycle invariants."""
        if self.reporter_email:
            self.reporter_email = self.reporter_email.strip()
        if self.pk is None and self.status == ItemStatus.RESOLVED.value:
            raise ValidationError("An item cannot be created as resolved")

    @property
    def is_open(self):
        return self.status in ItemStatus.open_values()

    def to_json(self, private=False):
        """Convert the item to a JSON-friendly dict; contact details only when ``private``."""
        data = {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'location': self.location,
            'status': self.status,
            'photo': self.photo,
            'reporter_name': self.reporter_name,
            'sightings': [s.to_json(private) for s in self.sightings],
            'claims': [c.to_json(private) for c in self.claims],
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'resolved_at': self.resolved_at.isoformat() if self.resolved_at else None,
        }
        if private:
            data['reporter_email'] = self.reporter_email
            data['photo_ref'] = self.photo_ref
        return data
