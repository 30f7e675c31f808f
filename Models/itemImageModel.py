from mongoengine import Document, StringField, FileField, DateTimeField, IntField
from datetime import datetime


class ItemImage(Document):
    filename = StringField(required=True, unique=True)
    file = FileField(required=True)  # Stored in GridFS
    content_type = StringField(default="image/jpeg")
    size = IntField()
    uploaded_at = DateTimeField(default=datetime.utcnow)

    meta = {'collection': 'item_images'}
