import logging
from datetime import datetime

from bson import ObjectId
from mongoengine.errors import OperationError, ValidationError as DocumentValidationError
from pymongo.errors import PyMongoError

from Models.itemModel import Item, ItemStatus
from Utils.appError import RequestValidationError, StorageError

logger = logging.getLogger(__name__)

RESPONSE_FIELDS = {
    "sighting": "sightings",
    "claim": "claims",
}


class ItemRepository:
    """mongoengine access to items. Transitions are conditional single-document updates."""

    def find(self, item_id):
        if not item_id or not ObjectId.is_valid(str(item_id)):
            return None
        try:
            return Item.objects(id=item_id).first()
        except (PyMongoError, OperationError) as e:
            logger.error(f"Error fetching item {item_id}: {str(e)}")
            raise StorageError("Could not read item from storage.")

    def create(self, **fields):
        try:
            item = Item(**fields)
            item.save()
            return item
        except DocumentValidationError as e:
            raise RequestValidationError(str(e))
        except (PyMongoError, OperationError) as e:
            logger.error(f"Error creating item: {str(e)}")
            raise StorageError("Could not save item.")

    def append_response(self, item_id, kind, response):
        """Push a sighting/claim onto an open item. Returns None if no open item matched."""
        field = RESPONSE_FIELDS[kind]
        now = datetime.utcnow()
        try:
            return Item.objects(id=item_id, status__in=ItemStatus.open_values()).modify(
                new=True,
                set__updated_at=now,
                **{f"push__{field}": response}
            )
        except (PyMongoError, OperationError) as e:
            logger.error(f"Error appending {kind} to item {item_id}: {str(e)}")
            raise StorageError(f"Could not save {kind}.")

    def mark_resolved(self, item_id):
        """Flip an open item to resolved. Returns None if it was missing or already resolved."""
        now = datetime.utcnow()
        try:
            return Item.objects(id=item_id, status__in=ItemStatus.open_values()).modify(
                new=True,
                set__status=ItemStatus.RESOLVED.value,
                set__resolved_at=now,
                set__updated_at=now,
            )
        except (PyMongoError, OperationError) as e:
            logger.error(f"Error resolving item {item_id}: {str(e)}")
            raise StorageError("Could not update item.")

    def list_recent(self, status=None):
        try:
            query = Item.objects(status=status) if status else Item.objects
            return list(query.order_by('-created_at'))
        except (PyMongoError, OperationError) as e:
            logger.error(f"Error listing items: {str(e)}")
            raise StorageError("Could not read items from storage.")
