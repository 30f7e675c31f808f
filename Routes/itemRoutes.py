from flask import Blueprint
from Controllers.itemController import (
    list_items, get_item, create_item, record_sighting, record_claim, resolve_item, get_photo
)

# ----------------------------
# Item API routes
# ----------------------------
item_routes = Blueprint('item_routes', __name__, url_prefix='/api/items')

item_routes.add_url_rule('', view_func=list_items, methods=['GET'])
item_routes.add_url_rule('', view_func=create_item, methods=['POST'])
item_routes.add_url_rule('/<item_id>', view_func=get_item, methods=['GET'])
item_routes.add_url_rule('/<item_id>/seen', view_func=record_sighting, methods=['POST'])
item_routes.add_url_rule('/<item_id>/claim', view_func=record_claim, methods=['POST'])
item_routes.add_url_rule('/<item_id>/resolve', view_func=resolve_item, methods=['POST'])

# ----------------------------
# Stored photos (GridFS)
# ----------------------------
upload_routes = Blueprint('upload_routes', __name__)

upload_routes.add_url_rule('/uploads/<filename>', view_func=get_photo, methods=['GET'])
