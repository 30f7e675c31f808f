import io
import logging

from flask import request, jsonify, send_file

from Utils.appError import NotFoundError, RequestValidationError
from Utils.extensions import get_workflow
from Utils.requestSchemas import (
    ClaimRequest, CreateItemRequest, ResolveRequest, SightingRequest, parse_request
)

logger = logging.getLogger(__name__)


def _read_photo():
    """Return ``(bytes, filename)`` for an uploaded photo, or None."""
    photo = request.files.get("photo")
    if not photo or not photo.filename:
        return None
    if not (photo.mimetype or "").startswith("image/"):
        raise RequestValidationError("Only images allowed")
    return photo.read(), photo.filename


def list_items():
    """List items, newest first. Optional ?status=lost|found|resolved."""
    status = request.args.get("status")
    if status and status not in ("lost", "found", "resolved"):
        raise RequestValidationError("Unknown status filter")

    items = get_workflow().lifecycle.list_items(status=status)
    return jsonify({
        "success": True,
        "results": len(items),
        "data": [item.to_json() for item in items]
    }), 200


def get_item(item_id):
    item = get_workflow().lifecycle.get(item_id)
    return jsonify({"success": True, "data": item.to_json()}), 200


def create_item():
    """Report a lost/found item. Accepts JSON or multipart form data with a `photo` file."""
    if request.mimetype == "multipart/form-data":
        data = request.form.to_dict()
        photo = _read_photo()
    else:
        data = request.get_json(silent=True)
        photo = None

    fields = parse_request(CreateItemRequest, data)
    item = get_workflow().lifecycle.create(fields, photo=photo)

    return jsonify({
        "success": True,
        "message": "Item reported successfully",
        "data": item.to_json(private=True)
    }), 201


def record_sighting(item_id):
    report = parse_request(SightingRequest, request.get_json(silent=True))
    result = get_workflow().lifecycle.record_sighting(item_id, report)

    return jsonify({
        "success": True,
        "message": "Sighting recorded",
        "notified": result.notified,
        "data": result.item.to_json()
    }), 201


def record_claim(item_id):
    claim = parse_request(ClaimRequest, request.get_json(silent=True))
    result = get_workflow().lifecycle.record_claim(item_id, claim)

    return jsonify({
        "success": True,
        "message": "Claim submitted",
        "notified": result.notified,
        "data": result.item.to_json()
    }), 201


def resolve_item(item_id):
    data = parse_request(ResolveRequest, request.get_json(silent=True))
    result = get_workflow().lifecycle.resolve(item_id, data.email)

    return jsonify({
        "success": True,
        "message": "Item resolved successfully",
        "resolved": True,
        "notified": result.notified,
        "data": result.item.to_json()
    }), 200


def get_photo(filename):
    image_store = get_workflow().lifecycle.image_store
    found = image_store.load(filename) if image_store else None
    if not found:
        raise NotFoundError("Image not found")

    data, content_type = found
    return send_file(io.BytesIO(data), mimetype=content_type, download_name=filename)
