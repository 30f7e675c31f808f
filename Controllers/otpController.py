import logging

from flask import request, jsonify

from Utils.appError import ConflictError
from Utils.extensions import get_workflow, limiter, otp_request_limit
from Utils.requestSchemas import BoundOtpRequest, OtpRequest, VerifyOtpRequest, parse_request

logger = logging.getLogger(__name__)


@limiter.limit(otp_request_limit)
def request_otp():
    """Send a code for first-time flows (reporting an item, claiming one)."""
    data = parse_request(OtpRequest, request.get_json(silent=True))
    get_workflow().gate.request_code(data.email, purpose=data.purpose)

    return jsonify({
        "success": True,
        "sent": True,
        "message": "OTP sent to your email"
    }), 200


@limiter.limit(otp_request_limit)
def request_item_otp(item_id):
    """Send a code to an item's reporter so they can resolve it."""
    data = parse_request(BoundOtpRequest, request.get_json(silent=True))
    workflow = get_workflow()
    item = workflow.lifecycle.get(item_id)
    if not item.is_open:
        raise ConflictError("This item has already been resolved")

    workflow.gate.request_code(
        data.email,
        purpose="resolve",
        authorization_check=lambda email: email == item.reporter_email,
        bound_item_id=str(item.id),
    )

    return jsonify({
        "success": True,
        "sent": True,
        "message": "OTP sent to registered email"
    }), 200


def verify_otp():
    data = parse_request(VerifyOtpRequest, request.get_json(silent=True))
    item_id = get_workflow().gate.verify_code(data.email, data.otp)

    return jsonify({
        "success": True,
        "verified": True,
        "item_id": item_id,
        "message": "OTP verified successfully"
    }), 200
