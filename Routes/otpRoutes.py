from flask import Blueprint
from Controllers.otpController import request_otp, request_item_otp, verify_otp

# ----------------------------
# OTP routes
# ----------------------------
otp_routes = Blueprint('otp_routes', __name__, url_prefix='/api')

otp_routes.add_url_rule('/otp/request', view_func=request_otp, methods=['POST'])
otp_routes.add_url_rule('/items/<item_id>/request-otp', view_func=request_item_otp, methods=['POST'])
otp_routes.add_url_rule('/verify-otp', view_func=verify_otp, methods=['POST'])
