import os

from flask import Flask, jsonify

from Controllers.errorController import error_bp
from Routes.itemRoutes import item_routes, upload_routes
from Routes.otpRoutes import otp_routes
from Services.workflow import build_workflow
from Utils.config import Config
from Utils.db import init_db
from Utils.extensions import limiter
from Utils.logger import setup_logging


def create_app(config_class=Config, **workflow_overrides):
    """
    Build the Flask app.

    ``workflow_overrides`` are passed to build_workflow (state store, mailer,
    image store, clock) so tests can swap collaborators.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)
    config_class.init_app(app)

    # ----------------------------
    # Logging Configuration
    # ----------------------------
    setup_logging(app)

    # ----------------------------
    # Database
    # ----------------------------
    init_db(app.config["MONGODB_URI"], mock=app.config["MONGODB_MOCK"])

    # ----------------------------
    # Rate Limiter
    # ----------------------------
    limiter.init_app(app)

    # ----------------------------
    # Verification + lifecycle services
    # ----------------------------
    app.extensions["workflow"] = build_workflow(app.config, **workflow_overrides)

    # ----------------------------
    # Register blueprints
    # ----------------------------
    app.register_blueprint(error_bp)
    app.register_blueprint(otp_routes)
    app.register_blueprint(item_routes)
    app.register_blueprint(upload_routes)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


# ----------------------------
# Run the app
# ----------------------------
if __name__ == '__main__':
    app = create_app()
    port = int(os.getenv('PORT', 3000))
    app.logger.info(f"App running on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=False, threaded=True)
