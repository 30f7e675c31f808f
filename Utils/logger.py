import os
import logging
from logging.handlers import TimedRotatingFileHandler, SMTPHandler
import gzip
import glob
import time
import re
from datetime import datetime
from collections import defaultdict
import click
from flask.cli import with_appcontext
from flask.logging import default_handler

LOG_FORMAT = "%(asctime)s [%(levelname)s] in %(module)s: %(message)s"
ACCESS_FORMAT = "%(asctime)s - %(message)s"
SUMMARY_SOURCES = ("app.log", "error.log", "verification.log")


def _rotating_handler(log_dir, name, level, backup_count, fmt=LOG_FORMAT):
    handler = TimedRotatingFileHandler(
        os.path.join(log_dir, name), when="midnight", interval=1,
        backupCount=backup_count, encoding="utf-8", delay=True
    )
    handler.suffix = "%Y-%m-%d"
    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(level)
    return handler


def _console_handler(fmt=LOG_FORMAT):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(logging.INFO)
    return handler


def _reset(logger):
    # Loggers are process-global; a second app instance must not stack handlers
    for handler in list(logger.handlers):
        if getattr(handler, "_lostfound", False):
            logger.removeHandler(handler)
            handler.close()


def _attach(logger, *handlers):
    for handler in handlers:
        handler._lostfound = True
        logger.addHandler(handler)


# ==================================================
# LOGGING SETUP
# ==================================================
def setup_logging(app):
    """Configure logging for the Flask app."""
    if getattr(app, "_logging_configured", False):
        return app.logger
    app._logging_configured = True

    log_dir = app.config.get("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    # -------------------------
    # APPLICATION LOG
    # -------------------------
    # app.logger and the module loggers (Services.*, Controllers.*, Utils.*)
    # all propagate to the root logger, which owns the files
    app_logger = app.logger
    app_logger.setLevel(logging.INFO)
    app_logger.removeHandler(default_handler)

    root = logging.getLogger()
    _reset(root)
    root.setLevel(logging.INFO)
    _attach(root,
            _rotating_handler(log_dir, "app.log", logging.INFO, 14),
            _rotating_handler(log_dir, "error.log", logging.ERROR, 30))
    if not app.testing:
        _attach(root, _console_handler())

    # -------------------------
    # ACCESS LOG
    # -------------------------
    access_logger = logging.getLogger("access")
    _reset(access_logger)
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False
    _attach(access_logger, _rotating_handler(log_dir, "access.log", logging.INFO, 7, ACCESS_FORMAT))
    if not app.testing:
        _attach(access_logger, _console_handler(ACCESS_FORMAT))

    # -------------------------
    # VERIFICATION AUDIT LOG (OTP issue/verify/consume, quota decisions)
    # -------------------------
    verification_logger = logging.getLogger("verification")
    _reset(verification_logger)
    verification_logger.setLevel(logging.INFO)
    verification_logger.propagate = False
    _attach(verification_logger, _rotating_handler(log_dir, "verification.log", logging.INFO, 30))
    if not app.testing:
        _attach(verification_logger, _console_handler())

    # -------------------------
    # EMAIL ALERTS (OPT-IN)
    # -------------------------
    if app.config.get("ENABLE_SMTP_ALERTS") and not app.debug:
        try:
            mail_handler = SMTPHandler(
                mailhost=(app.config["SMTP_HOST"], int(app.config["SMTP_PORT"])),
                fromaddr=app.config["EMAIL_SENDER"],
                toaddrs=[addr.strip() for addr in os.getenv("SMTP_ALERT_TO", "").split(",") if addr.strip()],
                subject=os.getenv("SMTP_SUBJECT", "🚨 Lost&Found Critical Error"),
                credentials=(app.config.get("SMTP_USER"), app.config.get("SMTP_PASS")),
                secure=()
            )
            mail_handler.setLevel(logging.ERROR)
            mail_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            app_logger.addHandler(mail_handler)
        except Exception as e:
            app_logger.warning(f"SMTP alerts disabled due to configuration error: {e}")

    # -------------------------
    # LOG HOOKS & TASKS
    # -------------------------
    register_access_log_hook(app, access_logger)
    cleanup_old_logs(app, log_dir, app.config.get("LOG_RETENTION_DAYS", 7))
    register_log_summary_command(app)

    app_logger.info("🚀 Logging initialized successfully.")
    return app_logger


# ==================================================
# ACCESS LOGGING
# ==================================================
def register_access_log_hook(app, access_logger):
    """Logs each incoming request (IP, method, URL) into access.log."""
    from flask import request

    @app.before_request
    def log_request_info():
        access_logger.info(f"{request.remote_addr} {request.method} {request.url}")


# ==================================================
# OLD LOG CLEANUP & COMPRESSION
# ==================================================
def cleanup_old_logs(app, folder="logs", days=7):
    """Compress rotated logs and delete compressed logs older than ``days``."""
    now = time.time()
    for log_file in glob.glob(f"{folder}/*.log.*"):
        if log_file.endswith(".gz"):
            continue
        try:
            with open(log_file, "rb") as f_in:
                with gzip.open(f"{log_file}.gz", "wb") as f_out:
                    f_out.writelines(f_in)
            os.remove(log_file)
            app.logger.info(f"🗜️ Compressed log: {log_file}")
        except OSError as e:
            app.logger.error(f"❌ Failed to compress {log_file}: {e}")

    for gz_file in glob.glob(f"{folder}/*.gz"):
        if os.stat(gz_file).st_mtime < now - days * 86400:
            os.remove(gz_file)
            app.logger.info(f"🧹 Deleted old log: {gz_file}")


# ==================================================
# CLI LOG SUMMARY COMMAND
# ==================================================
LOG_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2}).*\[(INFO|ERROR|WARNING)\]")


def summarize_log_dir(log_dir, days=7, now=None):
    """Count INFO/WARNING/ERROR lines per day across the app, error and verification logs."""
    summary = defaultdict(lambda: {"INFO": 0, "ERROR": 0, "WARNING": 0})
    now = now or datetime.now()

    for filename in os.listdir(log_dir):
        if not filename.startswith(SUMMARY_SOURCES):
            continue

        path = os.path.join(log_dir, filename)
        mtime = datetime.fromtimestamp(os.path.getmtime(path))
        if (now - mtime).days > days:
            continue

        opener = gzip.open if filename.endswith(".gz") else open
        with opener(path, "rt", encoding="utf-8", errors="ignore") as f:
            for line in f:
                match = LOG_PATTERN.match(line)
                if match:
                    date_str, level = match.groups()
                    summary[date_str][level] += 1
    return summary


def register_log_summary_command(app):
    """Adds 'flask logs:summary' CLI command to view log stats."""

    @click.command("logs:summary")
    @with_appcontext
    @click.option("--days", default=7, help="Days of logs to summarize")
    def summarize_logs(days):
        summary = summarize_log_dir(app.config.get("LOG_DIR", "logs"), days)
        if not summary:
            click.echo("No log entries found in the specified time range.")
            return

        click.echo("\n📊 Log Summary\n──────────────────────────────")
        total_info = total_error = total_warn = 0

        for date_str in sorted(summary.keys()):
            counts = summary[date_str]
            total_info += counts["INFO"]
            total_error += counts["ERROR"]
            total_warn += counts["WARNING"]
            click.echo(
                f"{date_str}  INFO: {counts['INFO']:<5}  WARNING: {counts['WARNING']:<5}  ERROR: {counts['ERROR']:<5}"
            )

        click.echo("──────────────────────────────")
        click.echo(
            f"Total INFO: {total_info}   WARNING: {total_warn}   ERROR: {total_error}"
        )

    app.cli.add_command(summarize_logs)
