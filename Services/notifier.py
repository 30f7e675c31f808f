import logging

from Utils.email import DeliveryError

logger = logging.getLogger(__name__)

OTP_PURPOSES = {
    "create": "report a lost or found item",
    "claim": "submit an ownership claim",
    "resolve": "mark your item as resolved",
}


class Notifier:
    """Composes the workflow's mails on top of a Mailer."""

    def __init__(self, mailer, brand="Campus Navigator", ttl_minutes=10):
        self.mailer = mailer
        self.brand = brand
        self.ttl_minutes = ttl_minutes

    # -------------------------
    # OTP (delivery failure is fatal for the caller)
    # -------------------------
    def send_otp(self, email, code, purpose="create"):
        action = OTP_PURPOSES.get(purpose, "continue")
        text = (
            f"Your OTP is: {code}\n"
            f"Use it to {action}. Valid for {self.ttl_minutes} minutes."
        )
        html = (
            '<div style="font-family: Arial, sans-serif; padding: 20px;">'
            f"<h2>{self.brand} Verification</h2>"
            f"<p>Your verification code to {action} is:</p>"
            f'<h1 style="color: #2563eb;">{code}</h1>'
            f"<p>This code will expire in {self.ttl_minutes} minutes.</p>"
            "</div>"
        )
        self.mailer.send(email, "Your Verification Code", text, html=html)

    # -------------------------
    # Courtesy notifications (best effort)
    # -------------------------
    def _best_effort(self, to, subject, body):
        try:
            self.mailer.send(to, subject, body)
            return True
        except DeliveryError as e:
            logger.warning(f"⚠️ Notification '{subject}' to {to} not delivered: {e}")
            return False

    def sighting_reported(self, item, sighting):
        body = (
            f"Someone reported seeing your item \"{item.name}\".\n\n"
            f"Name: {sighting.name}\n"
            f"Contact: {sighting.contact}\n"
            f"Email: {sighting.email or '-'}\n"
            f"Details: {sighting.details}\n"
        )
        return self._best_effort(item.reporter_email, f"New sighting: {item.name}", body)

    def claim_submitted(self, item, claim):
        body = (
            f"{claim.name} has claimed the item \"{item.name}\" you reported.\n\n"
            f"Email: {claim.email}\n"
            f"Contact: {claim.contact or '-'}\n"
            f"Details: {claim.details}\n\n"
            "Once the item is returned, mark it as resolved."
        )
        return self._best_effort(item.reporter_email, f"New claim: {item.name}", body)

    def item_resolved(self, item, email):
        body = f"Your item \"{item.name}\" has been marked as resolved."
        return self._best_effort(email, f"Item Resolved: {item.name}", body)
