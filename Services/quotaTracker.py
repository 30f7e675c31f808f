import logging

from Utils.appError import QuotaExceededError

logger = logging.getLogger("verification")

SIGHTING = "sighting"
CLAIM = "claim"
KINDS = (SIGHTING, CLAIM)


class QuotaTracker:
    """Lifetime cap on sightings and claims per email. Counters never decrease."""

    def __init__(self, state, limit: int = 2):
        self.state = state
        self.limit = limit

    @staticmethod
    def _namespace(kind):
        if kind not in KINDS:
            raise ValueError(f"Unknown submission kind: {kind}")
        return f"quota:{kind}"

    def try_reserve(self, kind: str, email: str) -> int:
        """Take one slot for ``(kind, email)`` and return the new count."""
        accepted, count = self.state.increment_below(self._namespace(kind), email, self.limit)
        if not accepted:
            logger.warning(f"Quota exceeded: {email} already submitted {count} {kind}(s)")
            raise QuotaExceededError(
                f"You can submit at most {self.limit} {kind}s.",
                details={"kind": kind, "limit": self.limit},
            )
        logger.info(f"Quota reserved: {kind} {count}/{self.limit} for {email}")
        return count

    def used(self, kind: str, email: str) -> int:
        return self.state.counter(self._namespace(kind), email)

    def remaining(self, kind: str, email: str) -> int:
        return max(self.limit - self.used(kind, email), 0)
