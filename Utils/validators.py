import re
from functools import lru_cache

BASIC_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@lru_cache(maxsize=8)
def institutional_email_pattern(domain: str):
    """Roll-number style address: <name><4 digits>.<program><branch><2 digit year>@<domain>."""
    return re.compile(
        r"^[A-Za-z0-9]+[0-9]{4}\.(?:be|btech|mtech|phd)[A-Za-z]{2,4}[0-9]{2}@"
        + re.escape(domain)
        + r"$"
    )


def is_institutional_email(email, domain: str) -> bool:
    if not email:
        return False
    return institutional_email_pattern(domain).match(email) is not None


def looks_like_email(email) -> bool:
    return bool(email) and BASIC_EMAIL.match(email) is not None
