from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, field_validator

from Utils.appError import RequestValidationError
from Utils.validators import looks_like_email


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


def _email(value: str) -> str:
    if not looks_like_email(value):
        raise ValueError("must be a valid email address")
    return value


EmailAddress = Annotated[str, Field(min_length=3, max_length=254), AfterValidator(_email)]


class OtpRequest(RequestModel):
    email: EmailAddress
    purpose: Literal["create", "claim"] = "create"


class BoundOtpRequest(RequestModel):
    email: EmailAddress


class VerifyOtpRequest(RequestModel):
    email: str = Field(min_length=3, max_length=254)
    # Only presence is checked here; the OTP store reports a malformed code as a mismatch
    otp: str = Field(min_length=1, max_length=32)

    @field_validator("otp", mode="before")
    @classmethod
    def stringify_code(cls, value):
        # Some clients send the code as a JSON number
        return str(value) if isinstance(value, int) else value


class CreateItemRequest(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    location: str = Field(min_length=1, max_length=300)
    status: Literal["lost", "found"]
    reporter_name: str = Field(min_length=1, max_length=100)
    reporter_email: EmailAddress


# Responder emails are checked against the institutional grammar by the
# lifecycle so that a bad address surfaces as InvalidEmail, not ValidationError.
class SightingRequest(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    contact: str = Field(min_length=1, max_length=50)
    details: str = Field(min_length=1, max_length=1000)
    email: str = Field(min_length=1, max_length=254)


class ClaimRequest(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=1, max_length=254)
    details: str = Field(min_length=1, max_length=1000)
    contact: Optional[str] = Field(default=None, max_length=50)


class ResolveRequest(RequestModel):
    email: str = Field(min_length=3, max_length=254)


def parse_request(model, data):
    """Validate a raw request body into ``model`` or raise a ValidationError-kind AppError."""
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]) or "body", "message": err["msg"]}
            for err in e.errors()
        ]
        missing = [d["field"] for d in details if d["message"] == "Field required"]
        if missing:
            message = f"Missing required field(s): {', '.join(missing)}"
        else:
            message = "Invalid request data"
        raise RequestValidationError(message, details=details)
