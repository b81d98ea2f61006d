from pydantic import BaseModel, Field, field_validator

from homevault.schemas.common import require_text


class SignIn(BaseModel):
    # Format and strength checks belong to the backend
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def email_present(cls, v: str) -> str:
        return require_text(v)


class SignUp(SignIn):
    full_name: str
    phone: str | None = None

    @field_validator("full_name")
    @classmethod
    def name_present(cls, v: str) -> str:
        return require_text(v)

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class UserResponse(BaseModel):
    id: str
    email: str | None = None

    model_config = {"from_attributes": True}


class SignUpResponse(UserResponse):
    # False while the backend waits for email confirmation
    session_active: bool
