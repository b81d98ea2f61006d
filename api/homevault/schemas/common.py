from typing import Literal

from pydantic import BaseModel


class Notice(BaseModel):
    """Transient banner; the client hides it after ``dismiss_after_seconds``."""

    kind: Literal["success"] = "success"
    message: str
    dismiss_after_seconds: int


def require_text(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v
