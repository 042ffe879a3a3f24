"""Identity claims attached to relay requests by the hosting platform."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class IdentityUser(BaseModel):
    """
    Decoded identity claims for a signed-in user.

    The raw token is deliberately not a field: nothing derived from this
    model can leak it into a forwarded event.
    """
    model_config = ConfigDict(extra="ignore")

    sub: Optional[str] = None
    email: Optional[str] = None
    exp: Optional[int] = None
    app_metadata: dict[str, Any] = {}
    user_metadata: dict[str, Any] = {}
