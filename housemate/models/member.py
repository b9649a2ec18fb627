from datetime import datetime
from typing import Optional

from pydantic import Field

from housemate.models.base import StoredModel


class Member(StoredModel):
    """Household member profile. Owned by the identity service; read-only here."""
    username: str = Field(..., min_length=1)
    profile_picture_url: Optional[str] = None
    created_at: Optional[datetime] = None
