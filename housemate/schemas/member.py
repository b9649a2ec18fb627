from typing import Optional

from pydantic import BaseModel


class MemberResponse(BaseModel):
    id: str
    username: str
    display_name: str
    profile_picture_url: Optional[str] = None
