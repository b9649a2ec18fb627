from typing import Mapping, Optional

from housemate.models.member import Member

UNKNOWN_MEMBER = "Unknown User"


def resolve_name(
    member_id: Optional[str],
    self_id: Optional[str],
    member_index: Mapping[str, Member],
) -> str:
    """Human label for a member id: "<username> (You)", the username, or "Unknown User"."""
    profile = member_index.get(member_id) if member_id else None
    if member_id is not None and member_id == self_id:
        return f"{profile.username} (You)" if profile else "You"
    return profile.username if profile else UNKNOWN_MEMBER


def index_members(members) -> dict[str, Member]:
    return {member.id: member for member in members if member.id}
