from typing import List
from fastapi import APIRouter, Depends
from housemate.api.deps import get_member_index
from housemate.core.auth import get_current_member
from housemate.models.member import Member
from housemate.schemas.member import MemberResponse
from housemate.utils.naming import resolve_name

router = APIRouter()

@router.get("/", response_model=List[MemberResponse])
async def list_members(
    current_member: Member = Depends(get_current_member),
    member_index: dict = Depends(get_member_index)
):
    """Household member directory with display names"""
    return [
        MemberResponse(
            id=member.id,
            username=member.username,
            display_name=resolve_name(member.id, current_member.id, member_index),
            profile_picture_url=member.profile_picture_url,
        )
        for member in member_index.values()
    ]
