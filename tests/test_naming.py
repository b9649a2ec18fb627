from housemate.models.member import Member
from housemate.utils.naming import UNKNOWN_MEMBER, index_members, resolve_name

INDEX = index_members([
    Member(id="u1", username="Alice"),
    Member(id="u2", username="Bob"),
])


def test_self_is_marked():
    assert resolve_name("u1", "u1", INDEX) == "Alice (You)"


def test_other_member_by_username():
    assert resolve_name("u2", "u1", INDEX) == "Bob"


def test_unknown_member():
    assert resolve_name("u9", "u1", INDEX) == UNKNOWN_MEMBER == "Unknown User"


def test_absent_id_is_unknown():
    assert resolve_name(None, "u1", INDEX) == UNKNOWN_MEMBER


def test_self_missing_from_index():
    assert resolve_name("u9", "u9", INDEX) == "You"
