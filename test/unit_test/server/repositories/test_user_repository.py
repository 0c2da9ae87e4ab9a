"""Unit tests for the referral-network queries of the user repository."""

import pytest

from backoffice.core.database.repositories.users import UserRepository, team_path_pattern

pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize(
    "user_id,expected",
    [("root", "%/root/%"), ("a_b", "%/a\\_b/%"), ("50%", "%/50\\%/%"), ("x\\y", "%/x\\\\y/%")],
)
async def test_team_path_pattern_escapes_wildcards(user_id, expected):
    assert team_path_pattern(user_id) == expected


async def test_wildcards_in_ids_do_not_match_other_subtrees(session, seed):
    await seed.user("a_b")
    await seed.user("axb")
    await seed.user("child-of-underscore", "a_b")
    await seed.user("child-of-x", "axb")

    repo = UserRepository(session)
    assert await repo.team_member_ids("a_b") == ["child-of-underscore"]
    assert await repo.team_count("axb") == 1


async def test_percent_in_id_only_matches_own_team(session, seed):
    await seed.user("10%")
    await seed.user("100")
    await seed.user("under-100", "100")

    assert await UserRepository(session).team_count("10%") == 0
