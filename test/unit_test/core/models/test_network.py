import pytest

from backoffice.core.models.domain.network import (
    ROOT_PATH,
    child_path,
    depth_below,
    path_segments,
    referral_chain,
)


def test_path_segments():
    assert path_segments("/root/a/") == ["root", "a"]
    assert path_segments(ROOT_PATH) == []
    assert path_segments(None) == []


def test_child_path():
    assert child_path(ROOT_PATH, "root") == "/root/"
    assert child_path("/root/", "a") == "/root/a/"
    assert child_path("", "root") == "/root/"


@pytest.mark.parametrize(
    "team_path,ancestor,expected",
    [("/root/", "root", 1), ("/root/a/", "root", 2), ("/root/a/", "a", 1), ("/root/a/", "b", None), ("/", "root", None)],
)
def test_depth_below(team_path, ancestor, expected):
    assert depth_below(team_path, ancestor) == expected


def test_referral_chain():
    assert referral_chain("/root/a/", "b") == "root>a>b"
    assert referral_chain(ROOT_PATH, "root") == "root"
