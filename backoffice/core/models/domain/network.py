"""
Referral network path helpers.

A user's ``team_path`` lists the ids of their ancestors from the root down to
their parent, each followed by a slash and the whole prefixed by one:
``/root/parent/``. A root member's path is ``/``.
"""

from __future__ import annotations

from typing import List, Optional

ROOT_PATH = "/"


def path_segments(team_path: Optional[str]) -> List[str]:
    return [segment for segment in (team_path or ROOT_PATH).split("/") if segment]


def child_path(parent_path: str, parent_id: str) -> str:
    """Path of a direct child of ``parent_id``."""
    return f"{parent_path or ROOT_PATH}{parent_id}/"


def depth_below(team_path: Optional[str], ancestor_id: str) -> Optional[int]:
    """How many levels below ``ancestor_id`` a member sits, direct children being 1.

    Returns None when ``ancestor_id`` is not in the path.
    """
    segments = path_segments(team_path)
    if ancestor_id not in segments:
        return None
    return len(segments) - segments.index(ancestor_id)


def referral_chain(team_path: Optional[str], user_id: str) -> str:
    """Ancestor chain ending at ``user_id``, joined with ``>``."""
    return ">".join(path_segments(team_path) + [user_id])
