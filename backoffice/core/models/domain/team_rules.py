"""
Static rules of the team program.

Holds the role ladder, the user level <-> role mapping, promotion
requirements, commission rates and role permissions. Rates for
DIRECT_REFERRAL and INDIRECT_REFERRAL are flat amounts per referral; all
other rates are fractions of a sales amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .enums import CommissionType, TeamRole, UserLevel

ROLE_LADDER: List[TeamRole] = list(TeamRole)

_LEVEL_TO_ROLE: Dict[UserLevel, TeamRole] = {
    UserLevel.NORMAL: TeamRole.MEMBER,
    UserLevel.VIP: TeamRole.MEMBER,
    UserLevel.STAR_1: TeamRole.CAPTAIN,
    UserLevel.STAR_2: TeamRole.MANAGER,
    UserLevel.STAR_3: TeamRole.DIRECTOR,
    UserLevel.STAR_4: TeamRole.SENIOR_DIRECTOR,
    UserLevel.STAR_5: TeamRole.PARTNER,
    UserLevel.DIRECTOR: TeamRole.AMBASSADOR,
}

_ROLE_TO_LEVEL: Dict[TeamRole, UserLevel] = {
    TeamRole.MEMBER: UserLevel.NORMAL,
    TeamRole.CAPTAIN: UserLevel.STAR_1,
    TeamRole.MANAGER: UserLevel.STAR_2,
    TeamRole.DIRECTOR: UserLevel.STAR_3,
    TeamRole.SENIOR_DIRECTOR: UserLevel.STAR_4,
    TeamRole.PARTNER: UserLevel.STAR_5,
    TeamRole.AMBASSADOR: UserLevel.DIRECTOR,
}

# Levels that lead a team for the team leaderboard.
TEAM_LEADER_LEVELS = (
    UserLevel.STAR_1,
    UserLevel.STAR_2,
    UserLevel.STAR_3,
    UserLevel.STAR_4,
    UserLevel.STAR_5,
    UserLevel.DIRECTOR,
)


def role_for_level(level: UserLevel | str) -> TeamRole:
    try:
        return _LEVEL_TO_ROLE[UserLevel(level)]
    except ValueError:
        return TeamRole.MEMBER


def level_for_role(role: TeamRole) -> UserLevel:
    return _ROLE_TO_LEVEL[role]


def role_rank(role: TeamRole) -> int:
    """Position of ``role`` on the ladder, MEMBER being 0."""
    return ROLE_LADDER.index(role)


def next_role(role: TeamRole) -> Optional[TeamRole]:
    index = role_rank(role)
    if index + 1 >= len(ROLE_LADDER):
        return None
    return ROLE_LADDER[index + 1]


@dataclass(frozen=True)
class LevelRequirement:
    """What a member must reach to hold a role."""

    min_monthly_sales: float
    min_direct_members: int
    lower_role: Optional[TeamRole] = None
    min_lower_role_count: int = 0


LEVEL_REQUIREMENTS: Dict[TeamRole, LevelRequirement] = {
    TeamRole.CAPTAIN: LevelRequirement(min_monthly_sales=2400, min_direct_members=0),
    TeamRole.MANAGER: LevelRequirement(12000, 2, TeamRole.CAPTAIN, 2),
    TeamRole.DIRECTOR: LevelRequirement(72000, 5, TeamRole.MANAGER, 2),
    TeamRole.SENIOR_DIRECTOR: LevelRequirement(360000, 10, TeamRole.DIRECTOR, 2),
    TeamRole.PARTNER: LevelRequirement(1200000, 15, TeamRole.SENIOR_DIRECTOR, 2),
    TeamRole.AMBASSADOR: LevelRequirement(6000000, 20, TeamRole.PARTNER, 2),
}


def _by_role(*rates: float) -> Dict[TeamRole, float]:
    return dict(zip(ROLE_LADDER, rates))


COMMISSION_RATES: Dict[CommissionType, Dict[TeamRole, float]] = {
    CommissionType.PERSONAL_SALES: _by_role(0.05, 0.08, 0.10, 0.12, 0.14, 0.16, 0.20),
    CommissionType.TEAM_BONUS: _by_role(0, 0.01, 0.02, 0.03, 0.04, 0.05, 0.06),
    CommissionType.DIRECT_REFERRAL: _by_role(0, 200, 300, 400, 500, 600, 800),
    CommissionType.INDIRECT_REFERRAL: _by_role(0, 50, 80, 120, 160, 200, 300),
    CommissionType.LEVEL_BONUS: _by_role(0, 0.005, 0.01, 0.015, 0.02, 0.025, 0.03),
    CommissionType.PERFORMANCE_BONUS: _by_role(0, 0.002, 0.004, 0.006, 0.008, 0.01, 0.015),
    CommissionType.LEADERSHIP_BONUS: _by_role(0, 0, 0.001, 0.002, 0.003, 0.004, 0.005),
    CommissionType.SPECIAL_BONUS: _by_role(0, 0, 0, 0.001, 0.002, 0.003, 0.005),
}

# Level bonus used by the settled commission statement.
SETTLEMENT_LEVEL_BONUS_RATES: Dict[TeamRole, float] = _by_role(0, 0.01, 0.02, 0.03, 0.04, 0.05, 0.06)

SETTLEMENT_PERSONAL_RATE = 0.15
SETTLEMENT_TEAM_RATE = 0.03
DIRECT_REFERRAL_REWARD = 500.0
INDIRECT_REFERRAL_SHARE = 0.3


def commission_rate(commission_type: CommissionType, role: TeamRole) -> float:
    return COMMISSION_RATES[commission_type].get(role, 0.0)


ROLE_PERMISSIONS: Dict[TeamRole, List[str]] = {
    TeamRole.MEMBER: ["view_personal_stats", "view_direct_referrals"],
    TeamRole.CAPTAIN: ["view_personal_stats", "view_direct_referrals", "view_team_stats"],
    TeamRole.MANAGER: [
        "view_personal_stats",
        "view_direct_referrals",
        "view_team_stats",
        "promote_to_captain",
    ],
    TeamRole.DIRECTOR: [
        "view_personal_stats",
        "view_direct_referrals",
        "view_team_stats",
        "view_network_stats",
        "promote_to_manager",
        "approve_team_actions",
    ],
    TeamRole.SENIOR_DIRECTOR: ["view_all_stats", "promote_to_director", "manage_team_structure"],
    TeamRole.PARTNER: [
        "view_all_stats",
        "promote_to_senior_director",
        "manage_team_structure",
        "access_advanced_reports",
    ],
    TeamRole.AMBASSADOR: [
        "view_all_stats",
        "promote_to_partner",
        "manage_team_structure",
        "access_advanced_reports",
        "system_administration",
    ],
}


def role_permissions(role: TeamRole) -> List[str]:
    return list(ROLE_PERMISSIONS.get(role, []))
