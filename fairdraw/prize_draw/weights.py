"""Entry weight derived from a participant's roles and a giveaway's bonus rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol


class BonusRule(Protocol):
    """Anything exposing ``role_id`` and ``bonus`` (ORM rows or :class:`RoleBonus`)."""

    role_id: str
    bonus: int


@dataclass(frozen=True)
class RoleBonus:
    """Plain role-to-bonus rule, independent of the database models."""

    role_id: str
    bonus: int


def best_bonus(participant_roles: Iterable[str], rules: Iterable[BonusRule]) -> int:
    """Return the largest bonus among rules whose role the participant holds.

    Matching bonuses do not stack; a participant without any matching role
    gets ``0``.
    """
    roles = {str(role) for role in participant_roles}
    bonuses = [int(rule.bonus) for rule in rules if str(rule.role_id) in roles]
    return max(bonuses, default=0)


def weight_for(
    base_amount: int,
    participant_roles: Iterable[str],
    rules: Iterable[BonusRule],
) -> int:
    """Number of scored rows a participant receives in a draw.

    Parameters
    ----------
    base_amount : int
        Entry weight every participant receives.
    participant_roles : Iterable[str]
        Role ids captured on the entry when the participant joined.
    rules : Iterable[BonusRule]
        Ordered bonus rules configured on the giveaway.

    Returns
    -------
    int
        ``base_amount`` plus the best matching bonus, floored at ``1`` so that
        a misconfigured giveaway never removes a participant from the draw.
    """
    return max(1, int(base_amount) + best_bonus(participant_roles, rules))


__all__ = ["BonusRule", "RoleBonus", "best_bonus", "weight_for"]
