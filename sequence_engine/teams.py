"""
Table-driven team policy keyed by player count.

Players are seated round-robin by team (player i joins team i % teams), so the
natural turn order alternates teams.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .cards import hand_size_for
from .errors import EngineError, ErrorCode


@dataclass(frozen=True)
class TeamPolicy:
    player_count: int
    teams: int
    hand_size: int
    required_sequences: int

    def team_index_for(self, seat: int) -> int:
        return seat % self.teams

    def team_sizes(self) -> List[int]:
        return [len(range(t, self.player_count, self.teams)) for t in range(self.teams)]


def _policy(player_count: int, teams: int) -> TeamPolicy:
    return TeamPolicy(
        player_count=player_count,
        teams=teams,
        hand_size=hand_size_for(player_count),
        required_sequences=2 if teams <= 2 else 1,
    )


TEAM_POLICIES: Dict[int, TeamPolicy] = {
    2: _policy(2, 2),
    3: _policy(3, 3),
    4: _policy(4, 2),
    6: _policy(6, 3),
    8: _policy(8, 2),
    9: _policy(9, 3),
    10: _policy(10, 2),
    11: _policy(11, 2),
    12: _policy(12, 3),
}

SUPPORTED_PLAYER_COUNTS = tuple(sorted(TEAM_POLICIES))


def team_policy_for(player_count: int) -> TeamPolicy:
    policy = TEAM_POLICIES.get(int(player_count))
    if policy is None:
        raise EngineError(
            ErrorCode.ERR_INVALID_PLAYER_COUNT,
            details={"playerCount": player_count, "supported": list(SUPPORTED_PLAYER_COUNTS)},
        )
    return policy


def team_id(index: int) -> str:
    return f"team{index + 1}"


def player_id(seat: int) -> str:
    return f"player{seat + 1}"


def required_sequences_for(player_count: int, override: Optional[int] = None) -> int:
    if override is not None:
        return int(override)
    return team_policy_for(player_count).required_sequences
