"""Leaderboard of active pool positions, recomputed from the full log on each call."""

from collections import defaultdict
from collections.abc import Iterable, Mapping

from src.pm_pool.domain.models import Position, TransactionRecord
from src.pm_pool.domain.replay import derive_position

UNKNOWN_USERNAME = "Unknown"


def rank_positions(
    records: Iterable[TransactionRecord],
    usernames: Mapping[str, str] | None = None,
) -> list[Position]:
    """Rank active positions by percent change (2 dp), best first.

    Users whose latest transaction is a withdraw have no active position and
    are left out. Equal percentages keep the earliest opening deposit first.
    """
    by_user: dict[str, list[TransactionRecord]] = defaultdict(list)
    for record in records:
        by_user[record.user_id].append(record)

    names = usernames or {}
    positions: list[Position] = []
    for user_id, user_records in by_user.items():
        position = derive_position(user_id, user_records)
        if position is None:
            continue
        position.username = names.get(user_id, UNKNOWN_USERNAME)
        positions.append(position)

    positions.sort(key=lambda p: (p.opened_at, p.opened_seq))
    positions.sort(key=lambda p: p.display_percent_change, reverse=True)
    return positions
