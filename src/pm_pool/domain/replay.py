"""Position replay — a user's position is the fold of their pool transactions.

Records are ordered by (timestamp, id). A withdraw closes the window; the
first deposit after it opens a position; trades adjust the running value by
their recorded absolute change. Each change was computed as a percentage of
the running value at trade time, so applying them in order compounds exactly.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal

from src.pm_common.amounts import ZERO
from src.pm_common.enums import PoolTransactionType
from src.pm_pool.domain.models import Position, TransactionRecord

logger = logging.getLogger(__name__)


def order_records(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return sorted(records, key=lambda r: r.sort_key)


def derive_position(
    user_id: str, records: Iterable[TransactionRecord]
) -> Position | None:
    """Fold one user's records into the active Position, or None if none is open.

    Records belonging to other users are ignored so callers may pass an
    unfiltered slice of the log.
    """
    position: Position | None = None
    for record in order_records(r for r in records if r.user_id == user_id):
        if record.tx_type == PoolTransactionType.WITHDRAW:
            position = None
        elif record.tx_type == PoolTransactionType.DEPOSIT:
            if position is None:
                position = Position(
                    user_id=user_id,
                    initial_pxb=record.quantity,
                    current_pxb=record.quantity,
                    opened_at=record.timestamp,
                    opened_seq=record.id,
                )
            else:
                logger.warning(
                    "Ignoring deposit %s for user %s: position opened by %s is still active",
                    record.id,
                    user_id,
                    position.opened_seq,
                )
        elif position is not None:
            position.current_pxb = _apply_trade(position.current_pxb, record)
    return position


def _apply_trade(current: Decimal, record: TransactionRecord) -> Decimal:
    if record.tx_type == PoolTransactionType.TRADE_UP:
        return current + record.quantity
    return max(current - record.quantity, ZERO)
