"""UserPointsRepository — spendable PXB balance on users.points and its history.

Debit is a conditional UPDATE ... RETURNING: 0 rows means either the user does
not exist or the balance is short, told apart with a follow-up read.
"""

from decimal import Decimal

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.amounts import ZERO
from src.pm_common.enums import PointsAction
from src.pm_common.errors import InsufficientPointsError, UserNotFoundError
from src.pm_pool.domain.models import PointHolder

_GET_POINTS_SQL = text("SELECT points FROM users WHERE id = :user_id")

_DEBIT_POINTS_SQL = text("""
    UPDATE users
    SET points = points - :amount,
        updated_at = NOW()
    WHERE id = :user_id AND points >= :amount
    RETURNING points
""")

_CREDIT_POINTS_SQL = text("""
    UPDATE users
    SET points = points + :amount,
        updated_at = NOW()
    WHERE id = :user_id
    RETURNING points
""")

_INSERT_HISTORY_SQL = text("""
    INSERT INTO points_history (user_id, amount, action, reference_id)
    VALUES (:user_id, :amount, :action, :reference_id)
""")

_LIST_HOLDERS_SQL = text("""
    SELECT id, points FROM users WHERE points > 0 ORDER BY id
""")

_GET_USERNAMES_SQL = text(
    "SELECT id, username FROM users WHERE id IN :user_ids"
).bindparams(bindparam("user_ids", expanding=True))


class UserPointsRepository:
    async def debit_points(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> Decimal:
        result = await db.execute(_DEBIT_POINTS_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            current = (await db.execute(_GET_POINTS_SQL, {"user_id": user_id})).fetchone()
            if current is None:
                raise UserNotFoundError(user_id)
            raise InsufficientPointsError(amount, Decimal(current.points))
        return Decimal(row.points)

    async def credit_points(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> Decimal:
        result = await db.execute(_CREDIT_POINTS_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise UserNotFoundError(user_id)
        return Decimal(row.points)

    async def record_history(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        action: PointsAction,
        reference_id: str,
    ) -> None:
        await db.execute(
            _INSERT_HISTORY_SQL,
            {
                "user_id": user_id,
                "amount": amount,
                "action": action.value,
                "reference_id": reference_id,
            },
        )

    async def list_holders(self, db: AsyncSession) -> list[PointHolder]:
        result = await db.execute(_LIST_HOLDERS_SQL)
        return [
            PointHolder(user_id=row.id, points=Decimal(row.points))
            for row in result.fetchall()
            if Decimal(row.points) > ZERO
        ]

    async def get_usernames(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, str]:
        if not user_ids:
            return {}
        result = await db.execute(_GET_USERNAMES_SQL, {"user_ids": user_ids})
        return {row.id: row.username for row in result.fetchall()}
