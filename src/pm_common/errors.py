"""Unified error codes and custom exceptions.

Error code ranges:
  2xxx: User points balance
  6xxx: Trading pool
  9xxx: System
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 2xxx: User points ---

class InsufficientPointsError(AppError):
    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__(
            2001,
            f"Insufficient PXB points: required {required}, available {available}",
            422,
        )


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"User not found: {user_id}", 404)


# --- 6xxx: Trading pool ---

class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6001, f"Invalid amount: {detail}", 422)


class NoActivePositionError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(6002, f"No active trading position found for user {user_id}", 404)


class ActivePositionExistsError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(
            6003,
            f"User {user_id} already has an active trading position; withdraw first",
            409,
        )


class ConfigValidationError(AppError):
    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(6004, f"Invalid pool config '{field}': {detail}", 422)


class PoolOverdrawError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6005, f"Pool balance would go negative: {detail}", 409)


class VaultBelowThresholdError(AppError):
    def __init__(self, balance: Decimal, threshold: Decimal) -> None:
        super().__init__(
            6006,
            f"Vault balance is too low for distribution: {balance} < {threshold}",
            422,
        )


class NoEligibleHoldersError(AppError):
    def __init__(self) -> None:
        super().__init__(6007, "No eligible PXB holders found", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class PersistenceError(AppError):
    def __init__(self, detail: str = "Storage temporarily unavailable") -> None:
        super().__init__(9003, detail, 503)
