"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Wallet
  3xxx: Match
  4xxx: Bet
  9xxx: System

Every AppError raised before commit means no mutation is visible. Only
TransientStoreError is safe (and intended) to be retried automatically.
"""


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


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired credentials", 401)


class AuthorizationError(AppError):
    def __init__(self, detail: str = "Not allowed") -> None:
        super().__init__(1002, f"Forbidden: {detail}", 403)


# --- 2xxx: Wallet ---

class WalletNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2001, f"Wallet not found for user {user_id}", 404)


class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2002,
            f"Insufficient balance: required {required} cents, available {available} cents",
            422,
        )


# --- 3xxx: Match ---

class MatchNotFoundError(AppError):
    def __init__(self, match_id: str) -> None:
        super().__init__(3001, f"Match not found: {match_id}", 404)


class InvalidMatchStateError(AppError):
    def __init__(self, match_id: str, status: str, expected: str) -> None:
        self.status = status
        super().__init__(
            3002,
            f"Match {match_id} is in status {status}, expected {expected}",
            409,
        )


class InvalidWinnerError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, f"Cannot resolve winners: {detail}", 422)


# --- 4xxx: Bet ---

class BetNotFoundError(AppError):
    def __init__(self, bet_id: str) -> None:
        super().__init__(4001, f"Bet not found: {bet_id}", 404)


class InvalidStateError(AppError):
    def __init__(self, bet_id: str, status: str, target: str) -> None:
        self.status = status
        super().__init__(
            4002,
            f"Bet {bet_id} in status {status} cannot transition to {target}",
            409,
        )


class BetLimitError(AppError):
    def __init__(self, amount: int, minimum: int, maximum: int) -> None:
        super().__init__(
            4003,
            f"Bet amount {amount} cents outside limits [{minimum}, {maximum}]",
            422,
        )


# --- 9xxx: System ---

class ValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, f"Invalid input: {detail}", 422)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class TransientStoreError(AppError):
    def __init__(self, detail: str = "Store conflict or timeout, retry the operation") -> None:
        super().__init__(9003, detail, 503)


class ConservationViolation(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9004, f"Conservation violated: {detail}", 500)
