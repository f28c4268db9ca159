"""WalletLedger — the only code path that moves a user's balance.

Every balance increment is issued together with exactly one appended row in
`transactions`, inside the CALLER's transaction. Nothing here commits: the
application service owns the unit of work (see ws_common.unit_of_work).
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_common.enums import TransactionStatus
from src.ws_common.errors import InsufficientBalanceError, InternalError, WalletNotFoundError
from src.ws_wallet.domain.models import Transaction, Wallet

_CREDIT_SQL = text("""
    UPDATE users
    SET balance = balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :user_id
    RETURNING id AS user_id, balance, version
""")

_DEBIT_SQL = text("""
    UPDATE users
    SET balance = balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :user_id AND balance >= :amount
    RETURNING id AS user_id, balance, version
""")

_GET_WALLET_SQL = text("SELECT id AS user_id, balance, version FROM users WHERE id = :user_id")

_INSERT_TX_SQL = text("""
    INSERT INTO transactions
        (user_id, tx_type, amount, balance_after, status,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :tx_type, :amount, :balance_after, :status,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, tx_type, amount, balance_after, status,
              reference_type, reference_id, description, created_at
""")

_LIST_TX_BY_REFERENCE_SQL = text("""
    SELECT id, user_id, tx_type, amount, balance_after, status,
           reference_type, reference_id, description, created_at
    FROM transactions
    WHERE reference_type = :reference_type AND reference_id = :reference_id
    ORDER BY id
""")


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
    )


def _row_to_tx(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        tx_type=row.tx_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class WalletLedger:
    """Atomic increment + transaction append. A delta of 0 still writes its row."""

    async def get_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None:
        row = (await db.execute(_GET_WALLET_SQL, {"user_id": user_id})).fetchone()
        return _row_to_wallet(row) if row else None

    async def apply(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        tx_type: str,
        reference_type: str,
        reference_id: str,
        description: str | None = None,
    ) -> tuple[Wallet, Transaction]:
        if amount < 0:
            result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": -amount})
            row = result.fetchone()
            if row is None:
                wallet = await self.get_wallet(db, user_id)
                if wallet is None:
                    raise WalletNotFoundError(user_id)
                raise InsufficientBalanceError(-amount, wallet.balance)
        else:
            result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
            row = result.fetchone()
            if row is None:
                raise WalletNotFoundError(user_id)
        wallet = _row_to_wallet(row)

        tx_result = await db.execute(
            _INSERT_TX_SQL,
            {
                "user_id": user_id,
                "tx_type": tx_type,
                "amount": amount,
                "balance_after": wallet.balance,
                "status": TransactionStatus.COMPLETED,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        tx_row = tx_result.fetchone()
        if tx_row is None:
            raise InternalError("Transaction insert returned no rows — this should never happen")
        return wallet, _row_to_tx(tx_row)

    async def list_by_reference(
        self, db: AsyncSession, reference_type: str, reference_id: str
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_TX_BY_REFERENCE_SQL,
            {"reference_type": reference_type, "reference_id": reference_id},
        )
        return [_row_to_tx(row) for row in result.fetchall()]
