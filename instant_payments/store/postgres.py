"""PostgreSQL storage backend.

Each unit of work is one database transaction on its own connection.
Conditioned writes compare the ``version`` column in the ``WHERE`` clause,
so a write that lost a race updates zero rows. A short, transaction-local
``lock_timeout`` turns a row still held by a concurrent writer into a
conflict instead of a wait.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from psycopg import errors
from psycopg.rows import dict_row

from instant_payments.config import PostgresConfig
from instant_payments.exceptions import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    PersistenceError,
)
from instant_payments.models import Account, TransactionRecord
from instant_payments.store.base import AccountStore, Storage, TransactionLog, UnitOfWork

logger = logging.getLogger(__name__)

SCHEMA_DDL = (
    """
    CREATE TABLE IF NOT EXISTS account (
        id BIGSERIAL PRIMARY KEY,
        balance NUMERIC NOT NULL DEFAULT 0 CHECK (balance >= 0),
        account_name VARCHAR(255),
        owner_name VARCHAR(255) NOT NULL,
        version BIGINT NOT NULL DEFAULT 0,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payment_transaction (
        id BIGSERIAL PRIMARY KEY,
        from_account_id BIGINT NOT NULL REFERENCES account (id),
        to_account_id BIGINT NOT NULL REFERENCES account (id),
        amount NUMERIC NOT NULL CHECK (amount > 0),
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_payment_transaction_from ON payment_transaction (from_account_id)",
    "CREATE INDEX IF NOT EXISTS idx_payment_transaction_to ON payment_transaction (to_account_id)",
)

ACCOUNT_COLUMNS = "id, balance, account_name, owner_name, version, created_at, updated_at"
TRANSACTION_COLUMNS = "id, from_account_id, to_account_id, amount, created_at"

# SQLSTATEs raised when a concurrent writer holds or has moved the row
CONFLICT_ERRORS = (
    errors.LockNotAvailable,
    errors.SerializationFailure,
    errors.DeadlockDetected,
)


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Re-raise psycopg errors as package exceptions."""
    try:
        yield
    except CONFLICT_ERRORS as e:
        raise ConcurrencyConflictError(f"Concurrent write while trying to {action}") from e
    except psycopg.Error as e:
        raise PersistenceError(f"Failed to {action}: {e}") from e


def _row_to_account(row: dict[str, Any]) -> Account:
    return Account(
        account_id=row["id"],
        owner_name=row["owner_name"],
        account_name=row["account_name"],
        balance=row["balance"],
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_record(row: dict[str, Any]) -> TransactionRecord:
    return TransactionRecord(
        source_account_id=row["from_account_id"],
        destination_account_id=row["to_account_id"],
        amount=row["amount"],
        transaction_id=row["id"],
        created_at=row["created_at"],
    )


class PostgresStorage(Storage):
    """Storage backed by a PostgreSQL database."""

    def __init__(self, config: PostgresConfig | str) -> None:
        """Initialize PostgreSQL storage.

        Parameters
        ----------
        config : PostgresConfig | str
            Connection configuration or a libpq connection string.
        """
        if isinstance(config, str):
            self.conninfo = config
            self.lock_timeout_ms = PostgresConfig().lock_timeout_ms
        else:
            self.conninfo = config.connection_string
            self.lock_timeout_ms = config.lock_timeout_ms

    def connect(self) -> psycopg.Connection:
        """Open a new connection returning rows as dicts."""
        with translate_errors("connect to PostgreSQL"):
            return psycopg.connect(self.conninfo, row_factory=dict_row)

    def create_schema(self) -> None:
        """Create the account and payment_transaction tables if missing."""
        conn = self.connect()
        try:
            with translate_errors("create schema"):
                with conn.cursor() as cur:
                    for statement in SCHEMA_DDL:
                        cur.execute(statement)
                conn.commit()
        finally:
            conn.close()
        logger.info("PostgreSQL schema ready")

    def unit_of_work(self) -> "PostgresUnitOfWork":
        """Open a new unit of work on a fresh connection."""
        return PostgresUnitOfWork(self.connect(), self.lock_timeout_ms)


class PostgresUnitOfWork(UnitOfWork):
    """One database transaction spanning account writes and log appends."""

    def __init__(self, conn: psycopg.Connection, lock_timeout_ms: int) -> None:
        super().__init__()
        self.conn = conn
        self.accounts = _PostgresAccountStore(conn)
        self.transactions = _PostgresTransactionLog(conn)
        try:
            with translate_errors("begin transaction"):
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT set_config('lock_timeout', %s, true)",
                        (f"{int(lock_timeout_ms)}ms",),
                    )
        except Exception:
            conn.close()
            raise

    def _commit(self) -> None:
        try:
            with translate_errors("commit transaction"):
                self.conn.commit()
        finally:
            self.conn.close()

    def _rollback(self) -> None:
        if self.conn.closed:
            return
        try:
            with translate_errors("roll back transaction"):
                self.conn.rollback()
        finally:
            self.conn.close()


class _PostgresAccountStore(AccountStore):
    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def get(self, account_id: int) -> Account | None:
        with translate_errors(f"read account {account_id}"):
            with self._conn.cursor() as cur:
                cur.execute(f"SELECT {ACCOUNT_COLUMNS} FROM account WHERE id = %s", (account_id,))
                row = cur.fetchone()
        return _row_to_account(row) if row else None

    def add(self, account: Account) -> Account:
        with translate_errors("insert account"):
            with self._conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO account (balance, account_name, owner_name, version) "
                    f"VALUES (%s, %s, %s, 0) RETURNING {ACCOUNT_COLUMNS}",
                    (account.balance, account.account_name, account.owner_name),
                )
                row = cur.fetchone()
        return _row_to_account(row)

    def update(self, account: Account, expected_version: int) -> Account:
        with translate_errors(f"update account {account.account_id}"):
            with self._conn.cursor() as cur:
                cur.execute(
                    "UPDATE account SET balance = %s, account_name = %s, owner_name = %s, "
                    "version = version + 1, updated_at = CURRENT_TIMESTAMP "
                    f"WHERE id = %s AND version = %s RETURNING {ACCOUNT_COLUMNS}",
                    (
                        account.balance,
                        account.account_name,
                        account.owner_name,
                        account.account_id,
                        expected_version,
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    cur.execute("SELECT version FROM account WHERE id = %s", (account.account_id,))
                    current = cur.fetchone()
        if row is not None:
            return _row_to_account(row)
        if current is None:
            raise AccountNotFoundError("account")
        raise ConcurrencyConflictError(
            f"Account {account.account_id} was modified by a concurrent transfer "
            f"(expected version {expected_version}, found {current['version']})"
        )


class _PostgresTransactionLog(TransactionLog):
    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def append(self, record: TransactionRecord) -> TransactionRecord:
        with translate_errors("append transaction record"):
            with self._conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO payment_transaction (from_account_id, to_account_id, amount) "
                    f"VALUES (%s, %s, %s) RETURNING {TRANSACTION_COLUMNS}",
                    (record.source_account_id, record.destination_account_id, record.amount),
                )
                row = cur.fetchone()
        return _row_to_record(row)

    def get(self, transaction_id: int) -> TransactionRecord | None:
        with translate_errors(f"read transaction {transaction_id}"):
            with self._conn.cursor() as cur:
                cur.execute(
                    f"SELECT {TRANSACTION_COLUMNS} FROM payment_transaction WHERE id = %s",
                    (transaction_id,),
                )
                row = cur.fetchone()
        return _row_to_record(row) if row else None

    def list_for_account(self, account_id: int) -> list[TransactionRecord]:
        with translate_errors(f"list transactions for account {account_id}"):
            with self._conn.cursor() as cur:
                cur.execute(
                    f"SELECT {TRANSACTION_COLUMNS} FROM payment_transaction "
                    "WHERE from_account_id = %s OR to_account_id = %s ORDER BY id",
                    (account_id, account_id),
                )
                rows = cur.fetchall()
        return [_row_to_record(row) for row in rows]
