from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError

# PostgreSQL SQLSTATE raised when lock_timeout expires.
_PG_LOCK_NOT_AVAILABLE = "55P03"
# MySQL/MariaDB: ER_LOCK_WAIT_TIMEOUT, ER_LOCK_NOWAIT.
_MYSQL_LOCK_WAIT_CODES = {1205, 3572}


@dataclass
class DocumentNumberingError(Exception):
    code: str
    message: str
    status_code: int = 400

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


@dataclass
class NumberingPreconditionError(DocumentNumberingError):
    code: str = "NUMBERING_PRECONDITION"
    message: str = "Document number cannot be issued."
    status_code: int = 400


@dataclass
class DocumentNumberParseError(DocumentNumberingError, ValueError):
    code: str = "NUMBER_MALFORMED"
    message: str = "Document number is malformed."
    status_code: int = 422
    value: str | None = None

    def to_detail(self) -> dict:
        detail = super().to_detail()
        if self.value is not None:
            detail["value"] = self.value
        return detail


@dataclass
class LockTimeoutError(DocumentNumberingError):
    """Locked read gave up waiting. Consumed by the generator, never surfaced."""

    code: str = "LOCK_TIMEOUT"
    message: str = "Timed out waiting for the document number lock."
    status_code: int = 503
    original: BaseException | None = None


def is_lock_timeout(exc: BaseException) -> bool:
    """True only for lock-wait expiry; deadlocks and other failures are excluded."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    if orig is None:
        return False

    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode == _PG_LOCK_NOT_AVAILABLE:
        return True

    args = getattr(orig, "args", ()) or ()
    if args and isinstance(args[0], int) and args[0] in _MYSQL_LOCK_WAIT_CODES:
        return True

    # sqlite3 reports an expired busy timeout this way.
    return "database is locked" in str(orig).lower()
