from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterator

from sqlalchemy import func, select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from koperasi.core.config import settings
from koperasi.core.enums import DocumentCategory, SaleType
from koperasi.core.flow_logging import flow_info
from koperasi.models.member_debt import DebtPayment
from koperasi.models.purchase import Purchase
from koperasi.models.returns import PurchaseReturn, SalesReturn
from koperasi.models.sale import Sale
from koperasi.services.document_number_errors import (
    LockTimeoutError,
    NumberingPreconditionError,
    is_lock_timeout,
)
from koperasi.services.document_number_format import (
    coerce_category,
    coerce_sale_type,
    format_number,
    number_prefix,
    period_key,
    running_count_of,
)

logger = logging.getLogger(__name__)

# Fixed upper bound on waiting for the period lock. Expiry is the only
# trigger for the unlocked fallback read.
LOCK_TIMEOUT_SECONDS = 5


@dataclass(frozen=True)
class _NumberTarget:
    model: type
    number_attr: str
    variant_attr: str | None = None


_TARGETS: dict[DocumentCategory, _NumberTarget] = {
    DocumentCategory.SALE: _NumberTarget(Sale, "invoice_number", "sale_type"),
    DocumentCategory.PURCHASE: _NumberTarget(Purchase, "invoice_number"),
    DocumentCategory.PAYMENT: _NumberTarget(DebtPayment, "receipt_number"),
    DocumentCategory.SALES_RETURN: _NumberTarget(SalesReturn, "return_number"),
    DocumentCategory.PURCHASE_RETURN: _NumberTarget(PurchaseReturn, "return_number"),
}


def local_today() -> date:
    tz = timezone(timedelta(hours=settings.SALE_TIMEZONE_OFFSET_HOURS))
    return datetime.now(tz).date()


def _dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


@contextmanager
def _bounded_lock_wait(db: Session) -> Iterator[None]:
    """Cap lock waits at LOCK_TIMEOUT_SECONDS for the statements in the block."""
    dialect = _dialect_name(db)

    if dialect == "postgresql":
        previous = db.execute(text("SELECT current_setting('lock_timeout')")).scalar_one()
        db.execute(
            text("SELECT set_config('lock_timeout', :value, true)"),
            {"value": f"{LOCK_TIMEOUT_SECONDS * 1000}ms"},
        )
        # On failure the enclosing savepoint rollback discards the setting;
        # the aborted transaction would reject a restore anyway.
        yield
        db.execute(
            text("SELECT set_config('lock_timeout', :value, true)"),
            {"value": previous},
        )
        return

    if dialect in {"mysql", "mariadb"}:
        previous = db.execute(text("SELECT @@SESSION.innodb_lock_wait_timeout")).scalar_one()
        db.execute(
            text("SET SESSION innodb_lock_wait_timeout = :value"),
            {"value": LOCK_TIMEOUT_SECONDS},
        )
        try:
            yield
        finally:
            db.execute(
                text("SET SESSION innodb_lock_wait_timeout = :value"),
                {"value": int(previous)},
            )
        return

    # SQLite: the write lock comes from BEGIN IMMEDIATE (see koperasi.db.session)
    # and waiting for it is bounded by the driver's busy timeout.
    yield


def period_lock_key(
    category: DocumentCategory, prefix: str, variant: SaleType | None = None
) -> str:
    """Key of the PostgreSQL advisory lock guarding one counter."""
    return f"{category.value}:{prefix}:{variant.value if variant else ''}"


def _acquire_period_lock(db: Session, lock_key: str) -> None:
    # The row lock alone cannot cover an empty period, and under READ COMMITTED
    # a waiter would re-read the row it queued on instead of the newest one.
    if _dialect_name(db) == "postgresql":
        db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": lock_key})


class DocumentNumberService:
    @staticmethod
    def _last_number(
        db: Session,
        target: _NumberTarget,
        prefix: str,
        variant: SaleType | None,
        *,
        for_update: bool,
    ) -> str | None:
        column = getattr(target.model, target.number_attr)
        stmt = select(column).where(column.like(f"{prefix}%"))
        if target.variant_attr is not None:
            stmt = stmt.where(getattr(target.model, target.variant_attr) == variant)
        # Length first so "1025-1000 T" sorts above "1025-999 T".
        stmt = stmt.order_by(func.length(column).desc(), column.desc()).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _locked_last_number(
        db: Session,
        target: _NumberTarget,
        prefix: str,
        variant: SaleType | None,
        lock_key: str,
    ) -> str | None:
        try:
            with db.begin_nested():
                with _bounded_lock_wait(db):
                    _acquire_period_lock(db, lock_key)
                    return DocumentNumberService._last_number(
                        db, target, prefix, variant, for_update=True
                    )
        except DBAPIError as exc:
            if not is_lock_timeout(exc):
                raise
            raise LockTimeoutError(original=exc) from exc

    @staticmethod
    def _validate(
        db: Session | None,
        category: DocumentCategory | str,
        on_date: date | None,
        variant: SaleType | str | None,
    ) -> tuple[DocumentCategory, date, SaleType | None]:
        if db is None:
            raise NumberingPreconditionError(
                message="A database session with an open transaction is required."
            )
        if not db.in_transaction():
            raise NumberingPreconditionError(
                message="Document numbers must be issued inside an open transaction."
            )

        try:
            category = coerce_category(category)
        except ValueError as exc:
            raise NumberingPreconditionError(message=str(exc)) from exc

        if category is DocumentCategory.SALE:
            if variant is None:
                raise NumberingPreconditionError(message="sale_type is required for sale numbers.")
            try:
                variant = coerce_sale_type(variant)
            except ValueError as exc:
                raise NumberingPreconditionError(message=str(exc)) from exc
            if on_date is None:
                on_date = local_today()
        else:
            if variant is not None:
                raise NumberingPreconditionError(
                    message=f"{category.value} numbers do not take a variant."
                )
            if on_date is None:
                raise NumberingPreconditionError(
                    message=f"A date is required for {category.value} numbers."
                )

        if isinstance(on_date, datetime):
            on_date = on_date.date()
        try:
            period_key(category, on_date)
        except ValueError as exc:
            raise NumberingPreconditionError(message=str(exc)) from exc
        return category, on_date, variant

    @staticmethod
    def next_number(
        db: Session,
        category: DocumentCategory | str,
        on_date: date | None = None,
        variant: SaleType | str | None = None,
    ) -> str:
        """
        Issue the next number for category/period(/variant).

        Must run inside the caller's open transaction; the caller inserts the
        document with the returned number and commits. The period lock is held
        until that commit or rollback.

        If the lock cannot be had within LOCK_TIMEOUT_SECONDS the read is done
        once more without locking and its result is returned anyway. Two
        callers can then pick the same number; the UNIQUE constraint on the
        number column rejects the second insert.
        """
        category, on_date, variant = DocumentNumberService._validate(
            db, category, on_date, variant
        )
        target = _TARGETS[category]
        prefix = number_prefix(category, on_date)
        lock_key = period_lock_key(category, prefix, variant)

        locked = True
        try:
            last = DocumentNumberService._locked_last_number(
                db, target, prefix, variant, lock_key
            )
        except LockTimeoutError as exc:
            logger.warning(
                "document_number_lock_timeout_fallback category=%s prefix=%s timeout_s=%s error=%s",
                category.value,
                prefix,
                LOCK_TIMEOUT_SECONDS,
                exc.original,
            )
            locked = False
            last = DocumentNumberService._last_number(
                db, target, prefix, variant, for_update=False
            )

        next_count = running_count_of(category, last) + 1 if last else 1
        number = format_number(category, period_key(category, on_date), next_count, variant)
        flow_info(
            logger,
            "document_number_issued category=%s number=%s last=%s locked=%s",
            category.value,
            number,
            last,
            locked,
            category="numbering",
        )
        return number


def next_number(
    db: Session,
    category: DocumentCategory | str,
    on_date: date | None = None,
    variant: SaleType | str | None = None,
) -> str:
    return DocumentNumberService.next_number(db, category, on_date, variant)


def next_sale_number(db: Session, sale_type: SaleType | str, on_date: date | None = None) -> str:
    return DocumentNumberService.next_number(db, DocumentCategory.SALE, on_date, sale_type)


def next_purchase_number(db: Session, on_date: date) -> str:
    return DocumentNumberService.next_number(db, DocumentCategory.PURCHASE, on_date)


def next_payment_number(db: Session, on_date: date) -> str:
    return DocumentNumberService.next_number(db, DocumentCategory.PAYMENT, on_date)


def next_sales_return_number(db: Session, on_date: date) -> str:
    return DocumentNumberService.next_number(db, DocumentCategory.SALES_RETURN, on_date)


def next_purchase_return_number(db: Session, on_date: date) -> str:
    return DocumentNumberService.next_number(db, DocumentCategory.PURCHASE_RETURN, on_date)
