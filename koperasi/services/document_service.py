from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from koperasi.core.enums import DocumentCategory
from koperasi.core.flow_logging import flow_info
from koperasi.models.member_debt import DebtPayment
from koperasi.models.purchase import Purchase
from koperasi.models.returns import PurchaseReturn, SalesReturn
from koperasi.models.sale import Sale
from koperasi.schemas.documents import (
    DebtPaymentCreate,
    PurchaseCreate,
    ReturnCreate,
    SaleCreate,
)
from koperasi.services.document_number_errors import (
    DocumentNumberingError,
    NumberingPreconditionError,
)
from koperasi.services.document_number_format import rule_for
from koperasi.services.document_number_service import (
    local_today,
    next_payment_number,
    next_purchase_number,
    next_purchase_return_number,
    next_sale_number,
    next_sales_return_number,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

GENERATED_PURCHASE_TAG = f"{rule_for(DocumentCategory.PURCHASE).tag}-"


@dataclass
class DocumentNumberConflict(DocumentNumberingError):
    code: str = "NUMBER_CONFLICT"
    message: str = "Document number already exists."
    status_code: int = 409


class DocumentService:
    """
    Document creation workflows. Each one issues the number and inserts the row
    in the same transaction, so the number lock lives exactly as long as the
    insert does.

    A duplicate number (supplier invoice reused, or two callers on the
    lock-timeout fallback path) surfaces as DocumentNumberConflict; retrying
    the whole request is left to the client.
    """

    @staticmethod
    def _save(db: Session, build: Callable[[], T], *, kind: str, number_attr: str) -> T:
        document = None
        try:
            tx_ctx = db.begin_nested() if db.in_transaction() else db.begin()
            with tx_ctx:
                document = build()
                db.add(document)
                db.flush()
        except IntegrityError as exc:
            db.rollback()
            number = getattr(document, number_attr, None)
            logger.warning(
                "document_number_conflict kind=%s number=%s error=%s", kind, number, exc.orig
            )
            raise DocumentNumberConflict(
                message=f"{kind} number {number} already exists."
            ) from exc
        except Exception:
            db.rollback()
            raise

        db.refresh(document)
        flow_info(
            logger,
            "document_created kind=%s id=%s number=%s",
            kind,
            document.id,
            getattr(document, number_attr),
            category="documents",
        )
        return document

    @staticmethod
    def create_sale(db: Session, sale_in: SaleCreate) -> Sale:
        sale_date = sale_in.sale_date or local_today()

        def build() -> Sale:
            return Sale(
                invoice_number=next_sale_number(db, sale_in.sale_type, sale_date),
                sale_type=sale_in.sale_type,
                sale_date=sale_date,
                member_id=sale_in.member_id,
                total_amount=sale_in.total_amount,
                created_by=sale_in.created_by,
                last_changed_by=sale_in.created_by,
                notes=sale_in.notes,
            )

        return DocumentService._save(db, build, kind="Sale", number_attr="invoice_number")

    @staticmethod
    def create_purchase(db: Session, purchase_in: PurchaseCreate) -> Purchase:
        purchase_date = purchase_in.purchase_date or local_today()
        supplier_number = (purchase_in.supplier_invoice_number or "").strip()
        # PO- numbers are reserved for the generator.
        if supplier_number.upper().startswith(GENERATED_PURCHASE_TAG):
            raise NumberingPreconditionError(
                message=(
                    f"Supplier invoice number {supplier_number!r} uses the reserved "
                    f"{GENERATED_PURCHASE_TAG} prefix; omit it to get a generated number."
                )
            )

        def build() -> Purchase:
            invoice_number = supplier_number or next_purchase_number(db, purchase_date)
            return Purchase(
                invoice_number=invoice_number,
                purchase_date=purchase_date,
                supplier_id=purchase_in.supplier_id,
                total_amount=purchase_in.total_amount,
                created_by=purchase_in.created_by,
                last_changed_by=purchase_in.created_by,
                notes=purchase_in.notes,
            )

        return DocumentService._save(db, build, kind="Purchase", number_attr="invoice_number")

    @staticmethod
    def create_debt_payment(db: Session, payment_in: DebtPaymentCreate) -> DebtPayment:
        payment_date = payment_in.payment_date or local_today()

        def build() -> DebtPayment:
            return DebtPayment(
                receipt_number=next_payment_number(db, payment_date),
                payment_date=payment_date,
                member_id=payment_in.member_id,
                amount=payment_in.amount,
                created_by=payment_in.created_by,
                last_changed_by=payment_in.created_by,
                notes=payment_in.notes,
            )

        return DocumentService._save(db, build, kind="Payment", number_attr="receipt_number")

    @staticmethod
    def create_sales_return(db: Session, return_in: ReturnCreate) -> SalesReturn:
        return_date = return_in.return_date or local_today()

        def build() -> SalesReturn:
            return SalesReturn(
                return_number=next_sales_return_number(db, return_date),
                return_date=return_date,
                sale_id=return_in.reference_id,
                total_amount=return_in.total_amount,
                created_by=return_in.created_by,
                last_changed_by=return_in.created_by,
                notes=return_in.notes,
            )

        return DocumentService._save(db, build, kind="Sales return", number_attr="return_number")

    @staticmethod
    def create_purchase_return(db: Session, return_in: ReturnCreate) -> PurchaseReturn:
        return_date = return_in.return_date or local_today()

        def build() -> PurchaseReturn:
            return PurchaseReturn(
                return_number=next_purchase_return_number(db, return_date),
                return_date=return_date,
                purchase_id=return_in.reference_id,
                total_amount=return_in.total_amount,
                created_by=return_in.created_by,
                last_changed_by=return_in.created_by,
                notes=return_in.notes,
            )

        return DocumentService._save(
            db, build, kind="Purchase return", number_attr="return_number"
        )
