from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from koperasi.db.session import get_db
from koperasi.schemas.documents import (
    DebtPayment,
    DebtPaymentCreate,
    Purchase,
    PurchaseCreate,
    PurchaseReturn,
    ReturnCreate,
    Sale,
    SaleCreate,
    SalesReturn,
)
from koperasi.services.document_number_errors import DocumentNumberingError
from koperasi.services.document_service import DocumentService

router = APIRouter()


def _raise_numbering_failure(exc: DocumentNumberingError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.post("/sales", response_model=Sale, status_code=status.HTTP_201_CREATED)
def create_sale(sale_in: SaleCreate, db: Session = Depends(get_db)):
    """Record a cash (TUNAI) or credit (KREDIT) sale; the invoice number is issued here."""
    try:
        return DocumentService.create_sale(db, sale_in)
    except DocumentNumberingError as exc:
        _raise_numbering_failure(exc)


@router.post("/purchases", response_model=Purchase, status_code=status.HTTP_201_CREATED)
def create_purchase(purchase_in: PurchaseCreate, db: Session = Depends(get_db)):
    try:
        return DocumentService.create_purchase(db, purchase_in)
    except DocumentNumberingError as exc:
        _raise_numbering_failure(exc)


@router.post("/debt-payments", response_model=DebtPayment, status_code=status.HTTP_201_CREATED)
def create_debt_payment(payment_in: DebtPaymentCreate, db: Session = Depends(get_db)):
    try:
        return DocumentService.create_debt_payment(db, payment_in)
    except DocumentNumberingError as exc:
        _raise_numbering_failure(exc)


@router.post("/sales-returns", response_model=SalesReturn, status_code=status.HTTP_201_CREATED)
def create_sales_return(return_in: ReturnCreate, db: Session = Depends(get_db)):
    try:
        return DocumentService.create_sales_return(db, return_in)
    except DocumentNumberingError as exc:
        _raise_numbering_failure(exc)


@router.post(
    "/purchase-returns",
    response_model=PurchaseReturn,
    status_code=status.HTTP_201_CREATED,
)
def create_purchase_return(return_in: ReturnCreate, db: Session = Depends(get_db)):
    try:
        return DocumentService.create_purchase_return(db, return_in)
    except DocumentNumberingError as exc:
        _raise_numbering_failure(exc)
