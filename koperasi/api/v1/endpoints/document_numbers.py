from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from koperasi.core.enums import DocumentCategory
from koperasi.db.session import get_db
from koperasi.schemas.documents import NextNumberResponse, ParsedNumberResponse
from koperasi.services.document_number_errors import DocumentNumberingError
from koperasi.services.document_number_format import (
    coerce_category,
    parse_invoice_number,
    parse_number,
)
from koperasi.services.document_number_service import DocumentNumberService

router = APIRouter()


@router.get("/next", response_model=NextNumberResponse)
def preview_next_number(
    category: str,
    on_date: Optional[date] = Query(default=None, alias="date"),
    variant: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Show the number the next document would get. Nothing is reserved: the
    transaction is rolled back, so a concurrent save can still take it.
    """
    db.begin()
    try:
        number = DocumentNumberService.next_number(db, category, on_date, variant)
        return NextNumberResponse(category=coerce_category(category), next_number=number)
    except DocumentNumberingError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())
    finally:
        db.rollback()


@router.get("/parse", response_model=ParsedNumberResponse)
def parse_document_number(category: str, number: str):
    try:
        doc_category = coerce_category(category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        parsed = parse_number(doc_category, number)
    except DocumentNumberingError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())

    response = ParsedNumberResponse(
        category=doc_category,
        full_number=number,
        period=parsed.period,
        running_count=parsed.running_count,
        variant=parsed.variant,
    )
    if doc_category is DocumentCategory.SALE:
        invoice = parse_invoice_number(number)
        response.month = invoice.month
        response.year = invoice.year
    return response
