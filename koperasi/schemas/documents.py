from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from koperasi.core.enums import DocumentCategory, SaleType
from .base import BaseSchema, DocumentCreateBase


class SaleCreate(DocumentCreateBase):
    sale_type: SaleType = SaleType.TUNAI
    # Omitted => today in the store's timezone
    sale_date: Optional[date] = None
    member_id: Optional[int] = None
    total_amount: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=15, decimal_places=2)


class Sale(BaseSchema):
    id: int
    invoice_number: str
    sale_type: SaleType
    sale_date: date
    member_id: Optional[int] = None
    total_amount: Decimal
    created_by: str
    notes: Optional[str] = None
    created_at: datetime


class PurchaseCreate(DocumentCreateBase):
    purchase_date: Optional[date] = None
    supplier_id: Optional[int] = None
    # Supplier's own invoice number; when given it is stored instead of a generated PO number
    supplier_invoice_number: Optional[str] = Field(default=None, max_length=50)
    total_amount: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=15, decimal_places=2)


class Purchase(BaseSchema):
    id: int
    invoice_number: str
    purchase_date: date
    supplier_id: Optional[int] = None
    total_amount: Decimal
    created_by: str
    notes: Optional[str] = None
    created_at: datetime


class DebtPaymentCreate(DocumentCreateBase):
    payment_date: Optional[date] = None
    member_id: Optional[int] = None
    amount: Decimal = Field(gt=0, max_digits=15, decimal_places=2)


class DebtPayment(BaseSchema):
    id: int
    receipt_number: str
    payment_date: date
    member_id: Optional[int] = None
    amount: Decimal
    created_by: str
    notes: Optional[str] = None
    created_at: datetime


class ReturnCreate(DocumentCreateBase):
    return_date: Optional[date] = None
    # sale_id for sales returns, purchase_id for purchase returns
    reference_id: Optional[int] = None
    total_amount: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=15, decimal_places=2)


class SalesReturn(BaseSchema):
    id: int
    return_number: str
    return_date: date
    sale_id: Optional[int] = None
    total_amount: Decimal
    created_by: str
    notes: Optional[str] = None
    created_at: datetime


class PurchaseReturn(BaseSchema):
    id: int
    return_number: str
    return_date: date
    purchase_id: Optional[int] = None
    total_amount: Decimal
    created_by: str
    notes: Optional[str] = None
    created_at: datetime


class NextNumberResponse(BaseModel):
    category: DocumentCategory
    next_number: str


class ParsedNumberResponse(BaseModel):
    category: DocumentCategory
    full_number: str
    period: str
    running_count: int
    variant: Optional[SaleType] = None
    # Sale invoices only
    month: Optional[str] = None
    year: Optional[str] = None
