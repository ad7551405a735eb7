from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Enum as SAEnum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from koperasi.core.enums import SaleType
from koperasi.db.base import Base
from koperasi.models.mixins import AuditMixin


class Sale(AuditMixin, Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Format: MMYY-NNN T|K, e.g. "1025-001 K". Counter runs per month and sale_type.
    invoice_number: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)
    sale_type: Mapped[SaleType] = mapped_column(
        SAEnum(SaleType, name="sale_type_enum", native_enum=False, length=10),
        nullable=False,
        default=SaleType.TUNAI,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)
