from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from koperasi.db.base import Base
from koperasi.models.mixins import AuditMixin


class SalesReturn(AuditMixin, Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Format: SRN-YYYYMMDD-NNN
    return_number: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    return_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)


class PurchaseReturn(AuditMixin, Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    purchase_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Format: PRN-YYYYMMDD-NNN
    return_number: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    return_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)
