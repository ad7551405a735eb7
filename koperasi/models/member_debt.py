from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from koperasi.db.base import Base
from koperasi.models.mixins import AuditMixin


class DebtPayment(AuditMixin, Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Format: PAY-YYYYMMDD-NNN
    receipt_number: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
