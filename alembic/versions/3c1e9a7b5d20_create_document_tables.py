"""create document tables with unique number columns

Revision ID: 3c1e9a7b5d20
Revises:
Create Date: 2025-10-15 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e9a7b5d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('created_by', sa.String(length=255), server_default=sa.text("'system@local'"), nullable=False),
        sa.Column('last_changed_by', sa.String(length=255), server_default=sa.text("'system@local'"), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    ]


# (table, number column, reference column, date column, amount column)
_DOCUMENT_TABLES = [
    ('sale', 'invoice_number', 'member_id', 'sale_date', 'total_amount'),
    ('purchase', 'invoice_number', 'supplier_id', 'purchase_date', 'total_amount'),
    ('debt_payment', 'receipt_number', 'member_id', 'payment_date', 'amount'),
    ('sales_return', 'return_number', 'sale_id', 'return_date', 'total_amount'),
    ('purchase_return', 'return_number', 'purchase_id', 'return_date', 'total_amount'),
]


def upgrade() -> None:
    for table, number_col, ref_col, date_col, amount_col in _DOCUMENT_TABLES:
        extra = []
        if table == 'sale':
            extra.append(
                sa.Column(
                    'sale_type',
                    sa.Enum('TUNAI', 'KREDIT', name='sale_type_enum', native_enum=False, length=10),
                    nullable=False,
                    server_default='TUNAI',
                )
            )
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column(ref_col, sa.Integer(), nullable=True),
            sa.Column(number_col, sa.String(length=50), nullable=False),
            sa.Column(date_col, sa.Date(), nullable=False),
            *extra,
            sa.Column(amount_col, sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
            *_audit_columns(),
            sa.PrimaryKeyConstraint('id'),
        )
        # Unique index is the storage backstop against duplicate numbers
        op.create_index(f'ix_{table}_{number_col}', table, [number_col], unique=True)
        op.create_index(f'ix_{table}_{ref_col}', table, [ref_col], unique=False)


def downgrade() -> None:
    for table, number_col, ref_col, _date_col, _amount_col in reversed(_DOCUMENT_TABLES):
        op.drop_index(f'ix_{table}_{ref_col}', table_name=table)
        op.drop_index(f'ix_{table}_{number_col}', table_name=table)
        op.drop_table(table)
