# Import all models so they register themselves on Base.metadata
# (Alembic env and the test fixtures rely on this).
from koperasi.models.sale import Sale  # noqa: F401
from koperasi.models.purchase import Purchase  # noqa: F401
from koperasi.models.member_debt import DebtPayment  # noqa: F401
from koperasi.models.returns import PurchaseReturn, SalesReturn  # noqa: F401
