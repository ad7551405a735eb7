import enum


class DocumentCategory(str, enum.Enum):
    SALE = "SALE"
    PURCHASE = "PURCHASE"
    PAYMENT = "PAYMENT"
    SALES_RETURN = "SALES_RETURN"
    PURCHASE_RETURN = "PURCHASE_RETURN"


class SaleType(str, enum.Enum):
    TUNAI = "TUNAI"  # cash
    KREDIT = "KREDIT"  # credit, booked against the member's debt
