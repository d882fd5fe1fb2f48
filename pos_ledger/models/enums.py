"""
Shared enumerations for database models.

Python enums mapped to database enums, so an unknown kind or
payment method is rejected by the database as well as by the API.
"""

import enum


class TransactionKind(str, enum.Enum):
    """The commercial event a transaction records."""
    SALE = "SALE"
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    DEBT_COLLECTION = "DEBT_COLLECTION"
    DEBT_PAYMENT = "DEBT_PAYMENT"


class TransactionStatus(str, enum.Enum):
    # Postings are atomic, so there is no draft or pending state.
    COMPLETED = "COMPLETED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    QR = "QR"
    CREDIT_CUSTOMER = "CREDIT_CUSTOMER"
    CREDIT_PROVIDER = "CREDIT_PROVIDER"


class PartyRole(str, enum.Enum):
    CLIENT = "CLIENT"
    PROVIDER = "PROVIDER"


# Kinds whose payments bring money into the business.
INFLOW_KINDS = frozenset({
    TransactionKind.SALE,
    TransactionKind.INCOME,
    TransactionKind.DEBT_COLLECTION,
})

# Kinds whose payments take money out of the business.
OUTFLOW_KINDS = frozenset({
    TransactionKind.EXPENSE,
    TransactionKind.DEBT_PAYMENT,
})

SETTLEMENT_KINDS = frozenset({
    TransactionKind.DEBT_COLLECTION,
    TransactionKind.DEBT_PAYMENT,
})

CREDIT_METHODS = frozenset({
    PaymentMethod.CREDIT_CUSTOMER,
    PaymentMethod.CREDIT_PROVIDER,
})

# Sign applied to a product line's quantity when it is posted.
# A sale ships goods out; an expense (restock) brings them in.
# Kinds not listed here never touch stock.
STOCK_DIRECTION: dict[TransactionKind, int] = {
    TransactionKind.SALE: -1,
    TransactionKind.EXPENSE: 1,
}

# The party role each credit method and settlement kind applies to.
REQUIRED_ROLE = {
    PaymentMethod.CREDIT_CUSTOMER: PartyRole.CLIENT,
    PaymentMethod.CREDIT_PROVIDER: PartyRole.PROVIDER,
    TransactionKind.DEBT_COLLECTION: PartyRole.CLIENT,
    TransactionKind.DEBT_PAYMENT: PartyRole.PROVIDER,
}
