"""
Ledger service: the posting and reversal engine.

This service enforces the fundamental rules:
1. Line totals and payments of a posting agree (within tolerance)
2. Transactions are immutable; cancelling one posts a counter-entry
3. A transaction is reversed at most once, and reversals are final
4. Stock and balance deltas are written in the same unit of work
   as the transaction that causes them

No other service moves stock or party balances.
"""

import hashlib
import json
import logging
from decimal import Decimal
from enum import Enum

from sqlalchemy import select, func, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from pos_ledger.config import Settings, get_settings
from pos_ledger.models.transaction import Transaction
from pos_ledger.models.line_item import LineItem, PaymentSplit
from pos_ledger.models.audit_log import BalanceMovement, StockMovement
from pos_ledger.models.party import Party
from pos_ledger.models.enums import (
    TransactionKind,
    TransactionStatus,
    PartyRole,
    CREDIT_METHODS,
    SETTLEMENT_KINDS,
    STOCK_DIRECTION,
    REQUIRED_ROLE,
)
from pos_ledger.money import (
    ZERO,
    QUANTITY_DECIMALS,
    allocate_line_totals,
    fits_places,
    quantize_quantity,
    within_tolerance,
    is_whole,
)
from pos_ledger.schemas.posting import (
    PostingRequest,
    LineRequest,
    PaymentRequest,
    SettlementRequest,
    MovementRequest,
    TransactionFilter,
)
from pos_ledger.services.catalog_service import CatalogService
from pos_ledger.services.party_service import PartyService
from pos_ledger.services.exceptions import (
    NotFound,
    PostingRejected,
    PostingFailed,
    ReversalRejected,
    ReversalFailed,
)

logger = logging.getLogger(__name__)

REVERSAL_PREFIX = "REVERSAL: "
REVERSED_LABEL = "(Reversed) "
MANUAL_LABEL = "[MANUAL] "


def balance_effect(kind: TransactionKind, total_amount, payments) -> Decimal:
    """
    The change a posting makes to its party's balance.

    Credit payments raise the pending amount; settlements lower it
    by the amount settled.
    """
    if kind in SETTLEMENT_KINDS:
        return -Decimal(str(total_amount))
    return credit_total(payments)


def credit_total(payments) -> Decimal:
    """Sum of the payments left on a party's account."""
    return sum(
        (Decimal(str(p.amount)) for p in payments if p.method in CREDIT_METHODS),
        ZERO,
    )


def _canonical(value):
    """Reduce a request to plain values so equal amounts hash alike."""
    if isinstance(value, dict):
        return {k: _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, Decimal):
        # 500, 500.0 and 500.00 are the same amount
        return str(value.normalize())
    if isinstance(value, Enum):
        return value.value
    return value


def fingerprint(payload: dict) -> str:
    """Stable hash of a request, used to recognise a retried request."""
    encoded = json.dumps(_canonical(payload), sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class LedgerService:
    """
    All postings and reversals pass through this service.

    Like the other services it works on the caller's session and
    leaves the commit to the caller. On a storage error it rolls the
    session back itself before raising, so a half-written posting
    is never left behind for the caller to commit by mistake.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.catalog = CatalogService(db)
        self.parties = PartyService(db)

    # --- Posting ---

    def post(self, request: PostingRequest) -> Transaction:
        """
        Validate and post a commercial event.

        Writes the transaction, its lines and payments, then the
        stock and balance deltas. Either all of it becomes visible
        on commit or none of it does.
        """
        request_hash = fingerprint(
            request.model_dump(exclude={"idempotency_key"})
        )

        if request.idempotency_key:
            existing = self._check_idempotency(
                request.idempotency_key, request_hash, PostingRejected
            )
            if existing:
                logger.info(
                    f"Replayed posting {existing.id} for idempotency key "
                    f"{request.idempotency_key}"
                )
                return existing

        try:
            lines, party = self._validate_posting(request)
        except PostingRejected as e:
            logger.warning(f"Posting rejected ({e.reason}): {e.message}")
            raise

        total = sum((total_price for _, _, total_price in lines), ZERO)

        try:
            txn = Transaction(
                kind=request.kind,
                status=TransactionStatus.COMPLETED,
                total_amount=total,
                party_id=party.id if party else None,
                description=request.description,
                idempotency_key=request.idempotency_key,
                request_fingerprint=request_hash,
            )
            self.db.add(txn)

            for position, (line, quantity, total_price) in enumerate(lines):
                txn.items.append(LineItem(
                    position=position,
                    product_id=line.product_id,
                    label=line.label,
                    quantity=quantity,
                    unit_price=line.unit_price,
                    total_price=total_price,
                ))
            for position, payment in enumerate(request.payments):
                txn.payments.append(PaymentSplit(
                    position=position,
                    method=payment.method,
                    amount=payment.amount,
                ))
            self.db.flush()

            self._apply_stock(
                txn,
                [(line.product_id, quantity) for line, quantity, _ in lines],
                STOCK_DIRECTION.get(request.kind, 0),
            )
            if party:
                self._apply_balance(
                    txn,
                    party.id,
                    balance_effect(request.kind, total, request.payments),
                )
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            if request.idempotency_key:
                # Lost a race with a concurrent request using the same key
                existing = self._check_idempotency(
                    request.idempotency_key, request_hash, PostingRejected
                )
                if existing:
                    return existing
            logger.error(f"Posting of {request.kind.value} failed", exc_info=True)
            raise PostingFailed(f"Posting could not be committed: {e}") from e
        except (SQLAlchemyError, NotFound) as e:
            # NotFound here means a row vanished after validation
            self.db.rollback()
            logger.error(f"Posting of {request.kind.value} failed", exc_info=True)
            raise PostingFailed(f"Posting could not be committed: {e}") from e

        logger.info(
            f"Posted {txn.kind.value} transaction {txn.id} "
            f"total={txn.total_amount}"
        )
        return txn

    def _validate_posting(self, request: PostingRequest):
        """
        Check a posting request, first failure wins.

        Returns the lines paired with their quantized quantity and
        line total, and the referenced party (or None).
        """
        # 1. Lines
        if not request.lines:
            raise PostingRejected(
                "EMPTY_LINES", "A posting needs at least one line"
            )
        for index, line in enumerate(request.lines):
            if line.quantity <= 0:
                raise PostingRejected(
                    "INVALID_QUANTITY",
                    f"Line {index} ({line.label}) has quantity "
                    f"{line.quantity}; it must be greater than zero",
                    line=index, quantity=line.quantity,
                )
            if not fits_places(line.quantity, QUANTITY_DECIMALS):
                raise PostingRejected(
                    "INVALID_QUANTITY",
                    f"Line {index} ({line.label}) has quantity "
                    f"{line.quantity}; at most {QUANTITY_DECIMALS} decimals "
                    f"are kept",
                    line=index, quantity=line.quantity,
                )
            if line.unit_price <= 0:
                raise PostingRejected(
                    "INVALID_UNIT_PRICE",
                    f"Line {index} ({line.label}) has unit price "
                    f"{line.unit_price}; resolve the price before posting",
                    line=index, unit_price=line.unit_price,
                )
        # Quantities fit their column exactly, so nothing is rounded here
        quantities = [quantize_quantity(line.quantity) for line in request.lines]
        exact = [q * line.unit_price for q, line in zip(quantities, request.lines)]

        # 2. Payments
        if not request.payments:
            raise PostingRejected(
                "EMPTY_PAYMENTS", "A posting needs at least one payment"
            )
        for index, payment in enumerate(request.payments):
            if payment.amount <= 0:
                raise PostingRejected(
                    "INVALID_PAYMENT_AMOUNT",
                    f"Payment {index} ({payment.method.value}) has amount "
                    f"{payment.amount}; it must be greater than zero",
                    payment=index, amount=payment.amount,
                )

        # 3. Totals agree, first against the exact line amounts and then
        # against the cent-rounded figures that will be stored
        line_totals = allocate_line_totals(exact)
        lines = list(zip(request.lines, quantities, line_totals))
        paid_total = sum((p.amount for p in request.payments), ZERO)
        tolerance = self.settings.AMOUNT_TOLERANCE
        for lines_total in (sum(exact, ZERO), sum(line_totals, ZERO)):
            if not within_tolerance(lines_total, paid_total, tolerance):
                raise PostingRejected(
                    "TOTAL_MISMATCH",
                    f"Payments total {paid_total} but lines total "
                    f"{lines_total} (difference {paid_total - lines_total})",
                    expected=lines_total,
                    actual=paid_total,
                    difference=paid_total - lines_total,
                    tolerance=tolerance,
                )

        # 4. Credit needs someone to owe it
        credit_methods = [
            p.method for p in request.payments if p.method in CREDIT_METHODS
        ]
        if credit_methods and request.party_id is None:
            raise PostingRejected(
                "PARTY_REQUIRED",
                f"Payment method {credit_methods[0].value} requires a party",
                method=credit_methods[0].value,
            )

        # 5. Settlements
        if request.kind in SETTLEMENT_KINDS:
            if request.party_id is None:
                raise PostingRejected(
                    "PARTY_REQUIRED",
                    f"{request.kind.value} requires a party",
                )
            if credit_methods:
                raise PostingRejected(
                    "INVALID_SETTLEMENT",
                    f"{request.kind.value} cannot be paid with "
                    f"{credit_methods[0].value}",
                )

        # 6. Party exists and has the right role
        party = None
        if request.party_id is not None:
            party = self.db.get(Party, request.party_id)
            if not party:
                raise PostingRejected(
                    "PARTY_NOT_FOUND",
                    f"Party {request.party_id} not found",
                    party_id=request.party_id,
                )
            for rule in [request.kind, *credit_methods]:
                required = REQUIRED_ROLE.get(rule)
                if required and party.role != required:
                    raise PostingRejected(
                        "PARTY_ROLE_MISMATCH",
                        f"{rule.value} requires a {required.value} but "
                        f"party {party.id} is a {party.role.value}",
                        party_id=party.id,
                        expected=required.value,
                        actual=party.role.value,
                    )

        # 7. Products exist; only weighable goods come in fractions
        products = self.catalog.get_products(
            line.product_id for line in request.lines
            if line.product_id is not None
        )
        for index, (line, quantity, _) in enumerate(lines):
            if line.product_id is None:
                continue
            product = products.get(line.product_id)
            if not product:
                raise PostingRejected(
                    "PRODUCT_NOT_FOUND",
                    f"Product {line.product_id} not found",
                    line=index, product_id=line.product_id,
                )
            if not product.is_weighable and not is_whole(quantity):
                raise PostingRejected(
                    "FRACTIONAL_QUANTITY",
                    f"Product {product.name} is sold by unit; "
                    f"quantity {quantity} is not whole",
                    line=index, quantity=quantity,
                )

        return lines, party

    # --- Reversal ---

    def reverse(
        self,
        transaction_id: int,
        reason: str,
        idempotency_key: str | None = None,
    ) -> Transaction:
        """
        Cancel a posted transaction by posting its counter-entry.

        The original is not modified. The counter-entry negates every
        line and payment, puts stock back the way the original kind
        moved it, and takes back any credit the original left on the
        party's account.
        """
        request_hash = fingerprint(
            {"reverse": transaction_id, "reason": reason}
        )

        if idempotency_key:
            existing = self._check_idempotency(
                idempotency_key, request_hash, ReversalRejected
            )
            if existing:
                return existing

        try:
            original = self._validate_reversal(transaction_id, reason)
        except ReversalRejected as e:
            logger.warning(f"Reversal rejected ({e.reason}): {e.message}")
            raise

        try:
            txn = Transaction(
                kind=original.kind,
                status=TransactionStatus.COMPLETED,
                total_amount=-original.total_amount,
                party_id=original.party_id,
                reversal_of_id=original.id,
                description=f"{REVERSAL_PREFIX}{reason.strip()}",
                idempotency_key=idempotency_key,
                request_fingerprint=request_hash,
            )
            self.db.add(txn)

            for item in original.items:
                txn.items.append(LineItem(
                    position=item.position,
                    product_id=item.product_id,
                    label=f"{REVERSED_LABEL}{item.label}"[:255],
                    quantity=-item.quantity,
                    unit_price=item.unit_price,
                    total_price=-item.total_price,
                ))
            for payment in original.payments:
                txn.payments.append(PaymentSplit(
                    position=payment.position,
                    method=payment.method,
                    amount=-payment.amount,
                ))
            self.db.flush()

            # Inverse of the direction the original kind moved stock.
            # Quantities are taken from the original lines, never from
            # the negated counter-lines, so the sign is applied once.
            self._apply_stock(
                txn,
                [(item.product_id, item.quantity) for item in original.items],
                -STOCK_DIRECTION.get(original.kind, 0),
            )
            # Only credit left on the account is taken back. A reversed
            # settlement does not move the balance.
            owed = credit_total(original.payments)
            if original.party_id is not None and owed > 0:
                self._apply_balance(txn, original.party_id, -owed)
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            if self.is_reversed(transaction_id):
                raise ReversalRejected(
                    "ALREADY_REVERSED",
                    f"Transaction {transaction_id} is already reversed",
                    transaction_id=transaction_id,
                ) from e
            if idempotency_key:
                existing = self._check_idempotency(
                    idempotency_key, request_hash, ReversalRejected
                )
                if existing:
                    return existing
            logger.error(f"Reversal of {transaction_id} failed", exc_info=True)
            raise ReversalFailed(f"Reversal could not be committed: {e}") from e
        except (SQLAlchemyError, NotFound) as e:
            self.db.rollback()
            logger.error(f"Reversal of {transaction_id} failed", exc_info=True)
            raise ReversalFailed(f"Reversal could not be committed: {e}") from e

        logger.info(
            f"Reversed transaction {transaction_id} with {txn.id} "
            f"total={txn.total_amount}"
        )
        return txn

    def _validate_reversal(self, transaction_id: int, reason: str) -> Transaction:
        if not reason or not reason.strip():
            raise ReversalRejected(
                "REASON_REQUIRED", "A reversal needs a reason"
            )

        original = self.db.get(Transaction, transaction_id)
        if not original:
            raise ReversalRejected(
                "TRANSACTION_NOT_FOUND",
                f"Transaction {transaction_id} not found",
                transaction_id=transaction_id,
            )
        if original.is_reversal or original.total_amount <= 0:
            raise ReversalRejected(
                "REVERSAL_OF_REVERSAL",
                f"Transaction {transaction_id} is itself a reversal "
                f"and cannot be reversed",
                transaction_id=transaction_id,
            )
        if self.is_reversed(transaction_id):
            raise ReversalRejected(
                "ALREADY_REVERSED",
                f"Transaction {transaction_id} is already reversed",
                transaction_id=transaction_id,
            )
        return original

    # --- Specialised postings ---

    def settle_debt(self, request: SettlementRequest) -> Transaction:
        """
        Record a client paying their debt or the shop paying a provider.

        The amount is not checked against the current balance:
        paying more than is owed is allowed and leaves the balance
        negative, which records an advance.
        """
        party = self.db.get(Party, request.party_id)
        if not party:
            raise PostingRejected(
                "PARTY_NOT_FOUND",
                f"Party {request.party_id} not found",
                party_id=request.party_id,
            )
        if request.amount <= 0:
            raise PostingRejected(
                "INVALID_PAYMENT_AMOUNT",
                f"Settlement amount {request.amount} must be greater than zero",
                amount=request.amount,
            )

        if party.role == PartyRole.CLIENT:
            kind = TransactionKind.DEBT_COLLECTION
            label = f"Debt collection: {party.name}"
        else:
            kind = TransactionKind.DEBT_PAYMENT
            label = f"Debt payment: {party.name}"

        return self.post(PostingRequest(
            kind=kind,
            lines=[LineRequest(
                label=label, quantity=Decimal("1"), unit_price=request.amount,
            )],
            payments=[PaymentRequest(method=request.method, amount=request.amount)],
            party_id=party.id,
            idempotency_key=request.idempotency_key,
        ))

    def record_movement(self, request: MovementRequest) -> Transaction:
        """Record a manual cash-drawer income or expense."""
        return self.post(PostingRequest(
            kind=request.kind,
            lines=[LineRequest(
                label=f"{MANUAL_LABEL}{request.description}",
                quantity=Decimal("1"),
                unit_price=request.amount,
            )],
            payments=[PaymentRequest(method=request.method, amount=request.amount)],
            description=request.description,
            idempotency_key=request.idempotency_key,
        ))

    # --- Queries ---

    def get_transaction(self, transaction_id: int) -> Transaction:
        txn = self.db.get(Transaction, transaction_id)
        if not txn:
            raise NotFound(f"Transaction {transaction_id} not found")
        return txn

    def is_reversed(self, transaction_id: int) -> bool:
        return self.db.execute(
            select(exists().where(Transaction.reversal_of_id == transaction_id))
        ).scalar()

    def list_transactions(
        self,
        filters: TransactionFilter | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """Return a page of transactions, newest first, and the total count."""
        filters = filters or TransactionFilter()
        limit = min(
            limit or self.settings.DEFAULT_PAGE_SIZE,
            self.settings.MAX_PAGE_SIZE,
        )

        conditions = []
        if filters.kind is not None:
            conditions.append(Transaction.kind == filters.kind)
        if filters.party_id is not None:
            conditions.append(Transaction.party_id == filters.party_id)
        if filters.start is not None:
            conditions.append(Transaction.created_at >= filters.start)
        if filters.end is not None:
            conditions.append(Transaction.created_at <= filters.end)

        transactions = self.db.execute(
            select(Transaction)
            .where(*conditions)
            .options(
                selectinload(Transaction.items),
                selectinload(Transaction.payments),
            )
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        total = self.db.execute(
            select(func.count(Transaction.id)).where(*conditions)
        ).scalar()

        return list(transactions), total

    # --- Internals ---

    def _check_idempotency(
        self, idempotency_key: str, request_hash: str, rejection
    ) -> Transaction | None:
        """
        Return the transaction already posted under this key, if any.

        The same key with a different request is a client bug and is
        rejected rather than silently answered with the old posting.
        """
        existing = self.db.execute(
            select(Transaction).where(
                Transaction.idempotency_key == idempotency_key
            )
        ).scalar_one_or_none()

        if existing and existing.request_fingerprint != request_hash:
            raise rejection(
                "IDEMPOTENCY_CONFLICT",
                f"Idempotency key '{idempotency_key}' was already used "
                f"for a different request (transaction {existing.id})",
                idempotency_key=idempotency_key,
                transaction_id=existing.id,
            )
        return existing

    def _apply_stock(self, txn: Transaction, product_lines, direction: int):
        if not direction:
            return
        for product_id, quantity in product_lines:
            if product_id is None:
                continue
            delta = Decimal(str(quantity)) * direction
            stock_after = self.catalog.adjust_stock(product_id, delta)
            self.db.add(StockMovement(
                transaction_id=txn.id,
                product_id=product_id,
                delta=delta,
                stock_after=stock_after,
            ))

    def _apply_balance(self, txn: Transaction, party_id: int, delta: Decimal):
        if not delta:
            return
        balance_after = self.parties.adjust_balance(party_id, delta)
        self.db.add(BalanceMovement(
            transaction_id=txn.id,
            party_id=party_id,
            delta=delta,
            balance_after=balance_after,
        ))
