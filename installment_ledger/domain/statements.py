"""Statement generation - chronological replay of debits and credits"""

from datetime import datetime
from typing import Iterable, List, Optional
from installment_ledger.domain.models import (
    EntryType,
    Invoice,
    InvoiceStatus,
    Statement,
    StatementEntry,
    StatementSummary,
)

# Debits sort before credits on equal timestamps
_TYPE_RANK = {EntryType.DEBIT: 0, EntryType.CREDIT: 1}


def _in_range(moment: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and moment < start:
        return False
    if end is not None and moment > end:
        return False
    return True


def collect_entries(invoices: Iterable[Invoice]) -> List[StatementEntry]:
    """One debit per non-cancelled invoice plus one credit per payment, in input order"""
    entries = []
    for invoice in invoices:
        if invoice.status == InvoiceStatus.CANCELLED:
            continue
        entries.append(
            StatementEntry(
                date=invoice.created_at,
                type=EntryType.DEBIT,
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                description=f"Invoice {invoice.invoice_number}",
                debit_cents=invoice.total_cents,
                credit_cents=0,
            )
        )
        for payment in invoice.payments:
            entries.append(
                StatementEntry(
                    date=payment.paid_at,
                    type=EntryType.CREDIT,
                    invoice_id=invoice.id,
                    invoice_number=invoice.invoice_number,
                    description=f"Payment ({payment.method}) - {invoice.invoice_number}",
                    debit_cents=0,
                    credit_cents=payment.amount_cents,
                )
            )
    return entries


def net_before(invoices: Iterable[Invoice], start: datetime) -> int:
    """Net debit minus credit of all events strictly before start"""
    return sum(
        entry.debit_cents - entry.credit_cents
        for entry in collect_entries(invoices)
        if entry.date < start
    )


def generate(
    invoices: Iterable[Invoice],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    opening_balance_cents: int = 0,
) -> Statement:
    """
    Replay invoice and payment history into a running-balance statement.

    Sort key is (date, debit before credit, input position), so identical
    inputs always produce identical output.
    """
    indexed = [
        (position, entry)
        for position, entry in enumerate(collect_entries(invoices))
        if _in_range(entry.date, start, end)
    ]
    indexed.sort(key=lambda pair: (pair[1].date, _TYPE_RANK[pair[1].type], pair[0]))

    balance = opening_balance_cents
    entries = []
    for _, entry in indexed:
        balance += entry.debit_cents - entry.credit_cents
        entry.balance_cents = balance
        entries.append(entry)

    summary = StatementSummary(
        opening_balance_cents=opening_balance_cents,
        total_purchases_cents=sum(e.debit_cents for e in entries),
        total_payments_cents=sum(e.credit_cents for e in entries),
        current_balance_cents=balance,
        entry_count=len(entries),
    )
    return Statement(entries=entries, summary=summary)
