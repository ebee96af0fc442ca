"""Prometheus metrics for monitoring sales, repayments, credit rejections and notification delivery"""

from prometheus_client import Counter, Histogram

# Invoice metrics
invoice_counter = Counter(
    "ledger_invoices_total",
    "Invoices created",
    ["payment_method"],  # cash | installment | deferred
)

invoice_amount_histogram = Histogram(
    "ledger_invoice_amount_cents",
    "Invoice totals in minor units",
    buckets=[1_000, 10_000, 50_000, 100_000, 500_000, 1_000_000, 5_000_000],
)

invoice_rejection_counter = Counter(
    "ledger_invoice_rejections_total",
    "Invoice creations rejected by a ledger rule",
    ["reason"],  # credit_exceeded | sales_blocked | insufficient_stock | validation_error
)

# Payment metrics
payment_counter = Counter(
    "ledger_payments_total",
    "Payments applied to invoices",
    ["method", "timeliness"],  # on_time | late
)

payment_amount_counter = Counter(
    "ledger_payment_amount_cents_total",
    "Sum of applied payments in minor units",
)

# Integrity
concurrency_conflict_counter = Counter(
    "ledger_concurrency_conflicts_total",
    "Optimistic lock conflicts detected on write",
)

ledger_inconsistency_counter = Counter(
    "ledger_inconsistencies_total",
    "Internal ledger invariant violations",
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_invoice(payment_method: str, total_cents: int) -> None:
    """Record invoice volume by payment terms"""
    invoice_counter.labels(payment_method=payment_method).inc()
    invoice_amount_histogram.observe(total_cents)


def record_rejection(reason: str) -> None:
    invoice_rejection_counter.labels(reason=reason).inc()


def record_payment(method: str, amount_cents: int, days_late: int) -> None:
    """Record repayment volume and timeliness"""
    timeliness = "on_time" if days_late <= 0 else "late"
    payment_counter.labels(method=method, timeliness=timeliness).inc()
    payment_amount_counter.inc(amount_cents)
