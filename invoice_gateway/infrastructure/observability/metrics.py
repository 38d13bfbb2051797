"""Prometheus metrics for invoice builds, data quality and late charges"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from invoice_gateway.domain.audit import AuditEntry
from invoice_gateway.domain.models import InvoiceBuildResult

# Invoice builder
invoice_build_counter = Counter(
    "invoice_builds_total",
    "Invoice builds requested",
    ["outcome"],  # success | configuration_error | invalid_input | error
)

invoice_source_counter = Counter(
    "invoice_source_total",
    "Closed/current invoices by total source",
    ["source"],  # transactions | snapshot
)

excluded_transaction_counter = Counter(
    "invoice_excluded_transactions_total",
    "Transactions left out of cycle bucketing",
    ["reason"],  # invalid_date | ignored | invalid_record | out_of_window
)

ambiguous_classification_counter = Counter(
    "invoice_ambiguous_classifications_total",
    "Transactions defaulted to purchase after an ambiguous classification",
)

# Late charges
late_charge_counter = Counter(
    "late_charge_computations_total",
    "Late charge computations",
    ["overdue"],  # true | false
)

late_charge_days_histogram = Histogram(
    "late_charge_days_overdue",
    "Days overdue of late charge computations",
    buckets=[1, 5, 10, 30, 60, 90, 180],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_invoice_build(result: InvoiceBuildResult, entries: Iterable[AuditEntry] = ()) -> None:
    """Record build metrics for monitoring data quality of the aggregator feed"""
    invoice_build_counter.labels(outcome="success").inc()

    for invoice in (result.closed_invoice, result.current_invoice):
        invoice_source_counter.labels(source=invoice.source).inc()

    for excluded in result.excluded:
        excluded_transaction_counter.labels(reason=excluded.reason).inc()

    ambiguous = sum(1 for entry in entries if entry.operation == "classification_ambiguous")
    if ambiguous:
        ambiguous_classification_counter.inc(ambiguous)


def record_late_charges(days_overdue: int) -> None:
    late_charge_counter.labels(overdue="true" if days_overdue > 0 else "false").inc()
    if days_overdue > 0:
        late_charge_days_histogram.observe(days_overdue)
