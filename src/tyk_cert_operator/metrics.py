"""Prometheus metrics for the Tyk Secret Certificate Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "tyk_cert_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "tyk_cert_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

reconcile_retries_total = Counter(
    "tyk_cert_operator_reconcile_retries_total",
    "Total number of requeued reconcile passes",
    ["reason"],
)

# Watch filtering metrics
events_filtered_total = Counter(
    "tyk_cert_operator_events_filtered_total",
    "Secret watch events admitted or dropped by the classifier",
    ["event_type", "decision"],
)

# Tyk certificate store metrics
certificate_operations_total = Counter(
    "tyk_cert_operator_certificate_operations_total",
    "Total number of Tyk certificate operations",
    ["operation", "result"],
)

api_definition_updates_total = Counter(
    "tyk_cert_operator_api_definition_updates_total",
    "Total number of ApiDefinition certificate reference updates",
    ["result"],
)

# API call metrics
api_call_total = Counter(
    "tyk_cert_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "tyk_cert_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

error_total = Counter(
    "tyk_cert_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)
