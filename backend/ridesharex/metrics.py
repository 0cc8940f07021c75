# ridesharex/metrics.py
from prometheus_client import Counter, Histogram

# === Core metrics (definitions ONLY here) ===
transitions_total = Counter(
    "transitions_total", "Applied status transitions", ["kind", "to_status"]
)

transition_errors_total = Counter(
    "transition_errors_total", "Rejected or failed transition requests", ["kind", "error"]
)

availability_changes_total = Counter(
    "availability_changes_total", "Listing availability toggles", ["is_available"]
)

notifications_failed_total = Counter(
    "notifications_failed_total", "Notification dispatch failures", ["channel"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds", "Request latency"
)

def init_metrics_zero():
    # create label combos at 0 so dashboards never see "no data"
    kinds = ["user", "listing"]
    statuses = ["pending", "approved", "rejected"]
    errors = ["InvalidTransition", "Unauthorized", "MissingReason", "Conflict", "StorageError", "NotFound"]

    for k in kinds:
        for s in statuses:
            transitions_total.labels(kind=k, to_status=s).inc(0)
        for e in errors:
            transition_errors_total.labels(kind=k, error=e).inc(0)
    for flag in ("true", "false"):
        availability_changes_total.labels(is_available=flag).inc(0)
    for ch in ("database", "webhook"):
        notifications_failed_total.labels(channel=ch).inc(0)
