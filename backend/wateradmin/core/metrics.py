"""Prometheus collectors shared by the HTTP layer and the services"""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "wateradmin_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "wateradmin_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
TOKENS_ISSUED = Counter(
    "wateradmin_tokens_issued_total",
    "Access tokens issued",
    ["kind"],
)
TOKEN_REJECTIONS = Counter(
    "wateradmin_token_rejections_total",
    "Gated requests rejected by the token gate",
    ["reason"],
)
TOKENS_SWEPT = Counter(
    "wateradmin_tokens_swept_total",
    "Access tokens removed by sweeps",
)
ACTIVITY_WRITE_FAILURES = Counter(
    "wateradmin_activity_log_write_failures_total",
    "Activity log entries that could not be written",
)
