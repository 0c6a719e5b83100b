from time import perf_counter
from flask import Blueprint, g, request, Response, current_app
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

metrics_bp = Blueprint("metrics", __name__)

# HTTP metrics, labelled by route rule
REQUEST_LATENCY = Histogram(
    "trackd_http_request_latency_seconds",
    "Latency of HTTP requests",
    ["method", "path", "status"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)
REQUEST_COUNT = Counter(
    "trackd_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
ERROR_COUNT = Counter(
    "trackd_http_errors_total",
    "Total HTTP 5xx responses",
    ["method", "path", "status"],
)

# Social activity
FRIEND_REQUESTS = Counter(
    "trackd_friend_requests_total",
    "Friend requests sent to existing users",
)
FRIENDSHIPS_ACCEPTED = Counter(
    "trackd_friendships_accepted_total",
    "Friend requests accepted by their recipient",
)
INVITATIONS = Counter(
    "trackd_invitations_total",
    "Invitations sent to emails without an account, and their conversion",
    ["event"],  # sent | claimed
)
SUGGESTIONS = Counter(
    "trackd_suggestions_total",
    "Suggestions by lifecycle step",
    ["status"],  # created | accepted | dismissed
)

# Side effects
EMAIL_FAILURES = Counter(
    "trackd_email_failures_total",
    "Notification emails that could not be delivered",
    ["kind"],
)
TMDB_ERRORS = Counter(
    "trackd_tmdb_errors_total",
    "Failed TMDB calls by upstream status (0 when TMDB was unreachable)",
    ["status"],
)


@metrics_bp.before_app_request
def _metrics_before():
    g._t_start = perf_counter()

@metrics_bp.after_app_request
def _metrics_after(resp):
    start = getattr(g, "_t_start", None)
    if start is None:
        return resp
    try:
        dur = perf_counter() - start
        method = request.method
        # the rule pattern keeps ids out of the label set
        path = request.url_rule.rule if request.url_rule else "<unmatched>"
        status = str(resp.status_code)

        REQUEST_LATENCY.labels(method, path, status).observe(dur)
        REQUEST_COUNT.labels(method, path, status).inc()
        if resp.status_code >= 500:
            ERROR_COUNT.labels(method, path, status).inc()
    except Exception:
        current_app.logger.warning("Failed to record metrics", exc_info=True)
    return resp

@metrics_bp.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(data, mimetype=CONTENT_TYPE_LATEST)
