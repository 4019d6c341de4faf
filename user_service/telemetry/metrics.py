"""
HTTP metrics for user-service.
The registry is created by the application root and passed in.
"""

from prometheus_client import CollectorRegistry, Histogram, generate_latest, CONTENT_TYPE_LATEST


PATH_LABEL = "path"
METHOD_LABEL = "method"
STATUS_LABEL = "status"


class HTTPMetrics:
    """Request duration histogram bound to an explicit registry."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry):
        self.registry = registry
        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            labelnames=(PATH_LABEL, METHOD_LABEL, STATUS_LABEL),
            subsystem="user_service",
            registry=registry,
        )

    def observe_request(self, path: str, method: str, status_code: int, duration_seconds: float) -> None:
        self.request_duration.labels(
            strip_dynamic_path_params(path),
            method,
            str(status_code),
        ).observe(duration_seconds)

    def render(self) -> bytes:
        """Prometheus text exposition of the registry."""
        return generate_latest(self.registry)


def strip_dynamic_path_params(path: str) -> str:
    """
    Reduce label cardinality: segments after the first two are dynamic,
    e.g. /v1/users/<id> becomes /v1/users.
    """
    path = path.split("?", 1)[0]
    parts = path.split("/")
    if len(parts) <= 3:
        return path
    return "/".join(parts[:3])
