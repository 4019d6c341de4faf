"""
Telemetry and observability for user-service.

Contains logging and metrics utilities.
"""

from .logger import setup_logging, JSONFormatter, CorrelationFilter, correlation_id_var
from .metrics import HTTPMetrics, strip_dynamic_path_params

__all__ = [
    "setup_logging",
    "JSONFormatter",
    "CorrelationFilter",
    "correlation_id_var",
    "HTTPMetrics",
    "strip_dynamic_path_params"
]
