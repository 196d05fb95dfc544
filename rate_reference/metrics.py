"""Prometheus metrics"""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    'rate_reference_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)
REQUEST_DURATION = Histogram(
    'rate_reference_http_request_duration_seconds',
    'HTTP request duration',
    ['method', 'endpoint']
)
LOOKUP_CODES = Counter(
    'rate_reference_lookup_codes_total',
    'Distinct codes looked up',
    ['outcome']
)
