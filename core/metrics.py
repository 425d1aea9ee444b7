"""
Prometheus metrics for the license service.

Custom metrics for business logic and performance monitoring.
"""

from prometheus_client import Counter

# Key generation metrics
license_keys_generated_total = Counter(
    "license_keys_generated_total",
    "Total license keys generated",
    ["strategy"],
)

license_key_collisions_total = Counter(
    "license_key_collisions_total",
    "Generated license keys rejected because they already exist",
    ["strategy"],
)

# License lifecycle metrics
license_events_total = Counter(
    "license_events_total",
    "License lifecycle events",
    ["event_type"],
)

license_validations_total = Counter(
    "license_validations_total",
    "License validations by result",
    ["result"],
)

usage_changes_total = Counter(
    "license_usage_changes_total",
    "Usage counter changes",
    ["usage_type", "direction"],
)

# Cache metrics
cache_hits_total = Counter(
    "cache_hits_total",
    "Total cache hits",
    ["cache_key"],
)

cache_misses_total = Counter(
    "cache_misses_total",
    "Total cache misses",
    ["cache_key"],
)
