"""
Prometheus metrics for API monitoring and goal consistency tracking.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from prometheus_client import REGISTRY, Counter, Histogram

# Request metrics - labeled by method and path
REQUEST_COUNTER = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path"],
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
    registry=REGISTRY,
)

# Progress mutations, labeled by operation (create/update/delete)
PROGRESS_MUTATIONS = Counter(
    "fittrack_progress_mutations_total",
    "Progress entries created, updated or deleted",
    ["operation"],
    registry=REGISTRY,
)

# Goal currentValue recomputations, labeled by outcome (success/failure)
CONSISTENCY_RECALCULATIONS = Counter(
    "fittrack_goal_recalculations_total",
    "Goal currentValue recomputations from the progress history",
    ["outcome"],
    registry=REGISTRY,
)
