"""Prometheus metrics for monitoring affordability checks, submissions, and gateway health"""

from prometheus_client import Counter, Histogram, Gauge

# Workflow metrics
affordability_check_counter = Counter(
    "payflow_affordability_checks_total",
    "Affordability assessments requested by draft wizards",
    ["outcome"],  # affordable | not_affordable | failed
)

employee_search_counter = Counter(
    "payflow_employee_searches_total",
    "Employee directory searches",
    ["outcome"],  # found | no_matches | blank_query | failed
)

stale_response_counter = Counter(
    "payflow_stale_responses_discarded_total",
    "Responses dropped because a newer request superseded them",
    ["operation"],  # search | affordability
)

submission_counter = Counter(
    "payflow_deduction_submissions_total",
    "Deduction request submissions",
    ["outcome"],  # created | rejected | failed | interrupted
)

active_drafts_gauge = Gauge(
    "payflow_active_draft_sessions",
    "Draft wizard sessions currently held in memory",
)

# Gateway metrics
gateway_latency_histogram = Histogram(
    "payflow_gateway_latency_seconds",
    "External collaborator response time",
    ["service"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

gateway_failure_counter = Counter(
    "payflow_gateway_failures_total",
    "Failed calls to external collaborators",
    ["service"],  # directory | affordability | deduction_requests
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_affordability(can_afford: bool | None) -> None:
    """Record an assessment outcome; None means the check failed"""
    if can_afford is None:
        outcome = "failed"
    elif can_afford:
        outcome = "affordable"
    else:
        outcome = "not_affordable"
    affordability_check_counter.labels(outcome=outcome).inc()


def record_submission(outcome: str) -> None:
    submission_counter.labels(outcome=outcome).inc()
