"""Prometheus metrics for funnel progress, validation failures and backend health"""

from prometheus_client import Counter, Histogram

# Flow metrics
step_transition_counter = Counter(
    "registration_step_transitions_total",
    "Registration flow step transitions",
    ["transition", "step"],  # advance | retreat, step left
)

validation_failure_counter = Counter(
    "registration_validation_failures_total",
    "Form field validation failures",
    ["field_type"],
)

outcome_counter = Counter(
    "registration_confirmation_outcome_total",
    "Confirmation screen outcomes",
    ["outcome"],  # successful | processing
)

# Backend API metrics
api_latency_histogram = Histogram(
    "registration_api_latency_seconds",
    "Registration backend response time",
    ["operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

api_failure_counter = Counter(
    "registration_api_failures_total",
    "Failed registration backend calls",
    ["operation"],
)


def record_transition(transition: str, step_name: str) -> None:
    """Record a flow transition out of step_name"""
    step_transition_counter.labels(transition=transition, step=step_name).inc()


def record_validation_failures(field_types: list[str]) -> None:
    """Record one failure per failing field, bucketed by field type"""
    for field_type in field_types:
        validation_failure_counter.labels(field_type=field_type).inc()
