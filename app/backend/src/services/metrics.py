"""Prometheus metric definitions for workflow transitions."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

workflow_transitions_total = Counter(
    "workflow_transitions_total",
    "Workflow transitions by document type, action and outcome.",
    labelnames=["document_type", "action", "outcome"],
)

workflow_transition_seconds = Histogram(
    "workflow_transition_seconds",
    "Time spent applying a single workflow transition.",
    labelnames=["document_type"],
)

bulk_batch_size = Histogram(
    "workflow_bulk_batch_size",
    "Number of documents submitted in one bulk action.",
    labelnames=["document_type"],
    buckets=(1, 5, 10, 20, 30, 40, 50, 100),
)

__all__ = [
    "bulk_batch_size",
    "workflow_transition_seconds",
    "workflow_transitions_total",
]
