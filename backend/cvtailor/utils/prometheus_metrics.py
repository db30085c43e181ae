"""
Prometheus Metrics for the CV tailoring pipeline

Metrics Categories:
- Pipeline metrics: submissions by outcome, stage failures by error kind
- LLM metrics: provider calls and latency
- Export metrics: generated downloads by document and format
"""

from contextlib import contextmanager
from time import time
import logging

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST
)

logger = logging.getLogger(__name__)


# =============================================================================
# PIPELINE METRICS
# =============================================================================

pipeline_runs_total = Counter(
    'pipeline_runs_total',
    'Total number of tailoring submissions',
    ['outcome']  # done, error, invalid, busy, stale
)

pipeline_duration_seconds = Histogram(
    'pipeline_duration_seconds',
    'End-to-end duration of a tailoring submission in seconds',
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0]
)

stage_failures_total = Counter(
    'stage_failures_total',
    'Total number of stage failures',
    ['stage', 'error_kind']  # stage: adapt_cv, cover_letter
)


# =============================================================================
# LLM-SPECIFIC METRICS
# =============================================================================

llm_api_calls_total = Counter(
    'llm_api_calls_total',
    'Total number of LLM API calls',
    ['provider', 'model', 'status']
)

llm_latency_seconds = Histogram(
    'llm_latency_seconds',
    'LLM API call duration in seconds',
    ['provider'],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0]
)


# =============================================================================
# EXPORT METRICS
# =============================================================================

documents_generated_total = Counter(
    'documents_generated_total',
    'Total number of generated downloads',
    ['document', 'format']
)


# =============================================================================
# SYSTEM METRICS
# =============================================================================

application_info = Info(
    'application',
    'Application version and metadata'
)

application_info.info({
    'version': '0.1.0',
    'component': 'cv_tailor_service'
})


# =============================================================================
# UTILITIES
# =============================================================================

@contextmanager
def track_llm_call(provider: str, model: str):
    """
    Count and time one provider call.

    Usage:
        with track_llm_call("openai", "gpt-4o"):
            client.invoke(messages)
    """
    start_time = time()
    try:
        yield
    except Exception:
        llm_api_calls_total.labels(provider=provider, model=model, status="failure").inc()
        raise
    else:
        llm_api_calls_total.labels(provider=provider, model=model, status="success").inc()
    finally:
        llm_latency_seconds.labels(provider=provider).observe(time() - start_time)


def record_pipeline_run(outcome: str, duration: float = None) -> None:
    pipeline_runs_total.labels(outcome=outcome).inc()
    if duration is not None:
        pipeline_duration_seconds.observe(duration)


def record_stage_failure(stage: str, error_kind: str) -> None:
    stage_failures_total.labels(stage=stage, error_kind=error_kind).inc()
    logger.debug("Stage failure recorded: %s/%s", stage, error_kind)


def record_document(document: str, fmt: str) -> None:
    documents_generated_total.labels(document=document, format=fmt).inc()


def get_metrics() -> bytes:
    """Return the Prometheus exposition payload."""
    return generate_latest()


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST
