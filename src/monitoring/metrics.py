from __future__ import annotations

from prometheus_client import Counter, Histogram

from utils.logging import get_logger

log = get_logger(__name__)

CRAG_QUERY_LATENCY = Histogram(
    "crag_query_duration_ms",
    "Time for CRAG query processing in milliseconds",
    buckets=(50, 100, 250, 500, 1000, 2000, 5000, 10000),
)
CRAG_CONFIDENCE = Counter("crag_confidence_total", "CRAG queries by final confidence category", ["category"])
CRAG_RETRIES = Counter("crag_retries_total", "CRAG retrieval retries")
CRAG_QUERY_EXPANSION = Counter("crag_query_expansion_total", "CRAG queries that used query expansion")
LLM_TOKENS = Counter("crag_llm_tokens_total", "Total language model tokens used", ["kind"])


class PrometheusMetricsSink:
    def record_crag_query(self, duration_ms: int, category: str, retries: int, used_expansion: bool) -> None:
        try:
            CRAG_QUERY_LATENCY.observe(float(duration_ms))
            CRAG_CONFIDENCE.labels(category=category.lower()).inc()
            if retries > 0:
                CRAG_RETRIES.inc(retries)
            if used_expansion:
                CRAG_QUERY_EXPANSION.inc()
        except Exception as e:
            # Metrics must never fail the query that produced them.
            log.warning("metrics.record_failed", error=str(e))


class NullMetricsSink:
    def record_crag_query(self, duration_ms: int, category: str, retries: int, used_expansion: bool) -> None:
        return None
