from __future__ import annotations

from crag.orchestrator import CorrectiveOrchestrator
from crag.protocols import LanguageModelClient, MetricsSink, RetrievalBackend
from monitoring.metrics import NullMetricsSink, PrometheusMetricsSink
from utils.openai_client import OpenAILanguageModel
from utils.settings import Settings


def build_metrics_sink(settings: Settings) -> MetricsSink:
    if settings.monitoring.prometheus.enabled:
        return PrometheusMetricsSink()
    return NullMetricsSink()


def build_orchestrator(
    settings: Settings,
    backend: RetrievalBackend,
    llm: LanguageModelClient | None = None,
    metrics: MetricsSink | None = None,
) -> CorrectiveOrchestrator:
    return CorrectiveOrchestrator(
        settings.crag,
        backend,
        llm or OpenAILanguageModel.from_config(settings.llm),
        metrics or build_metrics_sink(settings),
        generation=settings.generation,
    )
