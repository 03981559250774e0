from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OpenAIConfig(BaseModel):
    model: str = "gpt-4o-mini"
    base_url: str | None = None
    api_key: str | None = None
    organization: str | None = None
    request_timeout_s: float = 30.0
    max_retries: int = Field(default=3, ge=1)


class GenerationConfig(BaseModel):
    temperature: float = 0.2
    max_output_tokens: int = 256


class CragConfig(BaseModel):
    """Corrective retrieval settings.

    Built once at startup and passed to the orchestrator. Immutable.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    query_expansion_enabled: bool = True
    knowledge_refinement_enabled: bool = True
    max_retry_attempts: int = Field(default=2, ge=0)
    min_relevance_for_answer: float = Field(default=0.7, ge=0.0, le=1.0)
    llm_evaluation_enabled: bool = False
    high_confidence_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    low_confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    score_gap_threshold: float = Field(default=0.15, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "CragConfig":
        if self.low_confidence_threshold > self.high_confidence_threshold:
            raise ValueError("crag.low_confidence_threshold must be <= crag.high_confidence_threshold")
        return self

    def stats(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "queryExpansionEnabled": self.query_expansion_enabled,
            "knowledgeRefinementEnabled": self.knowledge_refinement_enabled,
            "maxRetryAttempts": self.max_retry_attempts,
            "minRelevanceForAnswer": self.min_relevance_for_answer,
            "llmEvaluationEnabled": self.llm_evaluation_enabled,
            "highConfidenceThreshold": self.high_confidence_threshold,
            "lowConfidenceThreshold": self.low_confidence_threshold,
            "scoreGapThreshold": self.score_gap_threshold,
        }


class PrometheusConfig(BaseModel):
    enabled: bool = True


class MonitoringConfig(BaseModel):
    prometheus: PrometheusConfig = Field(default_factory=PrometheusConfig)


class AppConfig(BaseModel):
    name: str = "crag-engine"
    environment: str = "dev"
    log_level: str = "INFO"


class Settings(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    llm: OpenAIConfig = Field(default_factory=OpenAIConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    crag: CragConfig = Field(default_factory=CragConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
