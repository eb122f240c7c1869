from __future__ import annotations

import os
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    CACHING_DUPLICATE_THRESHOLD,
    CHEAPER_MODEL_ACCURACY_THRESHOLD,
    CHEAPER_MODEL_COST_THRESHOLD,
    CONFIDENCE_SATURATION,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_HISTORY_LOAD_LIMIT,
    DEFAULT_RETRY_BASE_DELAY,
    MIN_EXECUTIONS_FOR_CONFIG,
    MIN_EXECUTIONS_FOR_OPTIMIZATION,
    PARALLELIZE_DURATION_THRESHOLD_MS,
)


class EndpointConfig(BaseModel):
    """Paths of the remote step functions, relative to ``base_url``."""

    extract: str = "/functions/v1/extract-data"
    summarize: str = "/functions/v1/summarization-executor"
    custom: str = "/functions/v1/execute-workflow"


class CollaboratorConfig(BaseModel):
    """Configuration for the step collaborators."""

    backend: Literal["inmemory", "http"] = "inmemory"
    base_url: str = "http://localhost:54321"
    api_key: Optional[str] = None
    timeout: float = 30.0
    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)
    headers: Dict[str, str] = Field(default_factory=dict)


class HistoryConfig(BaseModel):
    limit: int = DEFAULT_HISTORY_LIMIT
    load_limit: int = DEFAULT_HISTORY_LOAD_LIMIT


class LearningConfig(BaseModel):
    """Thresholds used when mining execution history."""

    min_executions_for_config: int = MIN_EXECUTIONS_FOR_CONFIG
    min_executions_for_optimization: int = MIN_EXECUTIONS_FOR_OPTIMIZATION
    confidence_saturation: int = CONFIDENCE_SATURATION
    parallelize_duration_ms: float = PARALLELIZE_DURATION_THRESHOLD_MS
    cheaper_model_accuracy: float = CHEAPER_MODEL_ACCURACY_THRESHOLD
    cheaper_model_cost: float = CHEAPER_MODEL_COST_THRESHOLD
    caching_duplicate_fraction: float = CACHING_DUPLICATE_THRESHOLD


class RetryConfig(BaseModel):
    base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY


class AdaptflowConfig(BaseModel):
    """Top-level configuration model."""

    collaborator: CollaboratorConfig = Field(default_factory=CollaboratorConfig)
    database_url: Optional[str] = None
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    learning: LearningConfig = Field(default_factory=LearningConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)


def load_config(path: Optional[str] = None) -> AdaptflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to ADAPTFLOW_CONFIG env
            variable or 'adaptflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("ADAPTFLOW_CONFIG", "adaptflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = AdaptflowConfig(**data)
    else:
        config = AdaptflowConfig()

    env_db_url = os.getenv("ADAPTFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    functions_url = os.getenv("ADAPTFLOW_FUNCTIONS_URL")
    if functions_url:
        config.collaborator.base_url = functions_url
        config.collaborator.backend = "http"
    api_key = os.getenv("ADAPTFLOW_API_KEY")
    if api_key:
        config.collaborator.api_key = api_key
    return config
