"""Engine settings: scoring weights, windows, source and concurrency options."""

import os
from pathlib import Path
from typing import Optional

try:
    import yaml
except ModuleNotFoundError as e:
    raise ModuleNotFoundError(
        "PyYAML is required for settings loading. Run: poetry install"
    ) from e
from pydantic import BaseModel, Field, model_validator


class ScoringWeights(BaseModel):
    """Engagement score constants. Each term is clamped to its own maximum."""

    active_window_days: int = Field(default=30, gt=0)
    cooling_window_days: int = Field(default=90, gt=0)

    recency_max: float = 40.0
    recency_window_days: float = Field(default=90.0, gt=0)
    volume_per_interaction: float = 5.0
    volume_max: float = 25.0
    pipeline_per_opportunity: float = 4.0
    pipeline_max: float = 20.0
    breadth_per_relationship: float = 3.0
    breadth_max: float = 15.0

    medium_tier_min: int = Field(default=40, description="Scores below this are LOW")
    high_tier_min: int = Field(default=71, description="Scores at or above this are HIGH")

    @model_validator(mode="after")
    def _check_windows(self) -> "ScoringWeights":
        if self.active_window_days > self.cooling_window_days:
            raise ValueError("active_window_days must not exceed cooling_window_days")
        if self.medium_tier_min > self.high_tier_min:
            raise ValueError("medium_tier_min must not exceed high_tier_min")
        return self


class EngineSettings(BaseModel):
    """Top-level settings. Loadable from YAML; environment variables override."""

    source: str = Field(default="sqlite", description="sqlite | rest")
    db_path: Path = Path("principal_activity.db")
    rest_url: Optional[str] = None
    rest_api_key: Optional[str] = None

    source_timeout_seconds: Optional[float] = Field(
        default=10.0,
        description="Deadline for one principal's aggregation; None disables it",
    )
    retry_backoff_seconds: float = Field(default=0.25, ge=0)
    max_concurrency: int = Field(default=8, gt=0)
    default_top_n: int = Field(default=10, ge=0)
    tolerate_partial_failures: bool = False

    weights: ScoringWeights = Field(default_factory=ScoringWeights)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "EngineSettings":
        """Load settings from YAML. Supports a nested `scoring` block or flat weight keys."""
        data = yaml.safe_load(Path(path).read_text()) or {}
        weight_keys = set(ScoringWeights.model_fields)
        weights = dict(data.pop("scoring", None) or data.pop("weights", None) or {})
        for key in list(data):
            if key in weight_keys:
                weights[key] = data.pop(key)
        data["weights"] = weights
        return cls.model_validate(data).with_env_overrides()

    def with_env_overrides(self) -> "EngineSettings":
        """Return a copy with PRINCIPAL_ACTIVITY_* environment variables applied."""
        update: dict = {}
        source = os.environ.get("PRINCIPAL_ACTIVITY_SOURCE")
        if source:
            update["source"] = source.strip().lower()
        db_path = os.environ.get("PRINCIPAL_ACTIVITY_DB")
        if db_path:
            update["db_path"] = Path(db_path)
        rest_url = os.environ.get("PRINCIPAL_ACTIVITY_REST_URL")
        if rest_url:
            update["rest_url"] = rest_url
        rest_key = os.environ.get("PRINCIPAL_ACTIVITY_REST_KEY")
        if rest_key:
            update["rest_api_key"] = rest_key
        return self.model_copy(update=update) if update else self
