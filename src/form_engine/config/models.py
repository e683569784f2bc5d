"""Pydantic models for engine configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class EngineConfig(BaseModel):
    """Engine configuration from form-engine.toml."""

    forms_path: str = "forms.json"
    submissions_path: str = "submissions.json"
    default_label: str = "New Field"
    default_options: list[str] = Field(default_factory=lambda: ["Option 1", "Option 2"])
    log_level: str = "WARNING"
