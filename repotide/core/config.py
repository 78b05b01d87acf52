from .defaults import (
    DEFAULT_BASE_URL, DEFAULT_CONNECTIVITY_TTL, DEFAULT_ENCODING, DEFAULT_MAX_RETRIES,
    DEFAULT_MODEL, DEFAULT_RETRY_DELAY, DEFAULT_STORAGE_PATH, FALLBACK_MODELS,
    REQUIRED_MODELS, TASK_DEFAULT_MODELS, WORKFLOW_DEFAULT_MODELS
)
from .models import ContextBudget

from pydantic import BaseModel, Field, NonNegativeFloat, PositiveFloat, PositiveInt, field_validator
from typing import Dict, List, Optional, Union
from pathlib import Path
import yaml
import os

API_KEY_ENV_VARS = ("REPOTIDE_API_KEY", "OPENROUTER_API_KEY")


class RetrySettings(BaseModel):
    max_retries: PositiveInt = DEFAULT_MAX_RETRIES
    retry_delay: NonNegativeFloat = DEFAULT_RETRY_DELAY


class RepoTideConfig(BaseModel):
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    github_token: Optional[str] = None
    storage_path: Path = DEFAULT_STORAGE_PATH
    clone_timeout: Optional[PositiveFloat] = None
    default_model: str = DEFAULT_MODEL
    required_models: List[str] = Field(default_factory=lambda: list(REQUIRED_MODELS))
    fallback_models: List[str] = Field(default_factory=lambda: list(FALLBACK_MODELS))
    task_models: Dict[str, str] = Field(default_factory=lambda: dict(TASK_DEFAULT_MODELS))
    workflow_models: Dict[str, str] = Field(default_factory=lambda: dict(WORKFLOW_DEFAULT_MODELS))
    connectivity_ttl: PositiveFloat = DEFAULT_CONNECTIVITY_TTL
    retry: RetrySettings = Field(default_factory=RetrySettings)
    budget: ContextBudget = Field(default_factory=ContextBudget)

    @field_validator("storage_path", mode="before")
    @classmethod
    def expand_storage_path(cls, storage_path: Union[str, Path]) -> Path:
        return Path(os.path.expanduser(str(storage_path)))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RepoTideConfig":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"{path} is not a valid path")

        with open(path, "r", encoding=DEFAULT_ENCODING) as _file:
            data = yaml.safe_load(_file) or {}

        # a config file may nest everything under a `repotide` key
        data = data.get("repotide", data)
        config = cls(**data)
        return config.with_env_secrets()

    @classmethod
    def from_env(cls) -> "RepoTideConfig":
        kwargs = {}
        if base_url := os.getenv("REPOTIDE_BASE_URL"):
            kwargs["base_url"] = base_url
        if storage_path := os.getenv("REPOTIDE_STORAGE_PATH"):
            kwargs["storage_path"] = storage_path
        if default_model := os.getenv("REPOTIDE_DEFAULT_MODEL"):
            kwargs["default_model"] = default_model
        return cls(**kwargs).with_env_secrets()

    def with_env_secrets(self) -> "RepoTideConfig":
        """Fills credentials missing from the config with environment variables"""
        update = {}
        if not self.api_key:
            update["api_key"] = next((os.getenv(var) for var in API_KEY_ENV_VARS if os.getenv(var)), None)
        if not self.github_token:
            update["github_token"] = os.getenv("GITHUB_TOKEN")
        return self.model_copy(update=update)
