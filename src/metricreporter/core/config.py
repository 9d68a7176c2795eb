from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from metricreporter.metrics.tags import Tags


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="metric-reporter", alias="APP_NAME")

    metrics_prefix: str = Field(default="", alias="METRICS_PREFIX")
    metrics_global_tags: dict[str, str] = Field(default_factory=dict, alias="METRICS_GLOBAL_TAGS")
    metrics_backend: Literal["prometheus", "memory"] = Field(
        default="prometheus", alias="METRICS_BACKEND"
    )

    @field_validator("metrics_global_tags", mode="before")
    @classmethod
    def _stringify_tag_values(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        return value

    @property
    def global_tags(self) -> Tags:
        return Tags.of({"app": self.app_name}).and_(self.metrics_global_tags)


@lru_cache
def get_settings() -> Settings:
    return Settings()
