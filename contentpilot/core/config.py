"""Configuration loader for ContentPilot.

Loads config from a YAML cascade: config/default.yaml is always loaded,
then environment-specific overrides, then environment variables. Provider
descriptors live in config/providers.yaml.
"""

from __future__ import annotations

import enum
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from contentpilot.core.exceptions import ConfigError

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


# ---------------------------------------------------------------------------
# Config schema
# ---------------------------------------------------------------------------

class LLMConfig(BaseModel):
    default_temperature: float = 0.7
    default_max_tokens: int = 2000
    timeout_seconds: float = 60.0


class DispatcherConfig(BaseModel):
    max_degradation_attempts: int = 3


class ContextConfig(BaseModel):
    recency_half_life_days: float = 180.0
    min_recency_factor: float = 0.05
    truncation_marker: str = "[... content truncated ...]"
    strategy_overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)


class QualityGateConfig(BaseModel):
    pass_threshold: int = 70
    critical_penalty: int = 25
    major_penalty: int = 15
    minor_penalty: int = 5
    warning_penalty: int = 2
    max_retries: int = 2
    creative_temperature: float = 0.7
    conservative_temperature: float = 0.5
    max_tokens: int = 2500
    banned_placeholders: list[str] = Field(
        default_factory=lambda: ["[placeholder]", "[todo]", "[tbd]", "lorem ipsum", "{{", "}}"]
    )


class OrchestratorConfig(BaseModel):
    max_concurrency: int = 1
    run_deadline_seconds: Optional[float] = None


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class TokenTrackingConfig(BaseModel):
    enabled: bool = True
    jsonl_path: Optional[str] = None


class AppConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    dispatcher: DispatcherConfig = Field(default_factory=DispatcherConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    quality: QualityGateConfig = Field(default_factory=QualityGateConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    token_tracking: TokenTrackingConfig = Field(default_factory=TokenTrackingConfig)


# ---------------------------------------------------------------------------
# Provider registry (providers.yaml)
# ---------------------------------------------------------------------------

class ProviderKind(str, enum.Enum):
    COST_OPTIMIZED = "cost_optimized"
    QUALITY_FALLBACK = "quality_fallback"
    OFFLINE_STUB = "offline_stub"


class ProviderDescriptor(BaseModel):
    """Static description of one backend in the degradation chain."""

    name: str
    kind: ProviderKind
    priority: int = 100
    credentials_ref: Optional[str] = None  # environment variable holding the API key
    endpoint_ref: Optional[str] = None     # base URL of an OpenAI-compatible API
    model: Optional[str] = None
    enabled: bool = True
    timeout_seconds: float = 60.0

    def resolve_api_key(self) -> str:
        if not self.credentials_ref:
            return ""
        return os.getenv(self.credentials_ref, "")


class ProviderRegistry(BaseModel):
    """Ordered provider descriptors supplied at startup."""

    providers: list[ProviderDescriptor] = Field(default_factory=list)

    def ordered(self) -> list[ProviderDescriptor]:
        return sorted(self.providers, key=lambda d: d.priority)

    def get(self, name: str) -> ProviderDescriptor:
        for descriptor in self.providers:
            if descriptor.name == name:
                return descriptor
        raise ConfigError(f"No provider named '{name}'. Update config/providers.yaml.")

    @classmethod
    def offline_only(cls) -> "ProviderRegistry":
        return cls(providers=[
            ProviderDescriptor(name="offline", kind=ProviderKind.OFFLINE_STUB, priority=1000),
        ])


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def _apply_env_overrides(merged: dict[str, Any]) -> dict[str, Any]:
    level = os.getenv("CONTENTPILOT_LOG_LEVEL")
    if level:
        merged.setdefault("logging", {})["level"] = level

    concurrency = os.getenv("CONTENTPILOT_MAX_CONCURRENCY")
    if concurrency:
        try:
            merged.setdefault("orchestrator", {})["max_concurrency"] = int(concurrency)
        except ValueError as e:
            raise ConfigError(f"CONTENTPILOT_MAX_CONCURRENCY must be an integer: {concurrency!r}") from e

    deadline = os.getenv("CONTENTPILOT_RUN_DEADLINE_SECONDS")
    if deadline:
        try:
            merged.setdefault("orchestrator", {})["run_deadline_seconds"] = float(deadline)
        except ValueError as e:
            raise ConfigError(
                f"CONTENTPILOT_RUN_DEADLINE_SECONDS must be a number: {deadline!r}"
            ) from e
    return merged


def load_config(
    config_dir: Optional[Path] = None,
    env: Optional[str] = None,
) -> AppConfig:
    """Load application config from YAML cascade.

    Order: default.yaml -> {env}.yaml -> CONTENTPILOT_* env vars
    """
    if config_dir is None:
        config_dir = DEFAULT_CONFIG_DIR

    merged = _load_yaml(config_dir / "default.yaml")

    env = env or os.getenv("CONTENTPILOT_ENV")
    if env:
        overlay = _load_yaml(config_dir / f"{env}.yaml")
        merged = _deep_merge(merged, overlay)

    merged = _apply_env_overrides(merged)

    try:
        return AppConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_dir}: {e}") from e


def load_provider_registry(config_dir: Optional[Path] = None) -> ProviderRegistry:
    """Load the provider degradation chain from providers.yaml.

    Falls back to a single offline stub when no file is present so the
    pipeline always has a usable backend.
    """
    if config_dir is None:
        config_dir = DEFAULT_CONFIG_DIR

    data = _load_yaml(config_dir / "providers.yaml")
    if not data.get("providers"):
        return ProviderRegistry.offline_only()
    try:
        return ProviderRegistry(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid provider configuration: {e}") from e


# ---------------------------------------------------------------------------
# Prompt loader
# ---------------------------------------------------------------------------

class PromptLoader:
    """Loads prompt templates from config/prompts/ directory.

    Falls back to hardcoded defaults if the file doesn't exist, allowing
    prompt iteration without code changes.
    """

    def __init__(self, prompts_dir: Optional[Path] = None):
        if prompts_dir is None:
            prompts_dir = DEFAULT_CONFIG_DIR / "prompts"
        self.prompts_dir = prompts_dir

    def load(self, name: str, default: str = "") -> str:
        """Load a prompt template by filename.

        Args:
            name: Filename within config/prompts/ (e.g. "generation_system.txt").
            default: Fallback text if file doesn't exist.

        Returns:
            Prompt text (stripped of leading/trailing whitespace).
        """
        path = self.prompts_dir / name
        if path.exists():
            return path.read_text().strip()
        return default
