# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
flowrunner Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets (plus LOG_LEVEL).

- ALL configuration in plain text (YAML)
- Validated with Pydantic schemas before use
- NO hidden state - everything inspectable via `cat`
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from flowrunner.core.errors import ConfigurationError

DEFAULT_CONFIG_PATH = "configs/flowrunner.yaml"


# =============================================================================
# SCHEMAS
# =============================================================================

class LLMSettings(BaseModel):
    """AI completion settings"""
    model: str = Field(default="gpt-4o-mini", description="Chat completion model")
    max_tokens: int = Field(default=4096, gt=0, le=200000)
    timeout: float = Field(default=60.0, gt=0, le=3600)

    @field_validator('model')
    @classmethod
    def validate_model_name(cls, v):
        if not v or len(v) > 100:
            raise ValueError("Invalid model name length")
        if any(char in v for char in [';', '&', '|', '$', '`', '\n', '\r']):
            raise ValueError("Invalid characters in model name")
        return v


class ExecutionSettings(BaseModel):
    """Run coordinator settings"""
    parallel: bool = Field(default=False, description="Run independent branches concurrently")
    strict_templates: bool = Field(default=False, description="Fail on unresolved {{refs}}")


class StorageSettings(BaseModel):
    """Execution store settings"""
    backend: str = Field(default="memory")
    executions_dir: str = Field(default="volumes/executions")

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v):
        if v not in ['memory', 'file']:
            raise ValueError("Storage backend must be 'memory' or 'file'")
        return v

    @field_validator('executions_dir')
    @classmethod
    def validate_path(cls, v):
        if any(char in v for char in [';', '&', '|', '$', '`', '\n', '\r']):
            raise ValueError("Invalid characters in path")
        return v


class LoggingSettings(BaseModel):
    """Logging settings"""
    level: str = Field(default="INFO")
    format: str = Field(default="json")

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v not in ['json', 'text']:
            raise ValueError("Format must be 'json' or 'text'")
        return v


class FlowRunnerSettings(BaseModel):
    """Complete configuration file schema"""
    llm: LLMSettings = Field(default_factory=LLMSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- LLM --
    llm_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 4096
    llm_timeout: float = 60.0

    # -- Execution --
    parallel_execution: bool = False
    strict_templates: bool = False

    # -- Storage --
    storage_backend: str = "memory"
    executions_dir: str = "volumes/executions"

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_openai_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("OPENAI_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.

    Raises:
        ConfigurationError: If the file exists but is not valid YAML or fails
            schema validation
    """
    raw = {}
    if Path(path).exists():
        with open(path) as f:
            # safe_load: no YAML code execution
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in configuration: {e}", config_file=path)
        if not isinstance(raw, dict):
            raise ConfigurationError("Configuration must be a YAML mapping", config_file=path)

    try:
        settings = FlowRunnerSettings(**raw)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", config_file=path)

    return Config(
        llm_model=settings.llm.model,
        llm_max_tokens=settings.llm.max_tokens,
        llm_timeout=settings.llm.timeout,
        parallel_execution=settings.execution.parallel,
        strict_templates=settings.execution.strict_templates,
        storage_backend=settings.storage.backend,
        executions_dir=settings.storage.executions_dir,
        log_level=os.getenv("LOG_LEVEL", settings.logging.level),
        log_format=settings.logging.format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("FLOWRUNNER_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
