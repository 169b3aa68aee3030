"""Configuration Manager for handling application configuration and settings."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator

from ..constants import DEFAULT_DURATION_MINUTES
from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger

_ENV_REFERENCE = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "human"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    console_output: bool = True
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        """Create LoggingConfig from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


class InterviewConfig(BaseModel):
    """Interview planning and evaluation settings."""

    default_domain: str = Field(default="frontend", description="Template used when none is given")
    default_duration_minutes: int = Field(default=DEFAULT_DURATION_MINUTES, description="Duration used when none is given")
    context_window: int = Field(default=2, description="Recent turns passed to the evaluator")
    language: str = Field(default="en-US", description="Language passed to the listen primitive")
    max_dynamic_followups: Optional[int] = Field(default=None, description="Optional hard cap below the plan budget")

    @validator("default_duration_minutes")
    def validate_duration(cls, v):
        if v < 1:
            raise ValueError("default_duration_minutes must be at least 1")
        return v

    @validator("context_window")
    def validate_context_window(cls, v):
        if v < 0:
            raise ValueError("context_window cannot be negative")
        return v

    @validator("max_dynamic_followups")
    def validate_max_followups(cls, v):
        if v is not None and v < 0:
            raise ValueError("max_dynamic_followups cannot be negative")
        return v


class TimingConfig(BaseModel):
    """Turn-taking timers, all in seconds."""

    response_timeout: float = Field(default=12.0, description="Wait for an utterance before the grace period")
    thinking_grace: float = Field(default=20.0, description="Grace period after the first silence")
    default_thinking_extension: float = Field(default=20.0, description="Extra wait when the candidate is thinking")
    max_thinking_extension: float = Field(default=60.0, description="Total extra wait allowed per question")
    long_pause_threshold: float = Field(default=5.0, description="Thinking time that counts as a long pause")
    next_question_delay: float = Field(default=1.2, description="Pause between acknowledgment and next question")
    ready_resume_delay: float = Field(default=1.0, description="Pause before listening again after 'ready'")
    advisor_timeout: float = Field(default=15.0, description="Timeout for a single advisor call")

    @validator(
        "response_timeout",
        "thinking_grace",
        "default_thinking_extension",
        "max_thinking_extension",
        "long_pause_threshold",
        "next_question_delay",
        "ready_resume_delay",
        "advisor_timeout",
    )
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("Timing values cannot be negative")
        return v


class LLMProviderConfig(BaseModel):
    """LLM Provider configuration model."""

    name: str = Field(..., description="Provider name")
    enabled: bool = Field(default=True, description="Whether provider is enabled")
    api_key: str = Field(..., description="API key for the provider")
    base_url: Optional[str] = Field(default=None, description="Base URL for API calls")
    model: str = Field(..., description="Model name to use")
    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_tokens: int = Field(default=1000, description="Maximum tokens for responses")
    temperature: float = Field(default=0.3, description="Temperature for generation")
    retries: int = Field(default=3, description="Number of retry attempts")
    rate_limit: int = Field(default=60, description="Requests per minute")

    @validator("temperature")
    def validate_temperature(cls, v):
        if not 0.0 <= v <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v

    @validator("timeout")
    def validate_timeout(cls, v):
        if v < 1:
            raise ValueError("Timeout must be at least 1 second")
        return v


class AppConfig(BaseModel):
    """Main application configuration model."""

    app_name: str = Field(default="Voice Interviewer", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment")

    interview: InterviewConfig = Field(default_factory=InterviewConfig, description="Interview settings")
    timing: TimingConfig = Field(default_factory=TimingConfig, description="Turn-taking timers")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")

    llm_providers: List[LLMProviderConfig] = Field(default_factory=list, description="LLM provider configurations")

    class Config:
        validate_assignment = True


class ConfigurationManager:
    """Manages application configuration and settings."""

    def __init__(self, config_path: str = "config", env_file: str = ".env"):
        """Initialize the configuration manager.

        Args:
            config_path: Path to configuration directory.
            env_file: Path to environment file.
        """
        self.config_path = Path(config_path)
        self.env_file = Path(env_file)
        self.config: Optional[AppConfig] = None
        self.logger = get_logger("configuration_manager")
        self._default_config = AppConfig()

    def initialize(self) -> None:
        """Load environment, configuration files and validate the result."""
        try:
            self._load_environment_variables()
            self._load_configuration_files()
            self._validate_configuration()
            self.logger.info("ConfigurationManager initialized successfully")
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to initialize ConfigurationManager: {str(e)}")
            raise ConfigurationError(f"Configuration initialization failed: {str(e)}")

    def _load_environment_variables(self) -> None:
        """Load environment variables from .env file."""
        try:
            if self.env_file.exists():
                load_dotenv(self.env_file)
                self.logger.info(f"Loaded environment variables from {self.env_file}")
            os.environ.setdefault("ENVIRONMENT", "development")
        except Exception as e:
            self.logger.warning(f"Failed to load environment variables: {str(e)}")

    def _load_configuration_files(self) -> None:
        """Load configuration from YAML files, falling back to defaults on failure."""
        try:
            config_data = self._default_config.model_dump()

            main_config_file = self.config_path / "config.yaml"
            if main_config_file.exists():
                config_data = self._merge_file_config(self._load_yaml_file(main_config_file), config_data)
                self.logger.info(f"Loaded main configuration from {main_config_file}")

            environment = os.getenv("ENVIRONMENT", "development")
            env_config_file = self.config_path / f"config.{environment}.yaml"
            if env_config_file.exists():
                config_data = self._merge_file_config(self._load_yaml_file(env_config_file), config_data)
                self.logger.info(f"Loaded environment configuration from {env_config_file}")

            providers_file = self.config_path / "providers.yaml"
            if providers_file.exists():
                config_data["llm_providers"] = self._load_providers(providers_file)
            else:
                self.logger.debug(f"Providers configuration file not found: {providers_file}")

            self.config = AppConfig.model_validate(config_data)

        except Exception as e:
            self.logger.error(f"Failed to load configuration files: {str(e)}")
            self.config = self._default_config
            self.logger.warning("Using default configuration due to load failure")

    def _load_providers(self, providers_file: Path) -> List[LLMProviderConfig]:
        providers_config = self._load_yaml_file(providers_file)
        if "providers" not in providers_config:
            self.logger.warning("No 'providers' section found in providers.yaml")
            return []

        llm_providers = []
        for name, provider_data in (providers_config["providers"] or {}).items():
            if not provider_data.get("enabled", False):
                continue

            api_key = self._resolve_env_reference(provider_data.get("api_key", ""))
            if not api_key:
                self.logger.warning(f"No API key available for provider {name}; skipping it")
                continue

            llm_providers.append(LLMProviderConfig(
                name=name,
                enabled=True,
                api_key=api_key,
                base_url=provider_data.get("base_url"),
                model=provider_data.get("model", "gpt-4o-mini"),
                timeout=provider_data.get("timeout", 30),
                max_tokens=provider_data.get("max_tokens", 1000),
                temperature=provider_data.get("temperature", 0.3),
                retries=provider_data.get("retries", 3),
                rate_limit=provider_data.get("rate_limit", 60),
            ))

        self.logger.info(f"Loaded {len(llm_providers)} enabled LLM providers from {providers_file}")
        return llm_providers

    def _resolve_env_reference(self, value: Any) -> str:
        """Substitute a ``${VAR}`` reference with the environment value."""
        if not isinstance(value, str):
            return ""
        match = _ENV_REFERENCE.match(value.strip())
        if match:
            resolved = os.getenv(match.group(1), "")
            if not resolved:
                self.logger.warning(f"Environment variable {match.group(1)} not set")
            return resolved
        return value

    def _merge_file_config(self, file_config: Dict[str, Any], nested_config: Dict[str, Any]) -> Dict[str, Any]:
        """Map the YAML file layout onto the AppConfig structure.

        Args:
            file_config: Configuration loaded from a YAML file
            nested_config: Current AppConfig data

        Returns:
            Updated configuration data
        """
        if "app" in file_config:
            app = file_config["app"] or {}
            nested_config["app_name"] = app.get("name", nested_config["app_name"])
            nested_config["version"] = app.get("version", nested_config["version"])
            nested_config["debug"] = app.get("debug", nested_config["debug"])
            nested_config["environment"] = app.get("environment", nested_config["environment"])

        for section in ("interview", "timing"):
            if isinstance(file_config.get(section), dict):
                nested_config[section].update(file_config[section])

        if "logging" in file_config:
            logging_section = file_config["logging"] or {}
            nested_config["logging"]["level"] = logging_section.get("level", nested_config["logging"]["level"])
            nested_config["logging"]["format"] = logging_section.get("format", nested_config["logging"]["format"])
            nested_config["logging"]["file_path"] = logging_section.get("file", nested_config["logging"]["file_path"])
            nested_config["logging"]["max_file_size"] = logging_section.get("max_size_mb", 10) * 1024 * 1024
            nested_config["logging"]["backup_count"] = logging_section.get("backup_count", nested_config["logging"]["backup_count"])
            nested_config["logging"]["file_output"] = logging_section.get("file") is not None

        return nested_config

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML file content.

        Args:
            file_path: Path to YAML file.

        Returns:
            Dictionary containing file content.
        """
        try:
            with open(file_path, "r") as f:
                content = f.read()
            return yaml.safe_load(content) or {}
        except Exception as e:
            self.logger.error(f"Failed to load YAML file {file_path}: {str(e)}")
            return {}

    def _validate_configuration(self) -> None:
        """Validate the loaded configuration."""
        if not self.config:
            raise ConfigurationError("Configuration not loaded")

        if not self.config.llm_providers:
            self.logger.info("No LLM providers configured; running with heuristic evaluation")

        timing = self.config.timing
        if timing.response_timeout <= 0:
            raise ConfigurationError(
                "response_timeout must be positive", config_key="timing.response_timeout"
            )
        if timing.thinking_grace <= 0:
            raise ConfigurationError(
                "thinking_grace must be positive", config_key="timing.thinking_grace"
            )

    def get_config(self) -> AppConfig:
        """Get the current configuration.

        Returns:
            Current application configuration.

        Raises:
            ConfigurationError: If configuration is not loaded.
        """
        if not self.config:
            raise ConfigurationError("Configuration not loaded")
        return self.config

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a specific configuration setting.

        Args:
            key: Configuration key (dot notation supported).
            default: Default value if key not found.

        Returns:
            Configuration value.
        """
        if not self.config:
            return default

        value: Any = self.config
        for k in key.split("."):
            if hasattr(value, k):
                value = getattr(value, k)
            elif isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_enabled_llm_providers(self) -> List[LLMProviderConfig]:
        if not self.config:
            return []
        return [p for p in self.config.llm_providers if p.enabled]

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration as keyword arguments for setup_logging."""
        if not self.config:
            return {"level": "INFO", "structured": False}

        logging_config = self.config.logging
        return {
            "level": logging_config.level,
            "log_file": logging_config.file_path,
            "enable_console": logging_config.console_output,
            "enable_file": logging_config.file_output,
            "structured": logging_config.format == "json",
            "max_file_size": logging_config.max_file_size,
            "backup_count": logging_config.backup_count,
        }

    def get_configuration_summary(self) -> Dict[str, Any]:
        if not self.config:
            return {"error": "Configuration not loaded"}

        return {
            "app_name": self.config.app_name,
            "version": self.config.version,
            "environment": self.config.environment,
            "debug": self.config.debug,
            "interview": self.config.interview.model_dump(),
            "timing": self.config.timing.model_dump(),
            "llm_providers": {
                p.name: {"enabled": p.enabled, "model": p.model, "timeout": p.timeout}
                for p in self.config.llm_providers
            },
        }
