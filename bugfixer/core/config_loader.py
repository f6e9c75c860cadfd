"""Configuration loader for the bug fixer

Resolves one immutable FixConfig and CIConfig before any component runs.
Precedence: explicit overrides > environment > YAML file > preset > defaults.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from bugfixer.core.errors import ConfigError
from bugfixer.core.test_output import DEFAULT_SOURCE_EXTENSIONS
from bugfixer.core.validation import CISettings, ConfigFile, FixerSettings, validate_config_data


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Preset:
    name: str
    model: str
    max_tokens: int
    temperature: float
    description: str


PRESETS: Dict[str, Preset] = {
    "quick": Preset("quick", "gpt-4o-mini", 1500, 0.3, "Fast fixes for simple bugs"),
    "thorough": Preset("thorough", "gpt-4o-mini", 3000, 0.2, "Comprehensive analysis with detailed fixes"),
    "security": Preset("security", "gpt-4o", 4000, 0.1, "Security-focused fixes with strict validation"),
    "performance": Preset("performance", "gpt-4o", 3500, 0.2, "Performance optimization and efficiency fixes"),
}
DEFAULT_PRESET = "quick"


def available_presets() -> List[str]:
    return list(PRESETS)


def get_preset(name: Optional[str]) -> Preset:
    """Look up a preset, falling back to the default for unknown names"""
    if name is None:
        return PRESETS[DEFAULT_PRESET]
    preset = PRESETS.get(name)
    if preset is None:
        logger.warning(f"Unknown preset: {name}, using '{DEFAULT_PRESET}' instead")
        return PRESETS[DEFAULT_PRESET]
    return preset


@dataclass(frozen=True)
class FixConfig:
    preset: str = DEFAULT_PRESET
    model: str = "gpt-4o-mini"
    provider: str = "openai"
    max_tokens: int = 1500
    temperature: float = 0.3
    test_command: str = "npm test"
    test_timeout: float = 300.0
    llm_timeout: float = 120.0
    safety_level: str = "moderate"
    daily_limit: float = 10.0
    per_operation_limit: float = 2.0
    cost_warning_threshold: float = 1.0
    skip_patterns: Tuple[str, ...] = ()

    def is_skipped(self, filename: str) -> bool:
        """Check whether a file matches one of the skip patterns"""
        normalized = filename[2:] if filename.startswith("./") else filename
        return any(
            fnmatch.fnmatch(normalized, pattern) or fnmatch.fnmatch(Path(normalized).name, pattern)
            for pattern in self.skip_patterns
        )


@dataclass(frozen=True)
class CIConfig:
    fix: FixConfig = FixConfig()
    max_retries: int = 3
    auto_commit: bool = True
    auto_push: bool = False
    commit_message: str = "Auto-fix: Resolve test failures"
    default_file: Optional[str] = None
    source_extensions: Tuple[str, ...] = DEFAULT_SOURCE_EXTENSIONS
    git_user_name: str = "Auto Bug Fixer"
    git_user_email: str = "action@github.com"


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# (env var, section, key, parser)
ENV_OVERRIDES: List[Tuple[str, str, str, Callable[[str], Any]]] = [
    ("BUGFIXER_PRESET", "fixer", "preset", str),
    ("BUGFIXER_MODEL", "fixer", "model", str),
    ("BUGFIXER_PROVIDER", "fixer", "provider", str),
    ("BUGFIXER_TEST_COMMAND", "fixer", "test_command", str),
    ("BUGFIXER_DAILY_LIMIT", "fixer", "daily_limit", float),
    ("BUGFIXER_MAX_RETRIES", "ci", "max_retries", int),
    ("BUGFIXER_AUTO_PUSH", "ci", "auto_push", _parse_bool),
]


class FixerConfig:
    """Loads the YAML configuration file and resolves typed configs"""

    DEFAULT_CONFIG_PATH = ".bugfixer.yaml"
    CONFIG_PATH_ENV = "BUGFIXER_CONFIG_PATH"

    def __init__(self, config_path: str | Path | None = None):
        """Load configuration with environment variable support

        Args:
            config_path: Path to config file (default: .bugfixer.yaml or BUGFIXER_CONFIG_PATH env var)

        Raises:
            ConfigError: If an explicitly named file is missing or the file is invalid
        """
        explicit = config_path or os.getenv(self.CONFIG_PATH_ENV)
        self.config_path = Path(explicit or self.DEFAULT_CONFIG_PATH)
        self._file = self._load_file(required=bool(explicit))
        self._env = self._read_env()

    def _load_file(self, required: bool) -> ConfigFile:
        if not self.config_path.exists():
            if required:
                raise ConfigError(f"Config file not found: {self.config_path}")
            logger.debug(f"No config file at {self.config_path}, using defaults")
            return ConfigFile()

        try:
            with open(self.config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a mapping")

        try:
            parsed = validate_config_data(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {self.config_path}: {e}") from e

        logger.info(f"Loaded configuration from {self.config_path}")
        return parsed

    def _read_env(self) -> Dict[str, Dict[str, Any]]:
        env: Dict[str, Dict[str, Any]] = {"fixer": {}, "ci": {}}
        for var, section, key, parser in ENV_OVERRIDES:
            raw = os.getenv(var)
            if raw is None or raw == "":
                continue
            try:
                env[section][key] = parser(raw)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {var}: {e}") from e
        return env

    @property
    def file_settings(self) -> ConfigFile:
        return self._file

    def fix_config(self, **overrides: Any) -> FixConfig:
        """
        Resolve the fix configuration

        Args:
            **overrides: Explicit values; None entries are ignored

        Returns:
            Fully populated FixConfig
        """
        file_values = self._file.fixer.model_dump(exclude_none=True)
        env_values = self._env["fixer"]
        explicit = {k: v for k, v in overrides.items() if v is not None}

        preset_name = explicit.get("preset") or env_values.get("preset") or file_values.get("preset")
        preset = get_preset(preset_name)

        merged: Dict[str, Any] = {
            "model": preset.model,
            "max_tokens": preset.max_tokens,
            "temperature": preset.temperature,
        }
        merged.update(file_values)
        merged.update(env_values)
        merged.update(explicit)
        merged["preset"] = preset.name

        try:
            settings = FixerSettings.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid fixer configuration: {e}") from e

        values = settings.model_dump(exclude_none=True)
        if "skip_patterns" in values:
            values["skip_patterns"] = tuple(values["skip_patterns"])
        return FixConfig(**_known(FixConfig, values))

    def ci_config(self, fix: Optional[FixConfig] = None, **overrides: Any) -> CIConfig:
        """
        Resolve the CI configuration

        Args:
            fix: Fix configuration to embed (resolved from defaults if None)
            **overrides: Explicit values; None entries are ignored

        Returns:
            Fully populated CIConfig
        """
        merged: Dict[str, Any] = self._file.ci.model_dump(exclude_none=True)
        merged.update(self._env["ci"])
        merged.update({k: v for k, v in overrides.items() if v is not None})

        try:
            settings = CISettings.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid CI configuration: {e}") from e

        values = settings.model_dump(exclude_none=True)
        if "source_extensions" in values:
            values["source_extensions"] = tuple(ext.lstrip(".") for ext in values["source_extensions"])
        return CIConfig(fix=fix or self.fix_config(), **_known(CIConfig, values))


def _known(cls: type, values: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in values.items() if k in names}


def load_config(config_path: str | Path | None = None) -> FixerConfig:
    """Convenience function to load bug fixer configuration

    Args:
        config_path: Path to config file (default: .bugfixer.yaml or BUGFIXER_CONFIG_PATH env var)

    Returns:
        FixerConfig instance
    """
    return FixerConfig(config_path)


def resolve_fix_config(config_path: str | Path | None = None, **overrides: Any) -> FixConfig:
    return load_config(config_path).fix_config(**overrides)


def resolve_ci_config(config_path: str | Path | None = None, **overrides: Any) -> CIConfig:
    loader = load_config(config_path)
    fix_keys = {f.name for f in fields(FixConfig)}
    fix_overrides = {k: v for k, v in overrides.items() if k in fix_keys}
    ci_overrides = {k: v for k, v in overrides.items() if k not in fix_keys}
    return loader.ci_config(fix=loader.fix_config(**fix_overrides), **ci_overrides)
