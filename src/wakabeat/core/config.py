"""
wakabeat Configuration — loads and validates wakabeat.yaml
"""

import logging
import os
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from wakabeat.core.cooldown import DEFAULT_COOLDOWN_SECONDS, DEFAULT_RATE_LIMIT_BACKOFF_SECONDS
from wakabeat.core.project import DEFAULT_BRANCH, resolve_project
from wakabeat.core.transport import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECONDS
from wakabeat.types import ConfigSnapshot

logger = logging.getLogger("wakabeat.config")

API_KEY_ENV = "WAKATIME_API_KEY"


@dataclass
class ApiConfig:
    api_key: str = ""
    api_url: str = DEFAULT_API_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass
class PluginConfig:
    enabled: bool = True
    debug: bool = False


@dataclass
class ProjectConfig:
    # Explicit project name (None = .wakatime-project file, then directory name)
    name: Optional[str] = None
    branch: str = DEFAULT_BRANCH
    root: str = "."


@dataclass
class DispatchConfig:
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS
    rate_limit_backoff_seconds: float = DEFAULT_RATE_LIMIT_BACKOFF_SECONDS


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = "~/.wakabeat/logs/wakabeat.log"


@dataclass
class WatchConfig:
    paths: List[str] = field(default_factory=list)
    ignore_patterns: List[str] = field(default_factory=lambda: [
        ".git", "Library", "Temp", "Logs", "obj", "*.meta", "*~", "*.tmp",
    ])
    poll_interval_seconds: float = 1.0


@dataclass
class WakabeatConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    plugin: PluginConfig = field(default_factory=PluginConfig)
    project: ProjectConfig = field(default_factory=ProjectConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "WakabeatConfig":
        """Load config from YAML file, falling back to defaults."""
        if config_path is None:
            # Search order: ./wakabeat.yaml, ~/.wakabeat/wakabeat.yaml
            candidates = [
                Path("wakabeat.yaml"),
                Path("~/.wakabeat/wakabeat.yaml").expanduser(),
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = str(candidate)
                    break

        if config_path and Path(config_path).exists():
            cls._check_config_permissions(config_path)
            with open(config_path) as f:
                raw = yaml.safe_load(f) or {}
            return cls._from_dict(raw)

        config = cls()
        config.api.api_key = os.environ.get(API_KEY_ENV, "")
        config._validate()
        return config

    @classmethod
    def _from_dict(cls, data: dict) -> "WakabeatConfig":
        """Build config from dict, applying env var substitution."""
        config = cls()

        if "api" in data:
            a = data["api"] or {}
            config.api = ApiConfig(
                api_key=cls._resolve_env(a.get("api_key", config.api.api_key)) or "",
                api_url=cls._resolve_env(a.get("api_url", config.api.api_url), required=True),
                timeout_seconds=a.get("timeout_seconds", config.api.timeout_seconds),
            )
        if not config.api.api_key:
            config.api.api_key = os.environ.get(API_KEY_ENV, "")

        if "plugin" in data:
            p = data["plugin"] or {}
            config.plugin = PluginConfig(
                enabled=p.get("enabled", config.plugin.enabled),
                debug=p.get("debug", config.plugin.debug),
            )

        if "project" in data:
            pr = data["project"] or {}
            config.project = ProjectConfig(
                name=cls._resolve_env(pr.get("name", config.project.name)),
                branch=pr.get("branch", config.project.branch),
                root=pr.get("root", config.project.root),
            )

        if "dispatch" in data:
            d = data["dispatch"] or {}
            config.dispatch = DispatchConfig(
                cooldown_seconds=d.get("cooldown_seconds", config.dispatch.cooldown_seconds),
                rate_limit_backoff_seconds=d.get(
                    "rate_limit_backoff_seconds", config.dispatch.rate_limit_backoff_seconds
                ),
            )

        if "logging" in data:
            lg = data["logging"] or {}
            config.logging = LoggingConfig(
                level=lg.get("level", config.logging.level),
                file=lg.get("file", config.logging.file),
            )

        if "watch" in data:
            w = data["watch"] or {}
            config.watch = WatchConfig(
                paths=w.get("paths", config.watch.paths),
                ignore_patterns=w.get("ignore_patterns", config.watch.ignore_patterns),
                poll_interval_seconds=w.get("poll_interval_seconds", config.watch.poll_interval_seconds),
            )

        # Validate critical config
        config._validate()

        return config

    def _validate(self):
        """Validate config values."""
        errors = []

        if self.plugin.enabled and not self.api.api_key:
            logger.warning(
                "No api_key set, heartbeats will not be sent. "
                f"Set {API_KEY_ENV} or add api.api_key to wakabeat.yaml."
            )
        if not self.api.api_url.startswith(("http://", "https://")):
            errors.append(f"api.api_url must be an http(s) URL, got '{self.api.api_url}'")
        if self.api.timeout_seconds <= 0:
            errors.append("api.timeout_seconds must be positive")
        if self.dispatch.rate_limit_backoff_seconds < 0:
            errors.append("dispatch.rate_limit_backoff_seconds must be non-negative")
        if self.watch.poll_interval_seconds <= 0:
            errors.append("watch.poll_interval_seconds must be positive")
        if self.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"logging.level must be a logging level name, got '{self.logging.level}'")

        if errors:
            raise ValueError("Config validation errors:\n" + "\n".join(f"  - {e}" for e in errors))

    def snapshot(self) -> ConfigSnapshot:
        """Freeze the settings the dispatcher needs, resolving the project name."""
        name, branch = resolve_project(
            Path(self.project.root).expanduser(),
            override=self.project.name,
            default_branch=self.project.branch,
        )
        return ConfigSnapshot(
            api_key=self.api.api_key,
            enabled=self.plugin.enabled,
            debug=self.plugin.debug,
            project_name=name,
            branch=branch,
        )

    @classmethod
    def _resolve_env(cls, value: str, required: bool = False) -> str:
        """Replace ${ENV_VAR} patterns with environment variable values.

        Handles both full-string (${VAR}) and inline (prefix${VAR}suffix) patterns.
        Raises ValueError for required vars that are missing.
        """
        if not isinstance(value, str):
            return value

        def _replace(match):
            env_key = match.group(1)
            env_val = os.environ.get(env_key)
            if env_val is None:
                if required:
                    raise ValueError(
                        f"Required environment variable '{env_key}' is not set. "
                        f"Set it or update your wakabeat.yaml."
                    )
                return ""
            return env_val

        return re.sub(r'\$\{([^}]+)\}', _replace, value)

    @classmethod
    def _check_config_permissions(cls, config_path: str):
        """Warn if config file is world-readable (it holds the API key)."""
        try:
            mode = os.stat(config_path).st_mode
            if mode & stat.S_IROTH:
                logger.warning(
                    f"Config file {config_path} is world-readable (mode {oct(mode)}). "
                    f"Consider: chmod 600 {config_path}"
                )
        except OSError:
            pass
