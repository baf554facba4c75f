"""Run settings, loadable from YAML and overridable from the command line."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigurationError

TRANSPORTS = ("default", "curl")


@dataclasses.dataclass(frozen=True)
class Config:
    cache_dir: Optional[str] = ".cache"
    output_dir: str = "."
    transport: str = "default"
    curl_path: str = "curl"
    parallelism: int = 5
    domain_glob: str = "*"
    delay: float = 0.0  # seconds a slot stays busy after each request
    random_delay: float = 0.0
    timeout: float = 60.0  # seconds per request, curl included
    user_agent: Optional[str] = None  # None rotates a desktop UA per request
    log_file: Optional[str] = None
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(f"Transport must be one of {', '.join(TRANSPORTS)}, got {self.transport!r}")
        if self.parallelism < 1:
            raise ConfigurationError(f"parallelism must be at least 1, got {self.parallelism}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

    @staticmethod
    def from_yaml(path: Path) -> "Config":
        try:
            with Path(path).open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Could not read config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {path} must be a mapping")
        known = {f.name for f in dataclasses.fields(Config)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config key(s) in {path}: {', '.join(unknown)}")
        defaults = Config()
        try:
            return Config(
                cache_dir=data.get("cache_dir", defaults.cache_dir),
                output_dir=str(data.get("output_dir", defaults.output_dir)),
                transport=str(data.get("transport", defaults.transport)),
                curl_path=str(data.get("curl_path", defaults.curl_path)),
                parallelism=int(data.get("parallelism", defaults.parallelism)),
                domain_glob=str(data.get("domain_glob", defaults.domain_glob)),
                delay=float(data.get("delay", defaults.delay)),
                random_delay=float(data.get("random_delay", defaults.random_delay)),
                timeout=float(data.get("timeout", defaults.timeout)),
                user_agent=data.get("user_agent", defaults.user_agent),
                log_file=data.get("log_file", defaults.log_file),
                verbose=bool(data.get("verbose", defaults.verbose)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value in config {path}: {e}") from e

    def override(self, **changes) -> "Config":
        """Return a copy with every non-None keyword applied."""
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})
