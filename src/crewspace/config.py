"""Crewspace configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

_DEV_SECRET = "crewspace-dev-secret-change-me"


@dataclass
class Config:
    """Crewspace configuration."""

    data_path: Path = field(default_factory=lambda: Path.home() / ".crewspace")
    log_level: str = "INFO"
    wal_mode: bool = True

    # Session tokens
    jwt_secret: str = _DEV_SECRET
    token_exp_minutes: int = 60 * 24

    # Signing up with this email always yields an owner account
    bootstrap_owner_email: str | None = None

    @classmethod
    def load(cls, data_path: Path | None = None) -> Config:
        """Load config from defaults, then YAML file, then env vars."""
        config = cls()

        if data_path:
            config.data_path = data_path

        env_path = os.environ.get("CREWSPACE_HOME")
        if env_path:
            config.data_path = Path(env_path)

        config_file = config.data_path / "config.yaml"
        if config_file.exists():
            with open(config_file) as f:
                data = yaml.safe_load(f) or {}
            for key, value in data.items():
                if not hasattr(config, key) or value is None:
                    continue
                current = getattr(config, key)
                if isinstance(current, Path):
                    setattr(config, key, Path(value))
                elif current is None:
                    setattr(config, key, str(value))
                else:
                    setattr(config, key, type(current)(value))

        env_log = os.environ.get("CREWSPACE_LOG_LEVEL")
        if env_log:
            config.log_level = env_log

        env_secret = os.environ.get("CREWSPACE_JWT_SECRET")
        if env_secret:
            config.jwt_secret = env_secret

        env_owner = os.environ.get("CREWSPACE_BOOTSTRAP_OWNER_EMAIL")
        if env_owner:
            config.bootstrap_owner_email = env_owner

        return config

    @property
    def db_path(self) -> Path:
        return self.data_path / "crewspace.db"

    @property
    def uses_dev_secret(self) -> bool:
        return self.jwt_secret == _DEV_SECRET

    def is_bootstrap_owner(self, email: str) -> bool:
        if not self.bootstrap_owner_email:
            return False
        return email.strip().lower() == self.bootstrap_owner_email.strip().lower()

    def save(self) -> None:
        """Save current config to YAML. The JWT secret is never written."""
        self.data_path.mkdir(parents=True, exist_ok=True)
        config_file = self.data_path / "config.yaml"
        data = {
            "log_level": self.log_level,
            "wal_mode": self.wal_mode,
            "token_exp_minutes": self.token_exp_minutes,
            "bootstrap_owner_email": self.bootstrap_owner_email,
        }
        with open(config_file, "w") as f:
            yaml.dump(data, f, default_flow_style=False)
