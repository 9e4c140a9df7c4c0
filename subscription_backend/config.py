"""Configuration management - loads plan.yaml and environment variables."""

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from subscription_backend.models import BillingSettings, PlanDefinition


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


# Environment variable -> BillingSettings field
_ENV_FIELDS = {
    "RAZORPAY_KEY_ID": "razorpay_key_id",
    "RAZORPAY_KEY_SECRET": "razorpay_key_secret",
    "RAZORPAY_WEBHOOK_SECRET": "razorpay_webhook_secret",
    "RAZORPAY_PLAN_ID": "razorpay_plan_id",
    "FIREBASE_PROJECT_ID": "firebase_project_id",
    "FIREBASE_CREDENTIALS_PATH": "firebase_credentials_path",
    "STORE_BACKEND": "store_backend",
    "FIRESTORE_COLLECTION": "firestore_collection",
    "HOST": "host",
    "PORT": "port",
}

_REQUIRED_ENV = ("RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET", "RAZORPAY_WEBHOOK_SECRET", "RAZORPAY_PLAN_ID")


class Config:
    """Application configuration loader.

    Reads credentials and runtime settings from the environment (a ``.env``
    file is honoured) and the plan definition from plan.yaml, then validates
    everything with pydantic. Missing secrets fail here, at startup.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        plan_path: Optional[str] = None,
        load_env_file: bool = True,
    ):
        """Initialize configuration loader.

        Args:
            environ: Mapping to read settings from (defaults to os.environ)
            plan_path: Path to plan.yaml. Falls back to PLAN_CONFIG_PATH env var,
                       then ./config/plan.yaml. A missing default file means the
                       built-in plan defaults are used.
            load_env_file: Load a .env file into os.environ first
        """
        if environ is None:
            if load_env_file:
                load_dotenv()
            environ = os.environ
        self._environ = environ
        self._plan_path, self._plan_path_explicit = self._resolve_plan_path(plan_path)
        self._settings: Optional[BillingSettings] = None
        self._load_config()

    def _resolve_plan_path(self, plan_path: Optional[str]) -> tuple[Path, bool]:
        """Resolve plan file path from argument, env var, or default."""
        if plan_path:
            return Path(plan_path), True

        env_path = self._environ.get("PLAN_CONFIG_PATH")
        if env_path:
            return Path(env_path), True

        return Path("config/plan.yaml"), False

    def _load_plan(self) -> PlanDefinition:
        """Load plan.yaml, or the defaults when no file is configured."""
        if not self._plan_path.exists():
            if self._plan_path_explicit:
                raise ConfigurationError(f"Plan configuration file not found: {self._plan_path}")
            return PlanDefinition()

        try:
            with open(self._plan_path, encoding="utf-8") as f:
                raw_plan = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML plan configuration: {e}")

        if not isinstance(raw_plan, dict):
            raise ConfigurationError(f"Plan configuration must be a mapping: {self._plan_path}")

        # Accept either a bare plan mapping or one nested under "plan"
        raw_plan = raw_plan.get("plan", raw_plan)
        try:
            return PlanDefinition(**raw_plan)
        except ValidationError as e:
            raise ConfigurationError(f"Plan configuration validation failed:\n{e}")

    def _load_config(self) -> None:
        """Load and validate all settings."""
        missing = [name for name in _REQUIRED_ENV if not self._environ.get(name, "").strip()]
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing)
            )

        raw: dict = {}
        for env_name, field_name in _ENV_FIELDS.items():
            value = self._environ.get(env_name)
            if value is not None and value != "":
                raw[field_name] = value

        if not raw.get("firebase_credentials_path"):
            credentials = self._environ.get("GOOGLE_APPLICATION_CREDENTIALS")
            if credentials:
                raw["firebase_credentials_path"] = credentials

        origins = self._environ.get("CORS_ORIGINS")
        if origins:
            raw["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        raw["plan"] = self._load_plan()

        try:
            self._settings = BillingSettings(**raw)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}")

    @property
    def settings(self) -> BillingSettings:
        """Get validated settings."""
        if self._settings is None:
            raise ConfigurationError("Configuration not loaded")
        return self._settings

    @property
    def plan(self) -> PlanDefinition:
        """Get the configured subscription plan."""
        return self.settings.plan

    @property
    def plan_path(self) -> Path:
        """Get path to the plan configuration file."""
        return self._plan_path

    @property
    def webhook_secret(self) -> str:
        """Shared secret used to sign webhook payloads."""
        return self.settings.razorpay_webhook_secret

    @property
    def key_secret(self) -> str:
        """API key secret, also used for checkout payment signatures."""
        return self.settings.razorpay_key_secret

    def reload(self) -> None:
        """Reload configuration from the environment and disk."""
        self._load_config()


_config_instance: Optional[Config] = None


def get_config(plan_path: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton).

    Args:
        plan_path: Optional path to plan.yaml (only used on first call)

    Returns:
        Config instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(plan_path=plan_path)
    return _config_instance


def reset_config() -> None:
    """Forget the global configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None
