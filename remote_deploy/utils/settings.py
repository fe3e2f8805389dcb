"""
remote_deploy/utils/settings.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single source of truth* for runtime configuration
of the remote deploy action.

It is responsible for:
- Defining all supported configuration fields (via Pydantic BaseSettings)
- Reading GitHub Actions inputs (INPUT_* environment variables)
- Overriding defaults with environment variables (REMOTE_DEPLOY_*)
- Loading default values from parameters/parameters.yaml
- Exposing a fully-validated Settings object, built once at startup and
  passed explicitly to every component that needs it

LOAD & PRECEDENCE MODEL
-----------------------
Configuration is resolved in the following order (first wins):

1) Explicit overrides passed to load_settings() (CLI options)
2) GitHub Actions inputs:
       INPUT_REMOTE-URL, INPUT_APP-ID, ...   (hyphen or underscore)
3) Environment variables:
       REMOTE_DEPLOY_*
4) YAML defaults from:
       parameters/parameters.yaml

Empty values are ignored at every layer: the Actions runner exports
INPUT_<NAME>="" for every optional input the workflow leaves unset.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- HTTP calls
- Deciding what to do with missing required inputs at runtime
  (the orchestrator fails fast before any network call)
- Logging configuration

DESIGN INTENT
-------------
- All runtime-configurable behavior MUST be declared here
- Components receive the Settings object; nothing re-reads the
  environment after startup
- Invalid values fail fast as InputError
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

import structlog
import yaml
from pydantic import AnyHttpUrl, Field, SecretStr, ValidationError
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from remote_deploy.orchestrator.errors import InputError

logger = structlog.get_logger(__name__)

PARAMETERS_PATH = Path(__file__).resolve().parents[2] / "parameters" / "parameters.yaml"

ACTION_INPUT_PREFIX = "INPUT_"

# Inputs the run cannot start without (kebab-case, as named in the workflow)
REQUIRED_INPUTS = ("remote-url", "app-id", "deploy-token")


@lru_cache(maxsize=1)
def _load_yaml_parameters() -> Dict[str, Any]:
    """
    Load base configuration from parameters/parameters.yaml.

    Cached to:
    - Avoid repeated disk I/O
    - Guarantee consistent config during process lifetime
    """
    if not PARAMETERS_PATH.exists():
        logger.warning("parameters_yaml_missing", expected=str(PARAMETERS_PATH))
        return {}

    try:
        with PARAMETERS_PATH.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("parameters_yaml_load_error", path=str(PARAMETERS_PATH), error=str(exc))
        return {}

    if not isinstance(data, dict):
        logger.warning(
            "parameters_yaml_not_dict",
            path=str(PARAMETERS_PATH),
            type=type(data).__name__,
        )
        return {}
    logger.debug("parameters_yaml_loaded", path=str(PARAMETERS_PATH))
    return data


def read_action_inputs(environ: Mapping[str, str], field_names: List[str]) -> Dict[str, str]:
    """
    Collect GitHub Actions inputs for known fields.

    The runner exports input `remote-url` as INPUT_REMOTE-URL; we accept
    INPUT_REMOTE_URL too. Empty values are skipped.
    """
    wanted = set(field_names)
    inputs: Dict[str, str] = {}
    for key, value in environ.items():
        if not key.upper().startswith(ACTION_INPUT_PREFIX) or not value:
            continue
        name = key[len(ACTION_INPUT_PREFIX):].lower().replace("-", "_").strip()
        if name in wanted:
            inputs[name] = value
    return inputs


class ActionInputsSource(PydanticBaseSettingsSource):
    """Settings source backed by INPUT_* environment variables."""

    def __init__(self, settings_cls: Type[BaseSettings], environ: Optional[Mapping[str, str]] = None):
        super().__init__(settings_cls)
        self._inputs = read_action_inputs(
            os.environ if environ is None else environ,
            list(settings_cls.model_fields),
        )

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self._inputs.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return dict(self._inputs)


class ParametersYamlSource(PydanticBaseSettingsSource):
    """Settings source backed by parameters/parameters.yaml (lowest precedence)."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return _load_yaml_parameters().get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in _load_yaml_parameters().items()
            if key in self.settings_cls.model_fields and value is not None
        }


class Settings(BaseSettings):
    """
    Runtime settings for the remote deploy action.

    The first block mirrors the action inputs one-to-one
    (field `remote_url` <-> input `remote-url`); the rest are tunables.
    """

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_DEPLOY_",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Action inputs
    # Required ones are Optional at the model level so a missing value is
    # reported as InputError by the orchestrator rather than as a
    # validation failure here.
    remote_url: Optional[AnyHttpUrl] = None
    app_id: Optional[str] = None
    deploy_token: Optional[SecretStr] = None
    command_id: Optional[str] = None
    path_prefix: str = "/devops"
    wait: bool = True
    timeout: int = Field(default=600, ge=0, description="Total wait timeout in seconds.")
    verbose: bool = False

    log_level: str = "INFO"

    # Networking
    # - http_timeout_seconds: request/response calls and stream connect
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # Observation tuning
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    stream_check_interval_seconds: float = Field(default=5.0, gt=0)
    stream_idle_warning_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Advisory only: idle streams are logged, never reconnected.",
    )

    # Result shaping
    max_output_length: int = Field(default=50_000, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            ActionInputsSource(settings_cls),
            env_settings,
            ParametersYamlSource(settings_cls),
        )

    @property
    def base_url(self) -> str:
        """remote_url without trailing slashes ('' when unset)."""
        return str(self.remote_url).rstrip("/") if self.remote_url else ""

    @property
    def token(self) -> str:
        return self.deploy_token.get_secret_value() if self.deploy_token else ""


def missing_required_inputs(settings: Settings) -> List[str]:
    missing: List[str] = []
    if not settings.remote_url:
        missing.append("remote-url")
    if not settings.app_id:
        missing.append("app-id")
    if not settings.token:
        missing.append("deploy-token")
    return missing


def load_settings(**overrides: Any) -> Settings:
    """
    Construct and return the validated Settings object.

    Overrides whose value is None are ignored, so CLI options that were
    not given never mask lower-precedence sources.

    Raises:
        InputError: a configured value failed validation.
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}

    try:
        settings = Settings(**explicit)
    except ValidationError as exc:
        problems = ", ".join(
            f"{'.'.join(str(x) for x in err.get('loc', ())) or 'settings'}: {err.get('msg')}"
            for err in exc.errors()
        )
        logger.error("settings_validation_error", errors=problems)
        raise InputError(f"Invalid configuration: {problems}") from exc

    logger.debug(
        "settings_loaded",
        remote_url=settings.base_url,
        app_id=settings.app_id,
        path_prefix=settings.path_prefix,
        wait=settings.wait,
        timeout=settings.timeout,
        verbose=settings.verbose,
        overrides=sorted(explicit),
    )
    return settings
