"""
Process-wide configuration.

A `Configuration` is an immutable snapshot built once at startup and injected
into every method descriptor. It can be constructed directly or loaded from a
TOML file:

    timeout = 3000
    retry_count = 2
    log_enabled = true
    interceptors = ["myapp.interceptors:AuthInterceptor"]

    [headers]
    Accept = "application/json"

    [variables]
    api_version = "v2"

    [filters]
    mask = "myapp.filters:mask"

    [key_stores.partner]
    cert_file = "certs/partner.pem"
"""

from __future__ import annotations

import dataclasses
import importlib
import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .converters import FieldAdapter, JsonConverter, PydanticJsonConverter
from .exceptions import ConfigurationError, UnknownCredentialError
from .filters import FilterRegistry, default_filter_registry
from .http import Header, NameValue
from .interceptors import Interceptor, InterceptorFactory

logger = logging.getLogger(__name__)

ENV_TIMEOUT = "DECLAREST_TIMEOUT"
ENV_RETRY_COUNT = "DECLAREST_RETRY_COUNT"


class CredentialBundle(BaseModel):
    """A named TLS credential bundle a request may select by id."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    cert_file: str | None = None
    key_file: str | None = None
    ca_file: str | None = None
    password: str | None = Field(None, repr=False)


def _as_headers(value: Mapping[str, str] | Any) -> tuple[Header, ...]:
    if isinstance(value, Mapping):
        return tuple((str(k), str(v)) for k, v in value.items())
    return tuple((str(k), str(v)) for k, v in value)


def _as_parameters(value: Mapping[str, Any] | Any) -> tuple[NameValue, ...]:
    if isinstance(value, Mapping):
        return tuple(NameValue(str(k), v) for k, v in value.items())
    return tuple(nv if isinstance(nv, NameValue) else NameValue(str(nv[0]), nv[1]) for nv in value)


@dataclass(frozen=True, slots=True)
class Configuration:
    """
    Immutable configuration snapshot.

    Attributes:
        timeout: Default timeout in milliseconds
        retry_count: Default retry count
        content_type: Default content type
        content_encoding: Default content encoding
        data_type: Default data type name (e.g. "json")
        default_headers: Headers added to every request, after interface headers
        default_parameters: Data pairs added first to every request
        variables: Global named variables for templates
        interceptors: Interceptor classes attached to every request first
        filters: Named filters available to parameter markers
        json_converter: Converter used for JSON-body parameters and the `json` filter
        field_adapters: Per-type field enumerators for object-expansion parameters
        key_stores: Credential bundles by id
        log_enabled: Log every assembled request (requests may also opt in)
    """

    timeout: int | None = None
    retry_count: int | None = None
    content_type: str | None = None
    content_encoding: str | None = None
    data_type: str | None = None
    default_headers: tuple[Header, ...] = ()
    default_parameters: tuple[NameValue, ...] = ()
    variables: Mapping[str, Any] = field(default_factory=dict)
    interceptors: tuple[type[Interceptor], ...] = ()
    filters: FilterRegistry = field(default_factory=default_filter_registry, compare=False)
    json_converter: JsonConverter = field(default_factory=PydanticJsonConverter, compare=False)
    field_adapters: Mapping[type, FieldAdapter] = field(default_factory=dict)
    key_stores: Mapping[str, CredentialBundle] = field(default_factory=dict)
    log_enabled: bool = True
    interceptor_factory: InterceptorFactory = field(
        default_factory=InterceptorFactory, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        # Freeze collection inputs so the snapshot cannot change after construction.
        object.__setattr__(self, "default_headers", _as_headers(self.default_headers))
        object.__setattr__(self, "default_parameters", _as_parameters(self.default_parameters))
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))
        object.__setattr__(self, "interceptors", tuple(self.interceptors))
        object.__setattr__(self, "field_adapters", MappingProxyType(dict(self.field_adapters)))
        object.__setattr__(self, "key_stores", MappingProxyType(dict(self.key_stores)))

    def get_key_store(self, key_store_id: str) -> CredentialBundle:
        bundle = self.key_stores.get(key_store_id)
        if bundle is None:
            raise UnknownCredentialError(
                f"Unknown key store '{key_store_id}'", key_store=key_store_id
            )
        return bundle

    def global_interceptors(self) -> tuple[Interceptor, ...]:
        return self.interceptor_factory.resolve_all(self.interceptors)

    def replace(self, **changes: Any) -> Configuration:
        """Return a new snapshot with `changes` applied."""
        return dataclasses.replace(self, **changes)


# =============================================================================
# File Loading
# =============================================================================


def import_object(reference: str) -> Any:
    """
    Import an object from a `package.module:attribute` reference.

    Raises:
        ConfigurationError: If the reference is malformed or cannot be imported.
    """
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigurationError(
            f"Invalid import reference '{reference}'; expected 'package.module:attribute'"
        )
    try:
        obj: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            obj = getattr(obj, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot import '{reference}': {e}", cause=e) from e
    return obj


class _KeyStoreEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cert_file: str | None = None
    key_file: str | None = None
    ca_file: str | None = None
    password: str | None = None


class ConfigurationFile(BaseModel):
    """Validated contents of a configuration TOML file."""

    model_config = ConfigDict(extra="forbid")

    timeout: int | None = None
    retry_count: int | None = None
    content_type: str | None = None
    content_encoding: str | None = None
    data_type: str | None = None
    log_enabled: bool = True
    headers: dict[str, str] = Field(default_factory=dict)
    parameters: dict[str, str] = Field(default_factory=dict)
    variables: dict[str, Any] = Field(default_factory=dict)
    interceptors: list[str] = Field(default_factory=list)
    filters: dict[str, str] = Field(default_factory=dict)
    key_stores: dict[str, _KeyStoreEntry] = Field(default_factory=dict)

    def to_configuration(self) -> Configuration:
        filters = default_filter_registry()
        for name, reference in self.filters.items():
            filters.register(name, import_object(reference))
        return Configuration(
            timeout=self.timeout,
            retry_count=self.retry_count,
            content_type=self.content_type,
            content_encoding=self.content_encoding,
            data_type=self.data_type,
            default_headers=_as_headers(self.headers),
            default_parameters=_as_parameters(self.parameters),
            variables=self.variables,
            interceptors=tuple(import_object(ref) for ref in self.interceptors),
            filters=filters,
            key_stores={
                key: CredentialBundle(id=key, **entry.model_dump())
                for key, entry in self.key_stores.items()
            },
            log_enabled=self.log_enabled,
        )


def _env_int(environ: Mapping[str, str], name: str) -> int | None:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", cause=e) from e


def load_configuration(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Configuration:
    """
    Load a configuration snapshot from a TOML file and the environment.

    `DECLAREST_TIMEOUT` and `DECLAREST_RETRY_COUNT` override the file values.

    Raises:
        ConfigurationError: If the file cannot be read or fails validation.
    """
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        try:
            with config_path.open("rb") as f:
                raw = tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read configuration file {config_path}: {e}", cause=e
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}", cause=e) from e
        logger.debug(f"Loaded configuration from {config_path}")

    try:
        parsed = ConfigurationFile.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", cause=e) from e

    overrides: dict[str, Any] = {}
    timeout = _env_int(env, ENV_TIMEOUT)
    if timeout is not None:
        overrides["timeout"] = timeout
    retry_count = _env_int(env, ENV_RETRY_COUNT)
    if retry_count is not None:
        overrides["retry_count"] = retry_count
    if overrides:
        parsed = parsed.model_copy(update=overrides)

    return parsed.to_configuration()
