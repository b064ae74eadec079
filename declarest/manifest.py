"""
Endpoint manifests.

A manifest declares endpoints in TOML instead of Python decorators:

    [interface]
    base_url = "https://api.example.com/${api_version}"
    headers = ["Accept: application/json"]

    [endpoints.get_user]
    url = "/users/${id}"
    data_type = "json"
    parameters = [{ name = "id", variable = true }]

    [endpoints.search]
    url = "/search"
    parameters = [
        { name = "q", param = "q", filter = "trim" },
        { name = "filters", object = true },
    ]
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import import_object
from .exceptions import ConfigurationError
from .models import (
    DataObject,
    DataParam,
    DataVariable,
    InterfaceSpec,
    Marker,
    ParameterInfo,
    RequestSpec,
)
from .registry import EndpointRegistry


class ParameterEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    param: str | bool | None = None
    variable: str | bool | None = None
    object: bool = False
    json_param: str = ""
    filter: str = ""

    def markers(self) -> tuple[Marker, ...]:
        markers: list[Marker] = []
        if self.param:
            name = self.param if isinstance(self.param, str) else self.name
            markers.append(DataParam(name, self.filter))
        if self.variable:
            name = self.variable if isinstance(self.variable, str) else ""
            markers.append(DataVariable(name, self.filter))
        if self.object or self.json_param:
            markers.append(DataObject(self.json_param, self.filter))
        return tuple(markers)


class EndpointEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    parameters: list[ParameterEntry] = Field(default_factory=list)


class ManifestFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    interface: dict[str, Any] | None = None
    endpoints: dict[str, EndpointEntry] = Field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EndpointDeclaration:
    endpoint_id: str
    request: RequestSpec
    parameters: tuple[ParameterInfo, ...] = ()


@dataclass(frozen=True, slots=True)
class Manifest:
    interface: InterfaceSpec | None = None
    endpoints: tuple[EndpointDeclaration, ...] = field(default=())

    def register(self, registry: EndpointRegistry) -> list[str]:
        """Register every endpoint; stops at the first invalid declaration."""
        for endpoint in self.endpoints:
            registry.register(
                endpoint.endpoint_id, endpoint.request, endpoint.parameters, self.interface
            )
        return [e.endpoint_id for e in self.endpoints]


def _resolve_interceptors(options: dict[str, Any]) -> dict[str, Any]:
    refs = options.get("interceptors")
    if refs:
        options = {**options, "interceptors": tuple(import_object(ref) for ref in refs)}
    return options


def parse_manifest(raw: dict[str, Any]) -> Manifest:
    """
    Validate decoded manifest data.

    Raises:
        ConfigurationError: If the manifest structure or any spec is invalid.
    """
    try:
        parsed = ManifestFile.model_validate(raw)
        interface = None
        if parsed.interface is not None:
            interface = InterfaceSpec.model_validate(_resolve_interceptors(parsed.interface))
        endpoints: list[EndpointDeclaration] = []
        for endpoint_id, entry in parsed.endpoints.items():
            options = _resolve_interceptors(dict(entry.model_extra or {}))
            request = RequestSpec.model_validate(options)
            parameters = tuple(
                ParameterInfo(index, p.name, Any, p.markers())
                for index, p in enumerate(entry.parameters)
            )
            endpoints.append(EndpointDeclaration(endpoint_id, request, parameters))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid endpoint manifest: {e}", cause=e) from e
    return Manifest(interface=interface, endpoints=tuple(endpoints))


def load_manifest(path: str | Path) -> Manifest:
    manifest_path = Path(path)
    try:
        with manifest_path.open("rb") as f:
            raw = tomllib.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read manifest {manifest_path}: {e}", cause=e) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {manifest_path}: {e}", cause=e) from e
    return parse_manifest(raw)
