from __future__ import annotations

from pathlib import Path

import pytest

from declarest.config import Configuration
from declarest.exceptions import ConfigurationError
from declarest.manifest import ParameterEntry, load_manifest, parse_manifest
from declarest.models import DataObject, DataParam, DataVariable
from declarest.registry import EndpointRegistry

MANIFEST_TOML = """
[interface]
base_url = "https://api.example.com/${api_version}"
headers = ["Accept: application/json"]
interceptors = ["declarest.interceptors:Interceptor"]

[endpoints.get_user]
url = "/users/${id}"
data_type = "json"
parameters = [{ name = "id", variable = true }]

[endpoints.search]
url = "/search"
async = true
parameters = [
    { name = "q", param = "q", filter = "trim" },
    { name = "filters", object = true },
]
"""


def test_parameter_entry_markers() -> None:
    assert ParameterEntry(name="a", param=True).markers() == (DataParam("a"),)
    assert ParameterEntry(name="a", param="b", filter="trim").markers() == (DataParam("b", "trim"),)
    assert ParameterEntry(name="a", variable="v").markers() == (DataVariable("v"),)
    assert ParameterEntry(name="a", json_param="body").markers() == (DataObject("body"),)
    assert ParameterEntry(name="a").markers() == ()


def test_load_manifest_registers_endpoints(tmp_path: Path) -> None:
    path = tmp_path / "endpoints.toml"
    path.write_text(MANIFEST_TOML, encoding="utf-8")
    manifest = load_manifest(path)
    assert [e.endpoint_id for e in manifest.endpoints] == ["get_user", "search"]

    registry = EndpointRegistry(Configuration(variables={"api_version": "v3"}))
    assert manifest.register(registry) == ["get_user", "search"]

    user = registry.assemble("get_user", [9])
    assert user.full_url == "https://api.example.com/v3/users/9"
    assert user.headers == (("Accept", "application/json"),)
    assert len(user.interceptors) == 1

    search = registry.assemble("search", [" ada ", {"team": "core"}])
    assert search.async_ is True
    assert [(nv.name, nv.value) for nv in search.data] == [("q", "ada"), ("team", "core")]


def test_invalid_manifest_structure() -> None:
    with pytest.raises(ConfigurationError, match="Invalid endpoint manifest"):
        parse_manifest({"endpoints": {"x": {"url": "/x", "bogus": 1}}})
    with pytest.raises(ConfigurationError, match="Invalid endpoint manifest"):
        parse_manifest({"unexpected": {}})


def test_unreadable_manifest(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Cannot read manifest"):
        load_manifest(tmp_path / "missing.toml")
    broken = tmp_path / "broken.toml"
    broken.write_text("[endpoints", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid TOML"):
        load_manifest(broken)
