from __future__ import annotations

import pytest

from declarest.config import CredentialBundle
from declarest.http import DataType, NameValue, RequestDescriptor
from declarest.interceptors import Interceptor


class Audit(Interceptor):
    pass


def test_data_type_parse() -> None:
    assert DataType.parse(" json ") is DataType.JSON
    assert DataType.parse("Binary") is DataType.BINARY
    with pytest.raises(KeyError):
        DataType.parse("yaml")


def test_name_value_text_forms() -> None:
    assert str(NameValue("a", 1)) == "a=1"
    assert str(NameValue("flag")) == "flag"
    assert NameValue("flag").is_flag
    assert str(NameValue(None, "raw")) == "raw"


def test_request_descriptor_views() -> None:
    request = RequestDescriptor(
        protocol="http",
        host_port="h:8080",
        path="/p",
        type="GET",
        query="a=1",
        data=(NameValue("a", "1", is_query=True), NameValue("b", 2)),
        headers=(("Accept", "text/plain"), ("accept", "application/json")),
        interceptors=(Audit(),),
        key_store=CredentialBundle(id="partner"),
    )
    assert request.url == "http://h:8080/p"
    assert request.full_url == "http://h:8080/p?a=1"
    assert request.query_pairs == (NameValue("a", "1", is_query=True),)
    assert request.form_pairs == (NameValue("b", 2),)
    assert request.header_values("ACCEPT") == ["text/plain", "application/json"]

    payload = request.to_dict()
    assert payload["hostPort"] == "h:8080"
    assert payload["queryPairs"] == [["a", "1"]]
    assert payload["data"] == [["b", "2"]]
    assert payload["dataType"] == "TEXT"
    assert payload["keyStore"] == "partner"
    assert payload["interceptors"] == ["Audit"]
