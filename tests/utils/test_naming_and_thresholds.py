import pytest

from userdocs.adapters import AdapterConfigurationError
from userdocs.utils import camel_to_snake, collection_name, resolve_slow_query_ms


def test_camel_to_snake():
    assert camel_to_snake("BlogPost") == "blog_post"
    assert camel_to_snake("HTTPRequest") == "http_request"


@pytest.mark.parametrize(
    "name, expected",
    [("User", "users"), ("BlogPost", "blog_posts"), ("Comment", "comments"), ("Category", "categories"), ("Day", "days")],
)
def test_collection_name(name, expected):
    assert collection_name(name) == expected


def test_slow_query_threshold_resolution(monkeypatch):
    monkeypatch.delenv("USERDOCS_SLOW_QUERY_MS", raising=False)
    assert resolve_slow_query_ms(default=100) == 100
    assert resolve_slow_query_ms(override=5) == 5
    monkeypatch.setenv("USERDOCS_SLOW_QUERY_MS", "250")
    assert resolve_slow_query_ms() == 250


@pytest.mark.parametrize("raw", ["fast", "-1"])
def test_invalid_slow_query_threshold(monkeypatch, raw):
    monkeypatch.setenv("USERDOCS_SLOW_QUERY_MS", raw)
    with pytest.raises(AdapterConfigurationError):
        resolve_slow_query_ms()
