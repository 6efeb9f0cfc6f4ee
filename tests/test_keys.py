import pytest

from prefsync import InvalidArgumentError, KeyScheme
from prefsync.keys import validate_name


def test_default_scheme_round_trip():
    scheme = KeyScheme()
    assert scheme.to_key("color") == "/color"
    assert scheme.to_name("/color") == "color"
    assert scheme.to_name(scheme.to_key("terminal/font-size")) == "terminal/font-size"


@pytest.mark.parametrize("key", ["color", "", "/", "//color", "/ color", "/two words", None])
def test_unrelated_keys(key):
    assert KeyScheme().to_name(key) is None


def test_nested_prefix():
    scheme = KeyScheme("/nassh/profiles/")
    assert scheme.to_key("default") == "/nassh/profiles/default"
    assert scheme.to_name("/nassh/profiles/default") == "default"
    assert scheme.to_name("/nassh/default") is None


@pytest.mark.parametrize("prefix", ["", "nassh", "/nassh", None])
def test_bad_prefix(prefix):
    with pytest.raises(InvalidArgumentError):
        KeyScheme(prefix)


@pytest.mark.parametrize("name", ["", "/abs", "a b", "tab\tname", 42])
def test_validate_name_rejects(name):
    with pytest.raises(InvalidArgumentError):
        validate_name(name)
