import pytest

from quaderno.secrets import resolve_secret


def test_env_reference(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("QUADERNO_TEST_KEY", "sk-live")

    assert resolve_secret("env:QUADERNO_TEST_KEY") == "sk-live"


def test_unset_variable(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("QUADERNO_TEST_KEY", raising=False)

    assert resolve_secret("env:QUADERNO_TEST_KEY") is None


def test_empty_variable_counts_as_unset(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("QUADERNO_TEST_KEY", "")

    assert resolve_secret("env:QUADERNO_TEST_KEY") is None


@pytest.mark.parametrize("ref", ["QUADERNO_TEST_KEY", "vault:QUADERNO_TEST_KEY", ""])
def test_reference_without_env_prefix(monkeypatch: pytest.MonkeyPatch, ref: str):
    monkeypatch.setenv("QUADERNO_TEST_KEY", "sk-live")

    assert resolve_secret(ref) is None
