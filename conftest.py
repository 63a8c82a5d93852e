import pytest


@pytest.fixture(autouse=True)
def no_token_from_environment(monkeypatch):
    monkeypatch.delenv("DIGITALOCEAN_TOKEN", raising=False)
    monkeypatch.delenv("INVOCATION_ID", raising=False)
