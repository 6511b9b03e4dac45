import pytest
from pydantic import ValidationError

from ethrpc import Client, ClientConfig
from ethrpc.exceptions import ConfigError
from tests.functional.conftest import OWNER, FakeTransport

YAML_CONTENT = """
default_account: "{account}"
default_block: 12
poll_interval: 2.5
notify_empty_changes: true
""".lstrip()
JSON_CONTENT = """
{{
    "default_account": "{account}",
    "default_block": "0xc",
    "poll_interval": 2.5,
    "notify_empty_changes": true
}}
""".lstrip()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "POLL_INTERVAL",
        "DEFAULT_BLOCK",
        "MAX_WORKERS",
        "DEFAULT_ACCOUNT",
        "REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(f"ETHRPC_{name}", raising=False)


def test_defaults():
    config = ClientConfig.load()
    assert config.default_account is None
    assert config.default_block == "latest"
    assert config.poll_interval == 0.5
    assert config.request_timeout == 30.0
    assert config.max_workers == 8
    assert config.notify_empty_changes is False
    assert config.transaction_acceptance_timeout == 120.0


def test_overrides():
    config = ClientConfig.load(default_account=OWNER.lower(), default_block="0x10")
    assert config.default_account == OWNER
    assert config.default_block == 16


def test_environment(monkeypatch):
    monkeypatch.setenv("ETHRPC_POLL_INTERVAL", "2")
    monkeypatch.setenv("ETHRPC_DEFAULT_BLOCK", "pending")
    config = ClientConfig.load()
    assert config.poll_interval == 2.0
    assert config.default_block == "pending"

    # Explicit values win over the environment.
    assert ClientConfig.load(poll_interval=1).poll_interval == 1.0


@pytest.mark.parametrize(
    "overrides",
    (
        {"poll_interval": 0},
        {"max_workers": 0},
        {"default_block": "latest-ish"},
        {"default_account": "0x123"},
        {"poll_everything": True},
    ),
)
def test_invalid_values(overrides):
    with pytest.raises(ConfigError):
        ClientConfig.load(**overrides)


def test_invalid_environment(monkeypatch):
    monkeypatch.setenv("ETHRPC_MAX_WORKERS", "many")
    with pytest.raises(ConfigError, match="max_workers"):
        ClientConfig.load()


def test_frozen():
    config = ClientConfig.load()
    with pytest.raises(ValidationError):
        config.poll_interval = 3


def test_merge():
    config = ClientConfig.load(poll_interval=3)
    merged = config.merge(default_account=OWNER)
    assert merged.default_account == OWNER
    assert merged.poll_interval == 3
    assert config.default_account is None


def test_merge_unknown_option():
    with pytest.raises(ConfigError, match="poll_everything"):
        ClientConfig.load().merge(poll_everything=True)


@pytest.mark.parametrize(
    "name,content", (("config.yaml", YAML_CONTENT), ("config.json", JSON_CONTENT))
)
def test_from_file(tmp_path, monkeypatch, name, content):
    monkeypatch.setenv("NODE_ACCOUNT", OWNER)
    path = tmp_path / name
    path.write_text(content.format(account="$NODE_ACCOUNT"))

    config = ClientConfig.from_file(path, poll_interval=4)
    assert config.default_account == OWNER
    assert config.default_block == 12
    assert config.notify_empty_changes is True
    assert config.poll_interval == 4


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigError, match="Unable to load"):
        ClientConfig.from_file(tmp_path / "missing.yaml")


def test_from_file_unsupported_format(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("poll_interval = 1\n")
    with pytest.raises(ConfigError):
        ClientConfig.from_file(path)


def test_from_file_not_a_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError, match="mapping"):
        ClientConfig.from_file(path)


def test_client_with_config(client):
    other = client.with_config(default_block=5)
    assert other.config.default_block == 5
    assert client.config.default_block == "latest"
    assert other.requests is client.requests


def test_request_timeout_applies_to_transport(transport):
    with Client(transport, config=ClientConfig.load(request_timeout=1)) as client:
        assert client.transport.timeout == 1.0

        other = FakeTransport(timeout=9)
        client.set_transport(other)
        assert other.timeout == 1.0


def test_request_timeout_from_environment(monkeypatch, transport):
    monkeypatch.setenv("ETHRPC_REQUEST_TIMEOUT", "4")
    with Client(transport):
        assert transport.timeout == 4.0


def test_default_request_timeout_keeps_transport_timeout():
    transport = FakeTransport(timeout=7)
    with Client(transport, config=ClientConfig.load().merge(poll_interval=1)):
        assert transport.timeout == 7.0
