import json

import pytest

from codeshui_gateway.communication.message_bus import CONFIG_SAVED, PROBE_COMPLETED, MessageBus
from codeshui_gateway.config_store import STORAGE_KEY, ConfigStore, JsonFileStorage, MemoryStorage
from codeshui_gateway.settings import GatewayConfig, RelaySettings

from .fakes import ForbiddenSession


def test_load_without_stored_config_returns_default(make_store):
    config = make_store().load()
    assert config == GatewayConfig(
        provider="ollama",
        endpoint="http://127.0.0.1:11434",
        credential=None,
        model="llama3.1:8b",
        temperature=0.1,
        max_output_tokens=4000,
    )


@pytest.mark.parametrize(
    "raw",
    ["{not json", "[1, 2, 3]", json.dumps({"provider": "cohere", "model": "x"}), json.dumps({"provider": [1]}), ""],
)
def test_corrupt_storage_degrades_to_default(raw, make_store):
    store = make_store(storage=MemoryStorage({STORAGE_KEY: raw}))
    assert store.config == GatewayConfig()


@pytest.mark.parametrize(
    "raw",
    [
        '{"provider": "openai", "maxTokens": Infinity}',
        '{"provider": "openai", "maxTokens": -Infinity}',
        '{"provider": "openai", "maxTokens": NaN}',
        '{"provider": "openai", "maxTokens": 1e400}',
    ],
)
def test_non_finite_max_tokens_falls_back_to_default(raw, make_store):
    store = make_store(storage=MemoryStorage({STORAGE_KEY: raw}))
    assert store.config.provider == "openai"
    assert store.config.max_output_tokens == 4000


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_temperature_falls_back_to_default(value, make_store):
    storage = MemoryStorage({STORAGE_KEY: '{"provider": "openai", "temperature": %s}' % value})
    store = make_store(storage=storage)
    assert store.config.temperature == 0.1

    store.save(model="gpt-4")
    assert json.loads(storage.get_item(STORAGE_KEY))["temperature"] == 0.1


def test_save_rejects_nan_temperature(make_store):
    config = make_store().save(temperature=float("nan"))
    assert config.temperature == 0.1


def test_save_then_reload_keeps_provider(make_store):
    storage = MemoryStorage()
    make_store(storage=storage).save(provider="anthropic")

    restarted = make_store(storage=storage)
    assert restarted.load().provider == "anthropic"
    assert restarted.config.provider == "anthropic"


def test_provider_switch_resets_endpoint_and_model(make_store):
    store = make_store()
    config = store.save(provider="google", credential="validkeylongerthan20chars")
    assert config.endpoint == "https://generativelanguage.googleapis.com"
    assert config.model == "gemini-pro"
    assert store.available_models() == ["gemini-pro", "gemini-pro-vision", "text-bison"]


def test_save_merges_over_current(make_store):
    store = make_store()
    store.save(provider="openai", credential="sk-" + "x" * 30)
    config = store.save(model="gpt-4-turbo", temperature=0.7)
    assert config.provider == "openai"
    assert config.credential == "sk-" + "x" * 30
    assert config.model == "gpt-4-turbo"
    assert config.temperature == 0.7


def test_saved_blob_uses_storage_layout(make_store):
    storage = MemoryStorage()
    make_store(storage=storage).save(provider="openai", credential="sk-abc", max_output_tokens=256)
    blob = json.loads(storage.get_item(STORAGE_KEY))
    assert blob == {
        "provider": "openai",
        "url": "https://api.openai.com/v1",
        "apiKey": "sk-abc",
        "model": "gpt-4",
        "temperature": 0.1,
        "maxTokens": 256,
    }


def test_stored_values_are_repaired(make_store):
    raw = json.dumps({"provider": "openai", "model": "gpt-99", "temperature": 9, "maxTokens": -1, "apiKey": ""})
    config = make_store(storage=MemoryStorage({STORAGE_KEY: raw})).config
    assert config.model == "gpt-4"
    assert config.endpoint == "https://api.openai.com/v1"
    assert config.temperature == 2.0
    assert config.max_output_tokens == 4000
    assert config.credential is None


def test_custom_accepts_any_model(make_store):
    config = make_store().save(provider="custom", model="my-finetune", endpoint="https://llm.internal/v1")
    assert config.model == "my-finetune"


def test_save_rejects_unknown_provider_and_fields(make_store):
    store = make_store()
    with pytest.raises(ValueError):
        store.save(provider="cohere")
    with pytest.raises(TypeError):
        store.save(colour="blue")


def test_save_drives_ready_flag(make_store):
    store = make_store(session=ForbiddenSession())
    assert store.ready is True  # default ollama URL is loopback

    store.save(provider="openai")
    assert store.ready is False
    assert "API key required" in store.last_probe.reason

    store.save(credential="sk-short")
    assert store.ready is False
    assert "Invalid OpenAI API key format" in store.last_probe.reason

    store.save(credential="sk-" + "x" * 30)
    assert store.ready is True
    assert store.wait_for_probe().ok


def test_events_are_published(make_store):
    bus = MessageBus()
    saved, probed = [], []
    bus.subscribe(CONFIG_SAVED, saved.append)
    bus.subscribe(PROBE_COMPLETED, probed.append)

    store = make_store(bus=bus, probe_on_start=False)
    store.save(provider="custom", endpoint="https://llm.internal/v1", credential="token", model="m")

    assert [c.provider for c in saved] == ["custom"]
    assert [p.ok for p in probed] == [True]


def test_stale_probe_does_not_override_newer_save(make_store):
    store = make_store(probe_on_start=False)
    store.save(provider="openai", credential="sk-" + "x" * 30)
    stale_generation = store._generation
    store.save(credential=None)

    store._run_probe(stale_generation, store.config.merged(credential="sk-" + "x" * 30))
    assert store.ready is False


def test_background_probe_with_default_executor(remote_host):
    store = ConfigStore(host=remote_host, session=ForbiddenSession())
    try:
        result = store.wait_for_probe(timeout=5)
        assert result.ok
        assert store.ready is True
    finally:
        store.close()


def test_json_file_storage(tmp_path, make_store):
    path = tmp_path / "nested" / "storage.json"
    storage = JsonFileStorage(path)
    assert storage.get_item(STORAGE_KEY) is None

    make_store(storage=storage).save(provider="anthropic", credential="sk-ant-" + "k" * 30)
    assert json.loads(path.read_text())[STORAGE_KEY]

    assert make_store(storage=JsonFileStorage(path)).config.provider == "anthropic"


def test_corrupt_storage_file_is_ignored(tmp_path, make_store):
    path = tmp_path / "storage.json"
    path.write_text("this is not json")
    store = make_store(storage=JsonFileStorage(path))
    assert store.config == GatewayConfig()

    store.save(provider="google")
    assert json.loads(path.read_text())[STORAGE_KEY]


def test_store_from_settings(tmp_path, executor, monkeypatch):
    monkeypatch.setenv("CODESHUI_STORAGE_PATH", str(tmp_path / "storage.json"))
    monkeypatch.setenv("CODESHUI_DIRECT_ACCESS", "no")
    monkeypatch.setenv("CODESHUI_RELAY_URL", "https://relay.example.com/")
    settings = RelaySettings.from_env()

    store = ConfigStore.from_settings(settings, executor=executor, session=ForbiddenSession())
    store.save(provider="openai", credential="sk-" + "x" * 30)

    assert store.host.is_local_host is False
    assert store.host.relay_url == "https://relay.example.com"
    assert store.ready is True
    assert (tmp_path / "storage.json").exists()
