import json

import pytest
import yaml

from emission.config import (EmissionConfig, from_env, from_file, load,
                             pretty)
from emission.errors import ConfigError, InvalidTimeWindow, ZeroEmissionRate


def test_defaults_validate(env_clean):
    cfg = EmissionConfig()
    cfg.validate()
    sc = cfg.stream_config()
    assert sc.window_length == 365 * 86_400
    assert sc.total_allocation == cfg.schedule.allocation_per_entity * cfg.schedule.entity_count


def test_env_overrides(env_clean, monkeypatch):
    monkeypatch.setenv("EMISSION_START_TIME", "100")
    monkeypatch.setenv("EMISSION_END_TIME", "1_100")
    monkeypatch.setenv("EMISSION_ALLOCATION_PER_ENTITY", "5000")
    monkeypatch.setenv("EMISSION_OPERATOR", "0x" + "0E" * 20)
    monkeypatch.setenv("EMISSION_LOG_LEVEL", "debug")
    cfg = from_env()
    assert (cfg.schedule.start_time, cfg.schedule.end_time) == (100, 1100)
    assert cfg.stream_config().emission_rate_per_second == 5
    assert cfg.roles.operator == "0x" + "0E" * 20
    assert cfg.log_level == "DEBUG"


def test_env_errors_are_config_errors(env_clean, monkeypatch):
    monkeypatch.setenv("EMISSION_ENTITY_COUNT", "many")
    with pytest.raises(ConfigError):
        from_env()


@pytest.mark.parametrize(
    "key, value, exc",
    [
        ("EMISSION_END_TIME", "1", InvalidTimeWindow),
        ("EMISSION_ALLOCATION_PER_ENTITY", "1", ZeroEmissionRate),
        ("EMISSION_OWNER", "0x" + "00" * 20, ConfigError),
        ("EMISSION_DEPOSITOR", "not-an-address", ConfigError),
        ("EMISSION_LOG_LEVEL", "chatty", ConfigError),
    ],
)
def test_invalid_values_rejected(env_clean, monkeypatch, key, value, exc):
    monkeypatch.setenv(key, value)
    with pytest.raises(exc):
        from_env()


def test_from_json_and_yaml(env_clean, tmp_path):
    data = {
        "schedule": {"start_time": 2, "end_time": 12, "allocation_per_entity": 10, "entity_count": 4},
        "token": {"symbol": "EMT", "decimals": 6},
        "log_level": "warning",
    }
    jp = tmp_path / "cfg.json"
    jp.write_text(json.dumps(data), encoding="utf-8")
    yp = tmp_path / "cfg.yaml"
    yp.write_text(yaml.safe_dump(data), encoding="utf-8")

    for path in (jp, yp):
        cfg = from_file(path)
        assert cfg.stream_config().total_allocation == 40
        assert cfg.token.symbol == "EMT"
        assert cfg.log_level == "WARNING"


def test_from_file_errors(env_clean, tmp_path):
    with pytest.raises(FileNotFoundError):
        from_file(tmp_path / "missing.json")
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        from_file(bad)


def test_load_layers_env_over_file(env_clean, monkeypatch, tmp_path):
    p = tmp_path / "cfg.yml"
    p.write_text(yaml.safe_dump({"schedule": {"start_time": 2, "end_time": 12, "allocation_per_entity": 10}}), encoding="utf-8")
    monkeypatch.setenv("EMISSION_CONFIG_FILE", str(p))
    monkeypatch.setenv("EMISSION_ENTITY_COUNT", "3")
    cfg = load()
    assert cfg.schedule.end_time == 12
    assert cfg.stream_config().total_allocation == 30


def test_pretty_includes_derived_values(env_clean):
    out = json.loads(pretty(EmissionConfig()))
    assert out["derived"]["emission_rate_per_second"] > 0
    assert out["roles"]["operator"] == "0x" + "00" * 20
