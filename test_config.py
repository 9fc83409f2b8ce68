"""
Test Dashboard Configuration
============================

Usage:
    python test_config.py
"""

from pathlib import Path

from isotherm_store import DashboardConfig, DrawingConfig, MQTTConfig, WindowConfig

CONFIG_PATH = Path(__file__).parent / "config" / "isotherm" / "dashboard.yaml"


def test_load_example_config():
    config = DashboardConfig.from_yaml(CONFIG_PATH)

    assert config.service_id == "dashboard_01"
    assert config.default_field == "temperature_2m"
    assert config.fields == ("temperature_2m", "relative_humidity_2m", "precipitation")
    assert [rule.rule_id for rule in config.rules] == ["rule1", "rule2", "rule3", "rule4"]
    assert config.drawing_config.finalize_delay_s == 1.5
    assert config.window_config.horizon == 720
    assert config.source_config.source_id == "open-meteo"
    assert config.topics == {
        'region': "isotherm/data/regions/dashboard_01",
        'command': "isotherm/control/dashboard_01/commands",
        'status': "isotherm/control/dashboard_01/status",
    }


def test_minimal_config_uses_defaults():
    config = DashboardConfig.from_dict({'service_id': "dash"})

    assert config.fields == ("temperature_2m",)
    assert len(config.rules) == 4
    assert config.window_config.default_end == 24
    assert config.mqtt_config.qos == 1


def test_missing_file():
    try:
        DashboardConfig.from_yaml(Path("does/not/exist.yaml"))
        assert False, "Expected FileNotFoundError"
    except FileNotFoundError:
        pass


def test_invalid_configs_rejected():
    cases = [
        {'service_id': ""},
        {'service_id': "d", 'default_field': "precipitation", 'fields': ["temperature_2m"]},
        {'service_id': "d", 'rules': [{'operator': "~", 'threshold': 1, 'color': "#ffffff"}]},
        {'service_id': "d", 'source_config': {'timeout_s': 0}},
        {'service_id': "d", 'drawing_config': {'finalize_delay_s': 0}},
        {'service_id': "d", 'drawing_config': {'min_vertices': 2}},
        {'service_id': "d", 'window_config': {'horizon': 100}},
        {'service_id': "d", 'window_config': {'default_start': 30, 'default_end': 10}},
        {'service_id': "d", 'mqtt_config': {'qos': 3}},
        {'service_id': "d", 'mqtt_config': {'port': 0}},
    ]
    for data in cases:
        try:
            DashboardConfig.from_dict(data)
            assert False, f"Expected ValueError for {data}"
        except ValueError:
            pass


def test_component_configs():
    assert DrawingConfig(min_vertices=4, max_vertices=8).max_vertices == 8
    assert WindowConfig(horizon=48, span_days=1, default_end=48).default_end == 48

    topics = MQTTConfig(region_topic="maps/{service_id}/regions").topics_for("east")
    assert topics['region'] == "maps/east/regions"
    assert topics['command'] == "isotherm/control/east/commands"


def main():
    """Run all tests."""
    print("\nisotherm_store - Config Tests")
    print("=" * 60)

    test_load_example_config()
    test_minimal_config_uses_defaults()
    test_missing_file()
    test_invalid_configs_rejected()
    test_component_configs()

    print("✅ ALL TESTS PASSED!")


if __name__ == "__main__":
    main()
