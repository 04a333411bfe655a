import pytest

from dbacl.core.config import (
    SECURITY_CONFIG_FILE,
    SECURITY_REFRESH_PERIOD,
    FileBasedAccessControlConfig,
    load_properties,
    parse_duration,
)
from dbacl.core.errors import ConfigurationError


@pytest.mark.parametrize(
    "value, seconds",
    [
        ("1ms", 0.001),
        ("30s", 30.0),
        ("1.5h", 5400.0),
        ("2m", 120.0),
        ("1d", 86400.0),
        (" 10 s ", 10.0),
        ("0s", 0.0),
    ],
)
def test_parse_duration(value: str, seconds: float):
    assert parse_duration(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["", "10", "ms", "-1s", "1 week", "1.s"])
def test_parse_duration_rejects_invalid_input(value: str):
    with pytest.raises(ConfigurationError, match="Invalid duration"):
        parse_duration(value)


def test_file_config_from_properties():
    config = FileBasedAccessControlConfig.from_properties(
        {SECURITY_CONFIG_FILE: " etc/rules.json ", SECURITY_REFRESH_PERIOD: "5s"}
    )

    assert str(config.config_file) == "etc/rules.json"
    assert config.refresh_period == 5.0


def test_file_config_defaults_to_no_refresh():
    config = FileBasedAccessControlConfig.from_properties({SECURITY_CONFIG_FILE: "rules.json"})

    assert config.refresh_period is None


def test_load_properties(tmp_path):
    path = tmp_path / "access-control.properties"
    path.write_text(
        "# comment\n"
        "! also a comment\n"
        "\n"
        "access-control.name = file\n"
        "security.config-file=/etc/rules.json\n"
        "security.refresh-period=a=b\n"
    )

    assert load_properties(path) == {
        "access-control.name": "file",
        "security.config-file": "/etc/rules.json",
        "security.refresh-period": "a=b",
    }


def test_load_properties_rejects_lines_without_value(tmp_path):
    path = tmp_path / "access-control.properties"
    path.write_text("access-control.name\n")

    with pytest.raises(ConfigurationError, match=":1: expected key=value"):
        load_properties(path)
