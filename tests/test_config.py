"""
Tests for configuration loading, duration parsing and command-line overrides.
"""

import pytest
import yaml

from ntp_exporter.config import (
    ConfigError, DriftComparison, ExporterConfig, MeasurementConfig,
    config_from_dict, load_config_file, parse_duration, parse_protocol_version,
    split_listen_address,
    with_overrides,
)
from ntp_exporter.main import build_parser, build_registry, resolve_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "ntp_exporter.yaml"
    path.write_text(yaml.dump({
        'ntp': {
            'server': 'time.example.com',
            'protocol_version': 3,
            'measurement_duration': '10s',
            'query_timeout': '500ms',
            'drift_comparison': 'absolute',
        },
        'web': {'listen_address': '127.0.0.1:9100', 'telemetry_path': '/ntp'},
        'logging': {'level': 'debug'},
    }))
    return path


class TestParseDuration:
    """Test Go-style duration parsing"""

    @pytest.mark.parametrize("text,seconds", [
        ("30s", 30.0),
        ("1m30s", 90.0),
        ("500ms", 0.5),
        ("2h", 7200.0),
        ("1.5s", 1.5),
        ("0", 0.0),
        ("45", 45.0),
        ("250us", 0.00025),
    ])
    def test_valid(self, text, seconds):
        assert parse_duration(text) == pytest.approx(seconds)

    def test_numbers_are_seconds(self):
        assert parse_duration(12) == 12.0
        assert parse_duration(0.25) == 0.25

    @pytest.mark.parametrize("text", ["", "abc", "10x", "s", "1m 30s", "-5s", "5s3",
                                      "inf", "nan", "1e400", "-inf"])
    def test_invalid(self, text):
        with pytest.raises(ConfigError):
            parse_duration(text)

    def test_bool_rejected(self):
        with pytest.raises(ConfigError):
            parse_duration(True)

    def test_non_finite_numbers_rejected(self):
        with pytest.raises(ConfigError):
            parse_duration(float("inf"))
        with pytest.raises(ConfigError):
            parse_duration(float("nan"))


class TestMeasurementConfig:
    """Validation of MeasurementConfig"""

    def test_defaults(self):
        config = MeasurementConfig()
        assert config.server == "pool.ntp.org"
        assert config.protocol_version == 4
        assert config.measurement_duration == 30.0
        assert config.drift_comparison is DriftComparison.SIGNED

    @pytest.mark.parametrize("version", [1, 5, 0])
    def test_bad_protocol_version(self, version):
        with pytest.raises(ConfigError):
            MeasurementConfig(protocol_version=version)

    def test_negative_duration(self):
        with pytest.raises(ConfigError):
            MeasurementConfig(measurement_duration=-1.0)

    @pytest.mark.parametrize("field", ["measurement_duration", "query_timeout"])
    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_non_finite_durations(self, field, value):
        with pytest.raises(ConfigError):
            MeasurementConfig(**{field: value})

    def test_empty_server(self):
        with pytest.raises(ConfigError):
            MeasurementConfig(server="")

    def test_frozen(self):
        config = MeasurementConfig()
        with pytest.raises(AttributeError):
            config.server = "other"


class TestExporterConfig:
    """Validation and loading of ExporterConfig"""

    def test_defaults(self):
        config = ExporterConfig()
        assert config.listen_address == ":9559"
        assert config.telemetry_path == "/metrics"

    def test_telemetry_path_must_be_absolute(self):
        with pytest.raises(ConfigError):
            ExporterConfig(telemetry_path="metrics")

    def test_telemetry_path_not_root(self):
        with pytest.raises(ConfigError):
            ExporterConfig(telemetry_path="/")

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError):
            ExporterConfig(log_level="LOUD")

    def test_load_file(self, config_file):
        config = config_from_dict(load_config_file(config_file))

        assert config.measurement.server == 'time.example.com'
        assert config.measurement.protocol_version == 3
        assert config.measurement.measurement_duration == 10.0
        assert config.measurement.query_timeout == 0.5
        assert config.measurement.drift_comparison is DriftComparison.ABSOLUTE
        assert config.listen_address == '127.0.0.1:9100'
        assert config.telemetry_path == '/ntp'
        assert config.log_level == 'DEBUG'

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert config_from_dict(load_config_file(path)) == ExporterConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_file(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("ntp: [unclosed")
        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_bad_values_in_file(self):
        with pytest.raises(ConfigError):
            config_from_dict({'ntp': {'protocol_version': 'four'}})
        with pytest.raises(ConfigError):
            config_from_dict({'ntp': {'protocol_version': 3.9}})
        with pytest.raises(ConfigError):
            config_from_dict({'ntp': {'measurement_duration': 'inf'}})
        with pytest.raises(ConfigError):
            config_from_dict({'ntp': {'drift_comparison': 'sideways'}})


class TestOverrides:
    """Command-line overrides"""

    def test_none_values_ignored(self):
        config = ExporterConfig()
        assert with_overrides(config, server=None, log_level=None) == config

    def test_measurement_and_web_overrides(self):
        config = with_overrides(ExporterConfig(), server='time.example.com',
                                measurement_duration='1m', drift_comparison='absolute',
                                telemetry_path='/ntp', log_level='warning')

        assert config.measurement.server == 'time.example.com'
        assert config.measurement.measurement_duration == 60.0
        assert config.measurement.drift_comparison is DriftComparison.ABSOLUTE
        assert config.telemetry_path == '/ntp'
        assert config.log_level == 'WARNING'

    def test_override_validated(self):
        with pytest.raises(ConfigError):
            with_overrides(ExporterConfig(), protocol_version=7)

    def test_non_finite_durations_rejected(self):
        with pytest.raises(ConfigError):
            with_overrides(ExporterConfig(), measurement_duration="inf")
        with pytest.raises(ConfigError):
            with_overrides(ExporterConfig(), query_timeout="1e400")

    def test_fractional_protocol_version_rejected(self):
        with pytest.raises(ConfigError):
            with_overrides(ExporterConfig(), protocol_version=3.9)

    def test_bad_drift_comparison(self):
        with pytest.raises(ConfigError):
            with_overrides(ExporterConfig(), drift_comparison='sideways')


class TestListenAddress:

    def test_port_only(self):
        assert split_listen_address(":9559") == ("", 9559)

    def test_host_and_port(self):
        assert split_listen_address("127.0.0.1:9100") == ("127.0.0.1", 9100)

    def test_ipv6(self):
        assert split_listen_address("[::1]:9100") == ("::1", 9100)

    @pytest.mark.parametrize("address", ["9559", "host:port", ":70000"])
    def test_invalid(self, address):
        with pytest.raises(ConfigError):
            split_listen_address(address)


class TestCommandLine:
    """Flags, file and defaults resolved together"""

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert resolve_config(args) == ExporterConfig()

    def test_flags_override_file(self, config_file):
        args = build_parser().parse_args([
            '--config', str(config_file),
            '--ntp.server', 'other.example.com',
            '--ntp.measurement-duration', '5s',
        ])

        config = resolve_config(args)

        assert config.measurement.server == 'other.example.com'
        assert config.measurement.measurement_duration == 5.0
        assert config.measurement.protocol_version == 3
        assert config.telemetry_path == '/ntp'

    def test_dotted_flags(self):
        args = build_parser().parse_args([
            '--ntp.protocol-version', '3',
            '--ntp.query-timeout', '2s',
            '--ntp.drift-comparison', 'absolute',
            '--web.listen-address', ':9000',
            '--web.telemetry-path', '/probe',
            '--log.level', 'debug',
            '--debug',
        ])

        config = resolve_config(args)

        assert config.measurement.protocol_version == 3
        assert config.measurement.query_timeout == 2.0
        assert config.measurement.drift_comparison is DriftComparison.ABSOLUTE
        assert config.listen_address == ':9000'
        assert config.telemetry_path == '/probe'
        assert config.log_level == 'DEBUG'
        assert config.debug is True

    def test_build_registry_does_not_measure(self):
        registry = build_registry(ExporterConfig())
        assert registry is not None


class TestParseProtocolVersion:

    @pytest.mark.parametrize("value,expected", [(4, 4), ("3", 3), (2.0, 2)])
    def test_integral_values(self, value, expected):
        assert parse_protocol_version(value) == expected

    @pytest.mark.parametrize("value", [3.9, "3.9", True, None, "four"])
    def test_rejected(self, value):
        with pytest.raises(ConfigError):
            parse_protocol_version(value)
