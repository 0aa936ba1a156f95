"""
Tests for the YAML configuration loader and the ``get_active_config``
entry point.
"""

import pytest
import yaml

from wholesale_config import DEFAULT_CONFIG_PATH, get_active_config
from wholesale_config.loader import compute_checksum, load_yaml_file, parse_document
from wholesale_modules.purchasing.config import PurchasingConfig
from wholesale_modules.sales.config import SalesConfig


def _write(tmp_path, document, name="custom.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(document))
    return path


class TestDefaultConfig:

    def test_packaged_default_loads(self, captured_logs):
        config = get_active_config()

        assert config.config_id == "WHOLESALE-DEFAULT"
        assert config.version == 1
        assert config.log_level == "INFO"
        assert config.purchasing == PurchasingConfig()
        assert config.sales == SalesConfig()
        assert any(r["message"] == "wholesale_config_loaded" for r in captured_logs())

    def test_checksum_is_stable(self):
        assert get_active_config().checksum == get_active_config().checksum
        assert get_active_config().checksum == compute_checksum(load_yaml_file(DEFAULT_CONFIG_PATH))


class TestCustomConfig:

    def test_overrides_and_defaults(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "config_id": "TEST",
                "version": 3,
                "log_level": "debug",
                "purchasing": {"overdue_after_days": 45},
                "sales": {"picking_backdate_limit_days": 2},
            },
        )
        config = get_active_config(path)

        assert config.config_id == "TEST"
        assert config.version == 3
        assert config.log_level == "DEBUG"
        assert config.purchasing.overdue_after_days == 45
        assert config.purchasing.future_date_tolerance_days == 1
        assert config.sales.picking_backdate_limit_days == 2

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = get_active_config(path)
        assert config.config_id == "empty"
        assert config.purchasing == PurchasingConfig()

    def test_checksum_tracks_content(self, tmp_path):
        a = get_active_config(_write(tmp_path, {"purchasing": {"overdue_after_days": 30}}, "a.yaml"))
        b = get_active_config(_write(tmp_path, {"purchasing": {"overdue_after_days": 31}}, "b.yaml"))
        assert a.checksum != b.checksum

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestRejection:

    def test_unknown_top_level_key(self):
        with pytest.raises(ValueError, match=r"Unknown configuration keys: \['inventory'\]"):
            parse_document({"inventory": {}})

    def test_unknown_section_key(self):
        with pytest.raises(ValueError, match="Unknown sales config keys"):
            parse_document({"sales": {"picking_window": 3}})

    def test_out_of_range_value(self):
        with pytest.raises(ValueError, match="overdue_after_days"):
            parse_document({"purchasing": {"overdue_after_days": -1}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            parse_document({"purchasing": [1, 2]})

    def test_document_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_bad_log_level(self):
        with pytest.raises(ValueError, match="log_level"):
            parse_document({"log_level": "LOUD"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nowhere.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("sales: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            get_active_config(path)
