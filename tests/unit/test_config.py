"""
Tests for configuration loading.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from validatebag.config import ValidateBagConfig, load_allowed_licenses, load_config


def _write_yaml(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config(None)
        assert config.server.port == 20180
        assert config.bag_store.store_name == "pdbs"
        assert config.schemas.agreements is None
        assert config.schemas.provenance is None
        assert config.allowed_licenses == ["http://creativecommons.org/publicdomain/zero/1.0"]

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        assert load_config(tmp_path / "absent.yaml").server.port == 20180

    def test_yaml_values(self, tmp_path: Path):
        path = _write_yaml(
            tmp_path,
            "server:\n  port: 8080\nbag_store:\n  base_url: http://store:20110\n",
        )
        config = load_config(path)
        assert config.server.port == 8080
        assert config.bag_store.base_url == "http://store:20110"
        assert config.bag_store.store_name == "pdbs"

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        path = _write_yaml(tmp_path, "bag_store:\n  base_url: http://store:20110\n  store_name: pdbs\n")
        monkeypatch.setenv("VALIDATEBAG_BAG_STORE__BASE_URL", "http://other:20110")
        config = load_config(path)
        assert config.bag_store.base_url == "http://other:20110"
        assert config.bag_store.store_name == "pdbs"

    def test_licenses_file_relative_to_yaml(self, tmp_path: Path):
        (tmp_path / "licenses.txt").write_text(
            "# allowed\nhttps://creativecommons.org/licenses/by/4.0/\n\nhttp://opensource.org/licenses/MIT\n",
            encoding="utf-8",
        )
        path = _write_yaml(tmp_path, "allowed_licenses_file: licenses.txt\n")
        assert load_config(path).allowed_licenses == [
            "http://creativecommons.org/licenses/by/4.0",
            "http://opensource.org/licenses/MIT",
        ]

    def test_shipped_default_config(self):
        path = Path(__file__).resolve().parents[2] / "config" / "default.yaml"
        config = load_config(path)
        assert "http://creativecommons.org/publicdomain/zero/1.0" in config.allowed_licenses
        assert config.schemas.agreements is not None
        assert config.schemas.provenance.endswith("provenance.xsd")
        assert "bagit" in config.logging.quiet_loggers


class TestAllowedLicenses:
    def test_normalised(self):
        config = ValidateBagConfig(allowed_licenses=["https://example.org/license/", "  "])
        assert config.allowed_licenses == ["http://example.org/license"]

    def test_non_http_scheme_rejected(self):
        with pytest.raises(ValidationError):
            ValidateBagConfig(allowed_licenses=["ftp://example.org/license"])

    def test_comment_lines_skipped(self, tmp_path: Path):
        path = tmp_path / "l.txt"
        path.write_text("  # note\nhttp://a.org/l\n", encoding="utf-8")
        assert load_allowed_licenses(path) == ["http://a.org/l"]
