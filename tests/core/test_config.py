"""Tests for site configuration."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from deltadeploy.core.config import (
    DEFAULT_MANIFEST_NAME,
    ConfigError,
    DeploymentConfig,
    SiteConfig,
    load_site_config,
)
from deltadeploy.core.types import DeployProtocol


def write_config(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestDeploymentConfig:
    """Tests for DeploymentConfig class."""

    def test_protocol_string_converted(self) -> None:
        """Should convert a protocol string to DeployProtocol."""
        config = DeploymentConfig(protocol="s3")
        assert config.protocol is DeployProtocol.S3

    def test_unknown_protocol_rejected(self) -> None:
        """Should raise ConfigError for an unknown protocol."""
        with pytest.raises(ConfigError, match="Unknown deployment protocol"):
            DeploymentConfig(protocol="gopher")

    def test_path_trailing_slash_removed(self) -> None:
        """Should strip trailing slashes and convert backslashes."""
        config = DeploymentConfig(protocol="ftp", path="public_html\\blog/")
        assert config.path == "public_html/blog"

    def test_capabilities_follow_protocol(self) -> None:
        """Should expose the capability profile of its protocol."""
        config = DeploymentConfig(protocol="google-cloud")
        assert config.capabilities.tracks_directories is False

    def test_from_dict_requires_protocol(self) -> None:
        """Should reject a deployment block without protocol."""
        with pytest.raises(ConfigError, match="protocol"):
            DeploymentConfig.from_dict({"path": "www"})

    def test_from_dict_rejects_non_object_options(self) -> None:
        """Should reject options that are not an object."""
        with pytest.raises(ConfigError, match="options"):
            DeploymentConfig.from_dict({"protocol": "s3", "options": ["bucket"]})


class TestSiteConfig:
    """Tests for SiteConfig class."""

    def test_log_dir_defaults_to_config_dir(self, tmp_path: Path) -> None:
        """Should write audit logs next to the snapshot cache by default."""
        config = SiteConfig(
            name="blog",
            input_dir=tmp_path / "output",
            config_dir=tmp_path / ".deploy",
            deployment=DeploymentConfig(protocol="sftp"),
        )
        assert config.log_dir == tmp_path / ".deploy"
        assert config.manifest_name == DEFAULT_MANIFEST_NAME

    def test_target_key_distinguishes_targets(self, tmp_path: Path) -> None:
        """Should build different keys for different buckets."""
        first = SiteConfig(
            name="a",
            input_dir=tmp_path,
            config_dir=tmp_path,
            deployment=DeploymentConfig(protocol="s3", options={"bucket": "one"}),
        )
        second = SiteConfig(
            name="b",
            input_dir=tmp_path,
            config_dir=tmp_path,
            deployment=DeploymentConfig(protocol="s3", options={"bucket": "two"}),
        )
        assert first.target_key != second.target_key


class TestLoadSiteConfig:
    """Tests for load_site_config()."""

    def test_relative_paths_resolved_against_config_file(self, tmp_path: Path) -> None:
        """Should resolve directories relative to the config file."""
        path = write_config(
            tmp_path / "site.json",
            {"name": "blog", "deployment": {"protocol": "manual", "options": {"target_dir": "x"}}},
        )

        config = load_site_config(path)

        assert config.name == "blog"
        assert config.input_dir == tmp_path.resolve() / "output"
        assert config.config_dir == tmp_path.resolve() / ".deploy"
        assert config.log_dir == config.config_dir
        assert config.deployment.protocol is DeployProtocol.MANUAL
        assert config.deployment.options == {"target_dir": "x"}

    def test_explicit_values(self, tmp_path: Path) -> None:
        """Should honor every explicit setting."""
        path = write_config(
            tmp_path / "site.json",
            {
                "name": "docs",
                "input_dir": "build",
                "config_dir": "state",
                "log_dir": "logs",
                "manifest_name": "files.publii.json",
                "deployment": {"protocol": "s3", "path": "site/"},
            },
        )

        config = load_site_config(path)

        assert config.input_dir == tmp_path.resolve() / "build"
        assert config.config_dir == tmp_path.resolve() / "state"
        assert config.log_dir == tmp_path.resolve() / "logs"
        assert config.manifest_name == "files.publii.json"
        assert config.deployment.path == "site"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Should raise ConfigError for a missing file."""
        with pytest.raises(ConfigError, match="not found"):
            load_site_config(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path: Path) -> None:
        """Should raise ConfigError for invalid JSON."""
        path = tmp_path / "site.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Cannot read"):
            load_site_config(path)

    def test_missing_deployment_block(self, tmp_path: Path) -> None:
        """Should raise ConfigError without a deployment block."""
        path = write_config(tmp_path / "site.json", {"name": "blog"})
        with pytest.raises(ConfigError, match="deployment"):
            load_site_config(path)

    def test_non_object_document(self, tmp_path: Path) -> None:
        """Should raise ConfigError for a JSON array."""
        path = write_config(tmp_path / "site.json", [])
        with pytest.raises(ConfigError, match="JSON object"):
            load_site_config(path)
