"""Tests for batch configuration and batch runs."""

from pathlib import Path

import pytest

from seedforge.config import ConfigError, SeedConfig, SeedTarget
from seedforge.core.sidecars import read_stamp
from seedforge.core.version import VersionOrigin
from seedforge.reconcile.batch import run_batch
from seedforge.reconcile.driver import ReconcileAction

from tree_utils import FixedClock, read_tree, write_tree


CONFIG_YAML = """
backup_prefix: pre_upgrade
targets:
  - name: emqx-etc
    source: vendor/emqx/etc
    target: data/emqx/etc
    release_file: vendor/emqx/releases/emqx_vars
    version_prefix: "emqx-"
  - name: gateway-conf
    source: vendor/gateway/conf
    target: data/gateway/conf
    version: "2.1.0"
    required: false
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A config file with one release-file target and one explicit target."""
    write_tree(tmp_path / "vendor" / "emqx" / "etc", {"emqx.conf": "node {}"})
    write_tree(tmp_path / "vendor" / "emqx" / "releases", {"emqx_vars": 'REL_VSN="5.8.1"\n'})
    path = tmp_path / "seed.yaml"
    path.write_text(CONFIG_YAML)
    return path


class TestSeedConfig:
    """Tests for loading configs."""

    def test_from_yaml_resolves_relative_paths(self, config_file, tmp_path):
        """Relative paths should be resolved against the config directory."""
        config = SeedConfig.from_yaml(config_file)
        emqx = config.get_target("emqx-etc")
        assert emqx.source == tmp_path / "vendor" / "emqx" / "etc"
        assert emqx.release_file == tmp_path / "vendor" / "emqx" / "releases" / "emqx_vars"
        assert emqx.required is True
        assert config.get_target("gateway-conf").required is False
        assert config.get_target("missing") is None

    def test_absolute_paths_kept(self, tmp_path):
        """Absolute paths should not be rebased."""
        config = SeedConfig.from_dict(
            {"targets": [{"name": "a", "source": "/opt/a", "target": "/data/a"}]},
            base_dir=tmp_path,
        )
        assert config.targets[0].source == Path("/opt/a")

    def test_defaults(self):
        """An empty config should be valid with defaults."""
        config = SeedConfig.from_dict({})
        assert config.backup_prefix == "pre_upgrade"
        assert config.targets == []

    def test_empty_file(self, tmp_path):
        """An empty YAML file should load as an empty config."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert SeedConfig.from_yaml(path).targets == []

    @pytest.mark.parametrize(
        "data",
        [
            {"targets": [{"name": "a", "source": "/s"}]},
            {"targets": [{"name": " ", "source": "/s", "target": "/t"}]},
            {"backup_prefix": "a/b"},
            {
                "targets": [
                    {"name": "a", "source": "/s", "target": "/t"},
                    {"name": "a", "source": "/s2", "target": "/t2"},
                ]
            },
        ],
    )
    def test_invalid(self, data):
        """Invalid configs should raise ConfigError."""
        with pytest.raises(ConfigError):
            SeedConfig.from_dict(data)

    def test_bad_yaml(self, tmp_path):
        """Unparsable YAML should raise ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("targets: [unclosed")
        with pytest.raises(ConfigError):
            SeedConfig.from_yaml(path)

    def test_non_mapping(self, tmp_path):
        """A YAML list at the top level should be rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            SeedConfig.from_yaml(path)

    def test_unreadable(self, tmp_path):
        """A missing file should raise ConfigError."""
        with pytest.raises(ConfigError):
            SeedConfig.from_yaml(tmp_path / "nope.yaml")

    def test_target_resolves_version(self, config_file):
        """Targets should resolve versions through the release file."""
        config = SeedConfig.from_yaml(config_file)
        resolved = config.get_target("emqx-etc").resolve_version()
        assert resolved.value == "emqx-5.8.1"
        assert resolved.origin == VersionOrigin.RELEASE_FILE

    def test_target_is_frozen(self):
        """Targets should be immutable."""
        target = SeedTarget(name="a", source=Path("/s"), target=Path("/t"))
        with pytest.raises(Exception):
            target.name = "b"


class TestRunBatch:
    """Tests for batch runs."""

    def test_optional_failure_does_not_fail_batch(self, config_file, tmp_path):
        """A missing optional source should be skipped."""
        config = SeedConfig.from_yaml(config_file)

        batch = run_batch(config, clock=FixedClock())

        assert batch
        emqx, gateway = batch.outcomes
        assert emqx.result.action == ReconcileAction.SEED
        assert emqx.version_origin == "release_file"
        assert read_stamp(tmp_path / "data" / "emqx" / "etc") == "emqx-5.8.1"
        assert gateway.result.action == ReconcileAction.FAIL
        assert batch.failed == [gateway]

    def test_required_failure_fails_batch(self, tmp_path):
        """A missing required source should fail the batch."""
        config = SeedConfig.from_dict(
            {"targets": [{"name": "x", "source": "nope", "target": "out"}]},
            base_dir=tmp_path,
        )
        batch = run_batch(config)
        assert not batch
        assert batch.to_dict()["success"] is False

    def test_second_run_skips(self, config_file, tmp_path):
        """Rerunning with unchanged vendor versions should skip."""
        config = SeedConfig.from_yaml(config_file)
        run_batch(config)
        (tmp_path / "data" / "emqx" / "etc" / "emqx.conf").write_text("mine")

        batch = run_batch(config)

        assert batch.outcomes[0].result.action == ReconcileAction.SKIP
        assert read_tree(tmp_path / "data" / "emqx" / "etc") == {"emqx.conf": "mine"}

    def test_upgrade_through_release_file(self, config_file, tmp_path):
        """A new release file version should refresh the target."""
        config = SeedConfig.from_yaml(config_file)
        clock = FixedClock()
        run_batch(config, clock=clock)
        write_tree(tmp_path / "vendor" / "emqx" / "releases", {"emqx_vars": "REL_VSN=5.9.0\n"})
        write_tree(tmp_path / "vendor" / "emqx" / "etc", {"emqx.conf": "node { v2 }"})
        clock.advance(10)

        batch = run_batch(config, clock=clock)

        result = batch.outcomes[0].result
        assert result.action == ReconcileAction.REFRESH
        assert result.previous_version == "emqx-5.8.1"
        assert result.version == "emqx-5.9.0"
        assert result.backup_path.name == "etc.pre_upgrade_1700000010"
