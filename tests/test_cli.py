"""
Tests for the CLI — argument contract, modes, and output.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from postinstall.core.models.step import ExecutionMode
from postinstall.main import cli, resolve_mode


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch, offline_probes, target, mock_registry):
    """Route the use case to the mock registry and temp target user."""
    monkeypatch.setattr("postinstall.core.use_cases.setup.default_registry", lambda: mock_registry)
    monkeypatch.setattr("postinstall.core.use_cases.setup.resolve_target_user", lambda: target)
    monkeypatch.setattr("postinstall.core.context.running_as_bare_root", lambda: False)
    return target


def _audit(target) -> Path:
    return target.home / ".local" / "state" / "postinstall" / "audit.ndjson"


class TestArguments:
    def test_no_args_shows_usage(self):
        result = CliRunner().invoke(cli, [])
        assert result.exit_code == 0
        assert "Usage" in result.output
        assert "--dry-run" in result.output

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Post-install setup" in result.output

    def test_help_wins_over_everything(self, wired, small_config):
        result = CliRunner().invoke(cli, ["--run", "--bogus", "-c", str(small_config), "-h"])
        assert result.exit_code == 0
        assert "Usage" in result.output
        assert not _audit(wired).exists()

    def test_unknown_option(self):
        result = CliRunner().invoke(cli, ["--dry-run", "--bogus"])
        assert result.exit_code == 1
        assert "Unknown option: --bogus" in result.output
        assert "Usage" in result.output

    def test_stray_argument(self):
        result = CliRunner().invoke(cli, ["--dry-run", "extra"])
        assert result.exit_code == 1
        assert "Unknown option: extra" in result.output

    def test_no_mode(self):
        result = CliRunner().invoke(cli, ["-v"])
        assert result.exit_code == 1
        assert "No mode given" in result.output

    def test_bad_group(self):
        result = CliRunner().invoke(cli, ["--dry-run", "--only", "nope"])
        assert result.exit_code == 1

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestResolveMode:
    def test_modes(self):
        assert resolve_mode(run=True, dry_run=False) is ExecutionMode.APPLY
        assert resolve_mode(run=False, dry_run=True) is ExecutionMode.SIMULATE
        assert resolve_mode(run=False, dry_run=False) is None

    def test_run_wins(self):
        assert resolve_mode(run=True, dry_run=True) is ExecutionMode.APPLY


class TestDryRun:
    def test_reports_and_changes_nothing(self, wired, small_config, mocks):
        result = CliRunner().invoke(cli, ["--dry-run", "-c", str(small_config)])
        assert result.exit_code == 0, result.output
        assert "[DRY RUN]" in result.output
        assert "install_packages:curl" in result.output
        assert "would change" in result.output
        assert all(m.call_count == 0 for m in mocks.values())
        assert not _audit(wired).exists()

    def test_json(self, wired, small_config):
        result = CliRunner().invoke(cli, ["--dry-run", "--json", "-c", str(small_config)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["log"]["mode"] == "simulate"
        assert [e["step"] for e in data["log"]["entries"]] == [
            "install_packages:curl",
            "install_packages:git",
            "setup_tmux:tpm",
            "setup_tmux:config",
        ]
        assert data["audit_path"] is None


class TestRun:
    def test_applies_and_audits(self, wired, small_config, mocks):
        result = CliRunner().invoke(cli, ["--run", "-c", str(small_config)])
        assert result.exit_code == 0, result.output
        assert "✓ install_packages:curl" in result.output
        assert mocks["apt"].call_count == 2
        assert mocks["git"].call_count == 1
        lines = _audit(wired).read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["steps_applied"] == 4

    def test_run_and_dry_run_applies(self, wired, small_config, mocks):
        result = CliRunner().invoke(cli, ["--dry-run", "--run", "-c", str(small_config)])
        assert result.exit_code == 0
        assert mocks["apt"].call_count == 2
        assert "[DRY RUN]" not in result.output

    def test_no_audit(self, wired, small_config):
        result = CliRunner().invoke(cli, ["--run", "--no-audit", "-c", str(small_config)])
        assert result.exit_code == 0
        assert not _audit(wired).exists()

    def test_failed_steps_keep_exit_zero(self, wired, small_config, mocks):
        mocks["apt"].set_failure("install_packages:curl", error="E: Unable to locate package curl")
        result = CliRunner().invoke(cli, ["--run", "-c", str(small_config)])
        assert result.exit_code == 0
        assert "✗ install_packages:curl" in result.output
        assert "1 failed" in result.output
        assert mocks["apt"].call_count == 2

    def test_missing_prerequisite_shows_remedy(self, wired, small_config, mocks):
        mocks["git"].set_invalid("setup_tmux:tpm", error="'git' not found in PATH")
        result = CliRunner().invoke(cli, ["--run", "-c", str(small_config)])
        assert result.exit_code == 0
        assert "⚠ setup_tmux:tpm" in result.output

    def test_only(self, wired, small_config, mocks):
        result = CliRunner().invoke(cli, ["--run", "--only", "setup_tmux", "-c", str(small_config)])
        assert result.exit_code == 0
        assert mocks["apt"].call_count == 0
        assert mocks["git"].call_count == 1

    def test_quiet_prints_summary_only(self, wired, small_config):
        result = CliRunner().invoke(cli, ["--run", "-q", "-c", str(small_config)])
        assert result.exit_code == 0
        assert "install_packages:curl" not in result.output
        assert "Summary" in result.output

    def test_tmux_notice(self, wired, small_config):
        result = CliRunner().invoke(cli, ["--run", "-c", str(small_config)])
        assert "prefix + I" in result.output
        assert "reboot" in result.output

    def test_config_error(self, wired, tmp_path: Path):
        bad = tmp_path / "bad.yml"
        bad.write_text("packages: [unclosed\n")
        result = CliRunner().invoke(cli, ["--run", "-c", str(bad)])
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output

    def test_interrupted(self, monkeypatch: pytest.MonkeyPatch, wired, small_config):
        def interrupt(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr("postinstall.core.use_cases.setup.run_setup", interrupt)
        result = CliRunner().invoke(cli, ["--run", "-c", str(small_config)])
        assert result.exit_code == 130
        assert "Interrupted" in result.output

    def test_interrupted_mid_run_reports_and_audits(
        self, monkeypatch: pytest.MonkeyPatch, wired, small_config, mocks,
    ):
        def interrupt(context):
            raise KeyboardInterrupt

        monkeypatch.setattr(mocks["git"], "execute", interrupt)
        result = CliRunner().invoke(cli, ["--run", "-c", str(small_config)])
        assert result.exit_code == 130
        assert "✓ install_packages:curl" in result.output
        assert "✓ install_packages:git" in result.output
        assert "setup_tmux:config" not in result.output
        assert "Interrupted" in result.output
        assert mocks["apt"].call_count == 2

        lines = _audit(wired).read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["status"] == "interrupted"
        assert entry["steps_applied"] == 2

    def test_interrupted_json(self, monkeypatch: pytest.MonkeyPatch, wired, small_config, mocks):
        def interrupt(context):
            raise KeyboardInterrupt

        monkeypatch.setattr(mocks["git"], "execute", interrupt)
        result = CliRunner().invoke(cli, ["--run", "--json", "-q", "-c", str(small_config)])
        assert result.exit_code == 130
        data = json.loads(result.output)
        assert data["log"]["interrupted"] is True
        assert data["log"]["status"] == "interrupted"
        assert [e["step"] for e in data["log"]["entries"]] == [
            "install_packages:curl",
            "install_packages:git",
        ]


class TestList:
    def test_lists_in_order_without_running(self, wired, small_config, mocks):
        result = CliRunner().invoke(cli, ["--list", "-c", str(small_config)])
        assert result.exit_code == 0
        out = result.output
        assert out.index("install_packages:curl") < out.index("setup_tmux:config")
        assert all(m.call_count == 0 for m in mocks.values())

    def test_list_json(self, wired, small_config):
        result = CliRunner().invoke(cli, ["--list", "--json", "-c", str(small_config)])
        data = json.loads(result.output)
        assert data["steps"][0] == {
            "name": "install_packages:curl",
            "group": "install_packages",
            "description": "apt-get install -y curl",
        }
