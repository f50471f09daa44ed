"""
Tests for the step catalog — ordering, checks, and end-to-end runs
through mock and real adapters.
"""

from pathlib import Path

import pytest

from postinstall.adapters.shell.filesystem import FilesystemAdapter
from postinstall.core.config.loader import load_config
from postinstall.core.data import DEFAULT_SETUP_FILE
from postinstall.core.engine.executor import run_steps
from postinstall.core.models.config import SetupConfig
from postinstall.core.models.log import ExecutionLog, LogEntry, StepOutcome
from postinstall.core.models.step import ExecutionMode
from postinstall.core.services import probes
from postinstall.core.services.steps import (
    GROUPS,
    StepBuilder,
    UnknownGroupError,
    build_steps,
    completion_notices,
)


def _groups(steps) -> list[str]:
    seen: list[str] = []
    for s in steps:
        if s.group not in seen:
            seen.append(s.group)
    return seen


def _by_name(steps):
    return {s.name: s for s in steps}


# ── Catalog Structure ────────────────────────────────────────────────


class TestBuildSteps:
    @pytest.fixture
    def steps(self, offline_probes, target, mock_registry):
        return build_steps(load_config(DEFAULT_SETUP_FILE), target, mock_registry)

    def test_phase_order(self, steps):
        assert _groups(steps) == list(GROUPS)

    def test_names_unique(self, steps):
        names = [s.name for s in steps]
        assert len(names) == len(set(names))

    def test_update_system_first(self, steps):
        assert [s.name for s in steps[:5]] == [
            "update_system:update",
            "update_system:full-upgrade",
            "update_system:dist-upgrade",
            "update_system:autoremove",
            "update_system:autoclean",
        ]
        assert steps[0].description == "apt-get update"
        assert steps[1].description == "apt-get full-upgrade -y"

    def test_one_step_per_package(self, steps):
        packages = [s.name for s in steps if s.group == "install_packages"]
        assert packages[0] == "install_packages:firmware-linux"
        assert "install_packages:pipx" in packages
        assert len(packages) == 12

    def test_audio_restart_follows_changes(self, steps):
        restart = _by_name(steps)["fix_audio:restart-services"]
        assert restart.after == (
            "fix_audio:install-wireplumber",
            "fix_audio:config-dir",
            "fix_audio:alsa-config",
        )
        assert restart.description == "systemctl --user restart wireplumber pipewire pipewire-pulse"

    def test_repository_steps(self, steps):
        names = [s.name for s in steps if s.group == "install_apt_repositories"]
        assert names == [
            "install_apt_repositories:sublime-text:key",
            "install_apt_repositories:sublime-text:sources",
            "install_apt_repositories:sublime-text:apt-update",
            "install_apt_repositories:sublime-text:install",
        ]

    def test_paths_rendered_for_target(self, steps, target):
        by_name = _by_name(steps)
        assert by_name["setup_tmux:config"].description == f"Write tmux config to {target.home}/.tmux.conf"
        go = by_name["install_go_tools:kerbrute"].description
        assert go == "(as tester) go install github.com/ropnop/kerbrute@latest"

    def test_only_keeps_phase_order(self, offline_probes, target, mock_registry):
        config = load_config(DEFAULT_SETUP_FILE)
        steps = build_steps(config, target, mock_registry, only=["setup_tmux", "update_system"])
        assert _groups(steps) == ["update_system", "setup_tmux"]

    def test_unknown_group(self, target, mock_registry):
        with pytest.raises(UnknownGroupError, match="bogus"):
            build_steps(SetupConfig(), target, mock_registry, only=["bogus"])

    def test_disabled_sections_build_nothing(self, target, mock_registry):
        config = SetupConfig(
            system_update={"enabled": False},
            audio={"enabled": False},
            golang={"enabled": False},
            tmux={"enabled": False},
            python_tools={"pipx_ensurepath": False},
        )
        assert build_steps(config, target, mock_registry) == []


class TestStepBuilder:
    def test_variables(self, target, mock_registry):
        b = StepBuilder(registry=mock_registry, target=target, variables={"gopath": "/opt/go"})
        assert b.render("{home}/x {user} {gopath}") == f"{target.home}/x tester /opt/go"
        assert b.owner == [target.uid, target.gid]

    def test_action_dispatches_through_registry(self, target, mock_registry, mocks):
        b = StepBuilder(registry=mock_registry, target=target)
        step = b.step(
            name="demo", group="g", adapter="shell",
            params={"argv": ["true"]}, check=lambda: False,
        )
        assert mocks["shell"].call_count == 0
        assert step.action().ok
        assert mocks["shell"].call_log[0].action.id == "demo"
        assert step.description == "true"


# ── Runs ─────────────────────────────────────────────────────────────


class TestDryRun:
    def test_bundled_config_touches_nothing(self, offline_probes, target, mock_registry, mocks):
        steps = build_steps(load_config(DEFAULT_SETUP_FILE), target, mock_registry)
        log = run_steps(steps, ExecutionMode.SIMULATE)

        assert log.total == len(steps)
        assert all(m.call_count == 0 for m in mocks.values())
        assert list(target.home.iterdir()) == []
        assert log.failed == 0
        assert log.outcome_of("setup_tmux:config") == StepOutcome.SIMULATED
        assert log.outcome_of("fix_audio:restart-services") == StepOutcome.SIMULATED

    def test_dry_run_with_real_filesystem_adapter(self, offline_probes, target, mock_registry):
        mock_registry.register(FilesystemAdapter())
        steps = build_steps(
            load_config(DEFAULT_SETUP_FILE), target, mock_registry,
            only=["fix_audio", "setup_go_environment", "setup_tmux"],
        )
        run_steps(steps, ExecutionMode.SIMULATE)
        assert list(target.home.iterdir()) == []


class TestApply:
    @pytest.fixture
    def config(self, tmp_path: Path) -> SetupConfig:
        return SetupConfig(
            system_update={"enabled": False},
            audio={"content": "monitor.alsa.rules = []\n"},
            packages=[],
            golang={"tools": [{"name": "kerbrute", "module": "github.com/ropnop/kerbrute@latest"}],
                    "link_dir": str(tmp_path / "bin")},
            tmux={"config": "set -g mouse on\n"},
        )

    def test_dispatch(self, offline_probes, target, mock_registry, mocks, config):
        steps = build_steps(config, target, mock_registry)
        log = run_steps(steps, ExecutionMode.APPLY)

        assert log.failed == 0
        assert mocks["service"].call_count == 1
        assert mocks["git"].call_count == 1
        go = mocks["shell"].call_log[0].params
        assert go["argv"] == ["go", "install", "github.com/ropnop/kerbrute@latest"]
        assert go["run_as"] == "tester"
        assert go["env"]["GOPATH"] == str(target.home / "go")
        assert go["env"]["PATH"] == f"$PATH:{target.home / 'go' / 'bin'}"

    def test_second_run_skips(self, offline_probes, monkeypatch, target, mock_registry, mocks, config):
        monkeypatch.setattr(probes, "has_binary", lambda name, path=None: name == "wireplumber")
        mock_registry.register(FilesystemAdapter())
        steps = build_steps(config, target, mock_registry, only=["fix_audio", "setup_go_environment"])

        first = run_steps(steps, ExecutionMode.APPLY)
        assert first.outcome_of("fix_audio:install-wireplumber") == StepOutcome.SKIPPED
        assert first.outcome_of("fix_audio:alsa-config") == StepOutcome.APPLIED
        assert first.outcome_of("fix_audio:restart-services") == StepOutcome.APPLIED
        assert first.outcome_of("setup_go_environment:profile") == StepOutcome.APPLIED

        conf = target.home / ".config/wireplumber/wireplumber.conf.d/50-alsa-config.conf"
        assert conf.read_text() == "monitor.alsa.rules = []\n"
        bashrc = (target.home / ".bashrc").read_text()
        assert f"export GOPATH={target.home}/go\n" in bashrc
        assert "export PATH=$PATH:$GOPATH/bin\n" in bashrc

        second = run_steps(steps, ExecutionMode.APPLY)
        assert second.skipped == second.total
        assert mocks["service"].call_count == 1

    def test_missing_prerequisite_does_not_stop_run(self, offline_probes, target, mock_registry, mocks, config):
        mocks["service"].set_invalid("fix_audio:restart-services", "user manager unreachable")
        steps = build_steps(config, target, mock_registry)
        log = run_steps(steps, ExecutionMode.APPLY)
        entry = next(e for e in log.entries if e.step == "fix_audio:restart-services")
        assert entry.error_kind == "configuration_missing"
        assert log.failed == 1
        assert log.entries[-1].outcome == StepOutcome.APPLIED


class TestChecks:
    def test_repository_install_satisfied_by_binary(self, offline_probes, monkeypatch, target, mock_registry):
        monkeypatch.setattr(probes, "has_binary", lambda name, path=None: name == "subl")
        steps = _by_name(build_steps(load_config(DEFAULT_SETUP_FILE), target, mock_registry))
        assert steps["install_apt_repositories:sublime-text:install"].check()

    def test_tmux_config_check(self, offline_probes, target, mock_registry):
        config = SetupConfig(tmux={"config": "set -g mouse on\n"})
        step = _by_name(build_steps(config, target, mock_registry))["setup_tmux:config"]
        assert not step.check()
        (target.home / ".tmux.conf").write_text("set -g mouse on\n")
        assert step.check()

    def test_pipx_check(self, offline_probes, target, mock_registry):
        step = _by_name(build_steps(SetupConfig(), target, mock_registry))["setup_python_tools:pipx-ensurepath"]
        assert not step.check()
        (target.home / ".bashrc").write_text(f'export PATH="$PATH:{target.home}/.local/bin"\n')
        assert step.check()


# ── Completion Notices ───────────────────────────────────────────────


class TestCompletionNotices:
    def _log(self, mode, *entries):
        log = ExecutionLog(mode=mode)
        for step, group, outcome in entries:
            log.record(LogEntry(step=step, group=group, outcome=outcome))
        return log

    def test_nothing_changed(self):
        log = self._log(ExecutionMode.APPLY, ("setup_tmux:config", "setup_tmux", StepOutcome.SKIPPED))
        assert completion_notices(log) == []

    def test_tmux_and_reboot(self):
        log = self._log(ExecutionMode.APPLY, ("setup_tmux:config", "setup_tmux", StepOutcome.APPLIED))
        notices = completion_notices(log)
        assert any("prefix + I" in n for n in notices)
        assert any("reboot" in n for n in notices)

    def test_dry_run_has_no_reboot(self):
        log = self._log(
            ExecutionMode.SIMULATE,
            ("setup_go_environment:profile", "setup_go_environment", StepOutcome.SIMULATED),
        )
        notices = completion_notices(log)
        assert any("GOPATH" in n for n in notices)
        assert not any("reboot" in n for n in notices)
