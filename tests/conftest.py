"""
Shared test fixtures and configuration.
"""

import os
import textwrap
from pathlib import Path

import pytest

from postinstall.adapters.mock import MockAdapter
from postinstall.adapters.registry import AdapterRegistry
from postinstall.core.context import TargetUser
from postinstall.core.services import probes

ADAPTER_NAMES = ("shell", "filesystem", "git", "apt", "service")


@pytest.fixture
def target(tmp_path: Path) -> TargetUser:
    """A target user whose home is a fresh temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    return TargetUser(name="tester", home=home, uid=os.getuid(), gid=os.getgid())


@pytest.fixture
def mocks() -> dict[str, MockAdapter]:
    """One MockAdapter per adapter name the step catalog uses."""
    return {name: MockAdapter(adapter_name=name) for name in ADAPTER_NAMES}


@pytest.fixture
def mock_registry(mocks: dict[str, MockAdapter]) -> AdapterRegistry:
    registry = AdapterRegistry()
    for adapter in mocks.values():
        registry.register(adapter)
    return registry


@pytest.fixture
def offline_probes(monkeypatch: pytest.MonkeyPatch) -> None:
    """Answer every system probe with "not done yet", without running anything.

    Must be requested before steps are built: checks bind the probe
    functions at build time.
    """
    monkeypatch.setattr(probes, "is_pkg_installed", lambda pkg: False)
    monkeypatch.setattr(probes, "has_binary", lambda name, path=None: False)
    monkeypatch.setattr(probes, "apt_lists_fresh", lambda max_age: False)
    monkeypatch.setattr(probes, "apt_simulation_is_noop", lambda op: False)
    monkeypatch.setattr(probes, "missing_packages", lambda pkgs: list(pkgs))
    monkeypatch.setattr(probes, "user_service_manager_reachable", lambda user, uid: False)


@pytest.fixture
def small_config(tmp_path: Path) -> Path:
    """A setup.yml with only packages and tmux enabled."""
    content = textwrap.dedent("""\
        system_update:
          enabled: false
        audio:
          enabled: false
        packages:
          - curl
          - git
        golang:
          enabled: false
        tmux:
          config: |
            set -g mouse on
        python_tools:
          pipx_ensurepath: false
    """)
    path = tmp_path / "setup.yml"
    path.write_text(content)
    return path
