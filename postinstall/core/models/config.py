"""
Setup configuration model — loaded from setup.yml.

Everything that is data rather than design lives here: the package list,
config file contents, repository coordinates. Path fields may contain
``{home}``, ``{user}`` and ``{gopath}`` placeholders, rendered against
the target user when steps are built.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

AptOperation = Literal[
    "update", "upgrade", "full-upgrade", "dist-upgrade", "autoremove", "autoclean"
]


class SystemUpdate(BaseModel):
    """apt maintenance run before anything else."""

    enabled: bool = True
    operations: list[AptOperation] = Field(
        default_factory=lambda: ["update", "full-upgrade", "dist-upgrade", "autoremove", "autoclean"]
    )
    cache_max_age: int = 3600  # seconds an `apt-get update` stays fresh


class AudioFix(BaseModel):
    """WirePlumber ALSA tuning (crackling audio under VMware)."""

    enabled: bool = True
    package: str = "wireplumber"
    binary: str = "wireplumber"
    config_dir: str = "{home}/.config/wireplumber/wireplumber.conf.d"
    config_file: str = "50-alsa-config.conf"
    content: str = ""
    services: list[str] = Field(
        default_factory=lambda: ["wireplumber", "pipewire", "pipewire-pulse"]
    )


class GoTool(BaseModel):
    """A tool installed with ``go install``."""

    name: str
    module: str                     # e.g. github.com/ropnop/kerbrute@latest
    binary: str = ""                # defaults to name

    @property
    def binary_name(self) -> str:
        return self.binary or self.name


class GoEnvironment(BaseModel):
    """GOPATH export lines plus the Go tools that need them."""

    enabled: bool = True
    gopath: str = "{home}/go"
    profile: str = "{home}/.bashrc"
    env_lines: list[str] = Field(
        default_factory=lambda: ["export GOPATH={gopath}", "export PATH=$PATH:$GOPATH/bin"]
    )
    tools: list[GoTool] = Field(default_factory=list)
    link_dir: str = "/usr/local/bin"


class AptRepository(BaseModel):
    """A third-party apt repository (signing key + deb822 sources file)."""

    name: str
    key_url: str
    keyring: str
    sources_file: str
    sources: str
    packages: list[str] = Field(default_factory=list)
    binary: str = ""                # on PATH once installed, e.g. subl


class TmuxSetup(BaseModel):
    """tmux plugin manager and config."""

    enabled: bool = True
    plugin_repo: str = "https://github.com/tmux-plugins/tpm"
    plugin_dir: str = "{home}/.tmux/plugins/tpm"
    config_path: str = "{home}/.tmux.conf"
    config: str = ""


class PythonTools(BaseModel):
    """pipx PATH integration for the target user."""

    pipx_ensurepath: bool = True
    profile: str = "{home}/.bashrc"
    path_marker: str = "{home}/.local/bin"


class SetupConfig(BaseModel):
    """Root configuration — the whole setup.yml."""

    version: int = 1

    system_update: SystemUpdate = Field(default_factory=SystemUpdate)
    audio: AudioFix = Field(default_factory=AudioFix)
    packages: list[str] = Field(default_factory=list)
    golang: GoEnvironment = Field(default_factory=GoEnvironment)
    apt_repositories: list[AptRepository] = Field(default_factory=list)
    tmux: TmuxSetup = Field(default_factory=TmuxSetup)
    python_tools: PythonTools = Field(default_factory=PythonTools)

    audit_log: str = "{home}/.local/state/postinstall/audit.ndjson"

    @field_validator("packages")
    @classmethod
    def _packages_unique(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for pkg in value:
            pkg = pkg.strip()
            if not pkg:
                raise ValueError("package names must not be empty")
            if pkg not in seen:
                seen.append(pkg)
        return seen

    @model_validator(mode="after")
    def _names_unique(self) -> SetupConfig:
        tools = [t.name for t in self.golang.tools]
        if len(tools) != len(set(tools)):
            raise ValueError(f"duplicate go tool names: {tools}")
        repos = [r.name for r in self.apt_repositories]
        if len(repos) != len(set(repos)):
            raise ValueError(f"duplicate apt repository names: {repos}")
        return self
