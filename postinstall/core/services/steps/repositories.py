"""
Third-party apt repositories — signing key, deb822 sources, install.
"""

from __future__ import annotations

from functools import partial

from postinstall.core.models.config import AptRepository, SetupConfig
from postinstall.core.models.step import Step
from postinstall.core.services import probes
from postinstall.core.services.steps.base import StepBuilder, never

GROUP = "install_apt_repositories"


def _installed(packages: list[str], binary: str) -> bool:
    if binary and probes.has_binary(binary):
        return True
    return not probes.missing_packages(packages)


def repository_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    steps: list[Step] = []
    for repo in config.apt_repositories:
        steps.extend(_repo_steps(repo, b))
    return steps


def _repo_steps(repo: AptRepository, b: StepBuilder) -> list[Step]:
    prefix = f"{GROUP}:{repo.name}"
    keyring = b.path(repo.keyring)
    sources_file = b.path(repo.sources_file)

    key = b.step(
        name=f"{prefix}:key",
        group=GROUP,
        adapter="filesystem",
        params={
            "operation": "download",
            "url": repo.key_url,
            "path": str(keyring),
            "mode": 0o644,
            "description": f"Download {repo.key_url} to {keyring}",
        },
        check=keyring.is_file,
    )
    sources = b.step(
        name=f"{prefix}:sources",
        group=GROUP,
        adapter="filesystem",
        params={
            "operation": "write",
            "path": str(sources_file),
            "content": repo.sources,
            "mode": 0o644,
            "description": f"Write apt sources to {sources_file}",
        },
        check=partial(probes.file_equals, sources_file, repo.sources),
    )
    steps = [key, sources]

    if repo.packages:
        steps.append(b.step(
            name=f"{prefix}:apt-update",
            group=GROUP,
            adapter="apt",
            params={"operation": "update", "description": "apt-get update"},
            check=never,
            after=(key.name, sources.name),
        ))
        steps.append(b.step(
            name=f"{prefix}:install",
            group=GROUP,
            adapter="apt",
            params={
                "operation": "install",
                "packages": list(repo.packages),
                "description": "apt-get install -y " + " ".join(repo.packages),
            },
            check=partial(_installed, list(repo.packages), repo.binary),
        ))
    return steps
