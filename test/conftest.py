import os
import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pytest_mock import MockFixture

from cspace_provision.config import ProvisionConfig

TEST_DIRECTORY = Path(os.path.dirname(os.path.realpath(__file__)))

BOOTSTRAP_SCRIPT = "#!/bin/sh\necho 'Installing lxc-docker'\n"


def docker_banner(version: str) -> str:
    return f"Docker version {version}, build 990021a\n"


class FakeSystem:
    """Stands in for the PATH and for every process the provisioner launches.

    :var tools: Command names on the PATH mapped to the output of their version flag.
    :var upgraded_version: The version the bootstrap script installs.
    :var commands: Every command line that was run, in order.
    """

    def __init__(self):
        self.tools: dict[str, str] = {}
        self.upgraded_version = "1.3.0"
        self.install_exit_code = 0
        self.install_renames_to = "docker"
        self.commands: list[list[str]] = []

    def install(self, version: str, name: str = "docker") -> None:
        self.tools[name] = docker_banner(version)

    def which(self, name: str) -> str | None:
        if name in self.tools:
            return f"/usr/bin/{name}"
        return None

    def run(self, cmd, input=None, capture_output=True, text=True, **kwargs) -> subprocess.CompletedProcess:
        self.commands.append(list(cmd))
        args = [c for c in cmd if c != "sudo"]
        name = Path(args[0]).name

        if name == "sh":
            if self.install_exit_code != 0:
                return subprocess.CompletedProcess(cmd, self.install_exit_code, "", "E: Unable to fetch packages")
            self.tools.clear()
            if self.install_renames_to:
                self.install(self.upgraded_version, self.install_renames_to)
            return subprocess.CompletedProcess(cmd, 0, "Installation complete\n", "")
        if name in ("apt-get", "apt-key"):
            return subprocess.CompletedProcess(cmd, 0, "", "")
        if name in self.tools:
            return subprocess.CompletedProcess(cmd, 0, self.tools[name], "")
        raise FileNotFoundError(2, "No such file or directory", args[0])

    def ran(self, name: str) -> bool:
        return any(name in [Path(c).name for c in cmd] for cmd in self.commands)


@pytest.fixture
def fake_system(mocker: MockFixture, monkeypatch) -> FakeSystem:
    """Patch PATH lookups, subprocesses and the bootstrap download with a FakeSystem."""
    system = FakeSystem()
    monkeypatch.delenv("DOCKER_PATH", raising=False)
    mocker.patch("cspace_provision.util.which", side_effect=system.which)
    mocker.patch("cspace_provision.util.subprocess.run", side_effect=system.run)
    response = MagicMock(text=BOOTSTRAP_SCRIPT)
    mocker.patch("cspace_provision.installer.requests.get", return_value=response)
    return system


@pytest.fixture
def mock_docker_client(mocker: MockFixture) -> MagicMock:
    """Patch the python_on_whales client class and return the client instance it creates."""
    client_cls = mocker.patch("cspace_provision.image.DockerClient")
    return client_cls.return_value


@pytest.fixture(scope="session")
def resource_path():
    """Return the path to the test resources directory"""
    return TEST_DIRECTORY / "resources"


@pytest.fixture
def get_tmpcontext(tmp_path, resource_path):
    """Return a function that can get a temporary copy of a test suite context by name"""

    def _get_tmpcontext(suite_name: str) -> Path:
        tmpcontext = tmp_path / suite_name
        shutil.copytree(resource_path / suite_name, tmpcontext, dirs_exist_ok=True)
        return tmpcontext

    return _get_tmpcontext


@pytest.fixture
def basic_tmpcontext(get_tmpcontext) -> Path:
    return get_tmpcontext("basic")


@pytest.fixture
def basic_config(basic_tmpcontext) -> ProvisionConfig:
    return ProvisionConfig.from_context(basic_tmpcontext)
