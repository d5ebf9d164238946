import logging
import os

import requests

from cspace_provision.config import InstallerOptions
from cspace_provision.const import APT_HTTPS_TRANSPORT_PATH
from cspace_provision.error import InstallError, ToolExecutionError
from cspace_provision.util import run_command

log = logging.getLogger(__name__)


class BootstrapInstaller:
    """Installs or upgrades Docker by piping Docker's bootstrap script into a shell.

    The script configures the package manager key and repository and installs the latest available release. Running
    it again on a system that is already up to date is safe.
    """

    def __init__(self, options: InstallerOptions | None = None, use_sudo: bool = True):
        self.options = options or InstallerOptions()
        self.use_sudo = use_sudo

    def _privileged(self, cmd: list[str]) -> list[str]:
        if self.use_sudo:
            return ["sudo"] + cmd
        return cmd

    def ensure_https_transport(self) -> None:
        """Install the HTTPS transport for apt-get if it hasn't been enabled yet."""
        if os.path.exists(APT_HTTPS_TRANSPORT_PATH):
            log.debug("apt-get HTTPS transport is already available")
            return

        log.info("Enabling HTTPS transport for apt-get...")
        run_command(self._privileged(["apt-get", "update"]))
        run_command(self._privileged(["apt-get", "install", "-y", "apt-transport-https"]))

    def import_apt_key(self) -> None:
        """Import the repository signing key. An already present key is left unchanged."""
        key = self.options.apt_key
        log.info(f"Importing APT signing key {key.key_id}...")
        run_command(self._privileged(["apt-key", "adv", "--keyserver", key.keyserver, "--recv-keys", key.key_id]))

    def fetch_script(self) -> str:
        """Download the bootstrap script."""
        log.debug(f"Downloading bootstrap script from {self.options.script_url}")
        response = requests.get(self.options.script_url, timeout=self.options.timeout)
        response.raise_for_status()
        if not response.text.strip():
            raise InstallError(f"Bootstrap script at {self.options.script_url} is empty.", tool_name="docker")
        return response.text

    def install(self) -> None:
        """Run the preparation steps and the bootstrap script.

        :raises InstallError: If any step fails. Nothing is rolled back.
        """
        log.info("Installing or upgrading Docker...")
        try:
            if self.options.ensure_https_transport:
                self.ensure_https_transport()
            if self.options.apt_key is not None:
                self.import_apt_key()
            script = self.fetch_script()
            run_command(self._privileged([self.options.shell]), tool_name="bootstrap script", stdin=script)
        except requests.RequestException as e:
            raise InstallError(
                f"Could not download bootstrap script from {self.options.script_url}: {e}", tool_name="docker"
            ) from e
        except ToolExecutionError as e:
            log.error(str(e))
            raise InstallError(f"Docker installation failed: {e.message}", tool_name="docker") from e

        log.info("Bootstrap script completed")
