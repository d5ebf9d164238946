import logging
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from cspace_provision.config import ProvisionConfigDocument
from cspace_provision.const import (
    DEFAULT_TOOL_NAMES,
    DEFAULT_TOOL_PATH_ENV_VAR,
    DEFAULT_VERSION_FLAG,
    GateDecision,
)
from cspace_provision.error import InstallError, ToolExecutionError, VersionParseError
from cspace_provision.installer import BootstrapInstaller
from cspace_provision.util import find_bin, run_command
from cspace_provision.version import ToolVersion, as_version, extract_version, meets_minimum

log = logging.getLogger(__name__)


class ResolvedTool(BaseModel):
    """A tool location together with the version it reported."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Annotated[str, Field(description="Path to the tool executable.")]
    version: Annotated[ToolVersion, Field(description="Version reported by the tool.")]


class GateReport(BaseModel):
    """The result of checking a tool against a minimum version without acting on it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Annotated[str | None, Field(default=None, description="Path to the tool, None if not found.")]
    version: Annotated[ToolVersion | None, Field(default=None, description="Version reported by the tool.")]
    minimum: Annotated[ToolVersion, Field(description="The minimum version required.")]
    decision: GateDecision

    @property
    def satisfied(self) -> bool:
        return self.decision == GateDecision.SATISFIES_MINIMUM


class VersionGate:
    """Decides whether the installed tool meets a minimum version and installs or upgrades it otherwise.

    Each step is a blocking call to an external process, run strictly in sequence:
    resolve, query, decide, then optionally install, re-resolve and re-query.

    :var minimum: The minimum version required.
    :var tool_names: Command names probed on the PATH, the primary name first.
    :var version_flag: Flag that makes the tool print its version.
    :var path_env_var: Environment variable that may hold an explicit tool path.
    :var installer: Installer run when the tool is missing or too old.
    """

    def __init__(
        self,
        minimum_version: str | ToolVersion,
        tool_names: list[str] | None = None,
        version_flag: str = DEFAULT_VERSION_FLAG,
        path_env_var: str | None = DEFAULT_TOOL_PATH_ENV_VAR,
        installer: BootstrapInstaller | None = None,
    ):
        self.minimum = as_version(minimum_version)
        self.tool_names = tool_names or list(DEFAULT_TOOL_NAMES)
        self.version_flag = version_flag
        self.path_env_var = path_env_var
        self.installer = installer or BootstrapInstaller()

    @classmethod
    def from_config(cls, config: ProvisionConfigDocument) -> "VersionGate":
        """Create a VersionGate from a configuration document."""
        return cls(
            minimum_version=config.minimum,
            tool_names=config.tool_names,
            version_flag=config.version_flag,
            path_env_var=config.tool_path_env_var,
            installer=BootstrapInstaller(config.installer, use_sudo=config.use_sudo),
        )

    @property
    def tool_name(self) -> str:
        return self.tool_names[0]

    def resolve_tool_path(self) -> str | None:
        """Return the path of the first known command name found, or None if none is found."""
        log.debug(f"Finding path to {self.tool_name} executable...")
        path = find_bin(self.tool_names, self.path_env_var)
        if path is None:
            log.info(f"Could not find {' or '.join(self.tool_names)} on the PATH")
        else:
            log.debug(f"Found {self.tool_name} executable at {path}")
        return path

    def query_version(self, path: str) -> ToolVersion:
        """Run the tool with its version flag and parse the version it prints.

        :param path: Path to the tool executable.

        :raises ToolExecutionError: If the tool cannot be run or exits non-zero.
        :raises VersionParseError: If the output has no n.n.n version in it.
        """
        result = run_command([path, self.version_flag], tool_name=self.tool_name)
        output = result.stdout if result.stdout and result.stdout.strip() else result.stderr
        version = extract_version(output)
        log.debug(f"{self.tool_name} version is {version}")
        return version

    def _evaluate(self, current: str | None, minimum: ToolVersion) -> tuple[GateDecision, ToolVersion | None]:
        if current is None:
            return GateDecision.INSTALL_REQUIRED, None

        version = self.query_version(current)
        if not meets_minimum(version, minimum):
            log.info(f"{self.tool_name} {version} is older than the required {minimum}")
            return GateDecision.UPGRADE_REQUIRED, version

        log.info(f"{self.tool_name} {version} meets the minimum version requirement of {minimum}")
        return GateDecision.SATISFIES_MINIMUM, version

    def decide(self, current: str | None, minimum: str | ToolVersion | None = None) -> GateDecision:
        """Decide whether the tool at the given location must be installed or upgraded.

        :param current: Path to the tool, or None if it was not found.
        :param minimum: Minimum version to check against, defaults to the gate's minimum.
        """
        minimum = as_version(minimum) if minimum is not None else self.minimum
        decision, _ = self._evaluate(current, minimum)
        return decision

    def _install_and_verify(self) -> ResolvedTool:
        self.installer.install()

        # The command name can change across an upgrade, e.g. from docker.io to docker.
        path = self.resolve_tool_path()
        if path is None:
            raise InstallError(
                f"Could not find {' or '.join(self.tool_names)} after installation.", tool_name=self.tool_name
            )
        try:
            version = self.query_version(path)
        except (ToolExecutionError, VersionParseError) as e:
            raise InstallError(
                f"Could not determine the {self.tool_name} version after installation: {e}", tool_name=self.tool_name
            ) from e

        if not meets_minimum(version, self.minimum):
            log.warning(
                f"{self.tool_name} {version} is still older than the required {self.minimum} after installation"
            )
        log.info(f"{self.tool_name} version is now {version}")
        return ResolvedTool(path=path, version=version)

    def apply(self, decision: GateDecision, current: str | None = None) -> str | None:
        """Act on a gate decision, returning the tool location to use from now on.

        :param decision: The decision returned by decide().
        :param current: The location the decision was made for.

        :raises InstallError: If installation fails or leaves the tool unresolvable or unparseable.
        """
        if decision == GateDecision.SATISFIES_MINIMUM:
            return current
        return self._install_and_verify().path

    def check(self) -> GateReport:
        """Resolve the tool and decide on it without installing anything."""
        path = self.resolve_tool_path()
        decision, version = self._evaluate(path, self.minimum)
        return GateReport(path=path, version=version, minimum=self.minimum, decision=decision)

    def ensure(self) -> ResolvedTool:
        """Make sure a tool meeting the minimum version is installed and return it."""
        report = self.check()
        if report.satisfied:
            return ResolvedTool(path=report.path, version=report.version)

        if report.decision == GateDecision.INSTALL_REQUIRED:
            log.info(f"{self.tool_name} is not installed")
        return self._install_and_verify()
