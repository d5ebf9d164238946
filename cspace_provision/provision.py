import logging
from pathlib import Path

from cspace_provision.config import ProvisionConfig
from cspace_provision.error import ToolNotFoundError
from cspace_provision.gate import ResolvedTool, VersionGate
from cspace_provision.image import ImageBuildBackend, build_stage, docker_client
from cspace_provision.templating import render_stage_template

log = logging.getLogger(__name__)


class Provisioner:
    """Runs the provisioning sequence for a project.

    The sequence is ensure the build tool, then for each stage render its template (if any) and build it. The first
    failure aborts the sequence and images already built are left in place.

    :var config: The loaded project configuration.
    :var gate: The version gate for the build tool.
    """

    def __init__(self, config: ProvisionConfig, gate: VersionGate | None = None):
        self.config = config
        self.gate = gate or VersionGate.from_config(config.model)

    @property
    def base_path(self) -> Path:
        return self.config.base_path

    def resolve_tool(self, skip_gate: bool = False) -> ResolvedTool:
        """Return the build tool to use, installing or upgrading it unless the gate is skipped.

        :raises ToolNotFoundError: If the gate is skipped and the tool cannot be found.
        """
        if not skip_gate:
            return self.gate.ensure()

        path = self.gate.resolve_tool_path()
        if path is None:
            raise ToolNotFoundError(
                f"Could not find {' or '.join(self.gate.tool_names)} and the version check was skipped.",
                tool_name=self.gate.tool_name,
            )
        return ResolvedTool(path=path, version=self.gate.query_version(path))

    def render(self) -> list[Path]:
        """Render the template of every stage that has one."""
        rendered = []
        for stage in self.config.model.stages:
            if stage.template is None:
                continue
            rendered.append(render_stage_template(stage.context_path(self.base_path), stage.template, stage.name))
        return rendered

    def run(
        self,
        skip_gate: bool = False,
        cache: bool = True,
        pull: bool = False,
        backend: ImageBuildBackend = ImageBuildBackend.LEGACY,
    ) -> list[str]:
        """Run the whole sequence and return the tags that were built."""
        tool = self.resolve_tool(skip_gate=skip_gate)
        log.info(f"Using {tool.path} ({tool.version})")
        client = docker_client(tool.path, use_sudo=self.config.model.use_sudo)

        built = []
        for stage in self.config.model.stages:
            if stage.template is not None:
                render_stage_template(stage.context_path(self.base_path), stage.template, stage.name)
            build_stage(stage, self.base_path, client, cache=cache, pull=pull, backend=backend)
            built.append(stage.tag)

        return built
