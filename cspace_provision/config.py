import logging
import os
from pathlib import Path
from typing import Annotated, Self

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from cspace_provision.const import (
    CONFIG_FILENAMES,
    DEFAULT_MINIMUM_VERSION,
    DEFAULT_TEMPLATE_DESTINATION,
    DEFAULT_TEMPLATE_SOURCE,
    DEFAULT_TOOL_NAMES,
    DEFAULT_TOOL_PATH_ENV_VAR,
    DEFAULT_VERSION_FLAG,
    DOCKER_APT_KEY_ID,
    DOCKER_APT_KEYSERVER,
    DOCKER_BOOTSTRAP_URL,
)
from cspace_provision import util
from cspace_provision.error import ProvisionFileError, VersionParseError
from cspace_provision.version import ToolVersion

log = logging.getLogger(__name__)


class ProvisionYAMLModel(BaseModel):
    """Base model for provisioning configuration models."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")


class AptKeyOptions(ProvisionYAMLModel):
    """An APT repository signing key to import before running the bootstrap script."""

    keyserver: Annotated[str, Field(default=DOCKER_APT_KEYSERVER, description="Keyserver to fetch the key from.")]
    key_id: Annotated[str, Field(default=DOCKER_APT_KEY_ID, description="Fingerprint of the key to import.")]


class InstallerOptions(ProvisionYAMLModel):
    """Configuration for installing or upgrading the container build tool."""

    script_url: Annotated[
        str, Field(default=DOCKER_BOOTSTRAP_URL, description="URL of the bootstrap script piped to a shell.")
    ]
    shell: Annotated[str, Field(default="sh", description="Shell used to run the bootstrap script.")]
    timeout: Annotated[
        float, Field(default=60.0, gt=0, description="Timeout in seconds for downloading the bootstrap script.")
    ]
    ensure_https_transport: Annotated[
        bool, Field(default=False, description="Install apt-transport-https first if it is missing.")
    ]
    apt_key: Annotated[
        AptKeyOptions | None, Field(default=None, description="APT signing key to import before bootstrapping.")
    ]


class StageTemplate(ProvisionYAMLModel):
    """A build-file template rendered into a stage's context before it is built."""

    source: Annotated[
        Path, Field(default=Path(DEFAULT_TEMPLATE_SOURCE), description="Template path, relative to the stage context.")
    ]
    destination: Annotated[
        Path,
        Field(default=Path(DEFAULT_TEMPLATE_DESTINATION), description="Output path, relative to the stage context."),
    ]
    values: Annotated[
        dict[str, str],
        Field(default_factory=dict, description="Placeholder names mapped to the literal values substituted for them."),
    ]

    @field_validator("values", mode="before")
    @classmethod
    def stringify_values(cls, values: dict | None) -> dict:
        """YAML scalars such as ports and booleans are substituted as their literal text."""
        if values is None:
            return {}
        return {str(k): "" if v is None else str(v) for k, v in dict(values).items()}


class ImageStage(ProvisionYAMLModel):
    """One image in the build sequence, layered on the stages before it."""

    name: Annotated[str, Field(description="Human readable name of the stage.")]
    tag: Annotated[str, Field(description="Tag given to the image built for this stage.")]
    context: Annotated[Path, Field(description="Build context directory, relative to the project root.")]
    template: Annotated[
        StageTemplate | None, Field(default=None, description="Template to render before building this stage.")
    ]

    def context_path(self, base_path: Path) -> Path:
        """Return the absolute build context for this stage."""
        if self.context.is_absolute():
            return self.context
        return (base_path / self.context).resolve()


def default_stages() -> list[ImageStage]:
    """Return the three CollectionSpace stages, each built on top of the one before it."""
    return [
        ImageStage(name="CollectionSpace Base", tag="collectionspace/cspace-base", context=Path("cspace-base")),
        ImageStage(
            name="CollectionSpace Version-specific",
            tag="collectionspace/cspace-version",
            context=Path("cspace-provision-version"),
        ),
        ImageStage(
            name="CollectionSpace Instance-specific",
            tag="collectionspace/cspace-instance",
            context=Path("cspace-provision-instance"),
            template=StageTemplate(),
        ),
    ]


class ProvisionConfigDocument(ProvisionYAMLModel):
    """Model representation of the cspace-provision.yaml configuration document."""

    base_path: Annotated[
        Path, Field(exclude=True, description="Path to the directory holding the configuration file.")
    ]
    minimum_version: Annotated[
        str, Field(default=DEFAULT_MINIMUM_VERSION, description="Lowest acceptable version of the build tool.")
    ]
    tool_names: Annotated[
        list[str],
        Field(
            default_factory=lambda: list(DEFAULT_TOOL_NAMES),
            min_length=1,
            description="Command names probed on the PATH, in order.",
        ),
    ]
    tool_path_env_var: Annotated[
        str | None,
        Field(default=DEFAULT_TOOL_PATH_ENV_VAR, description="Environment variable holding an explicit tool path."),
    ]
    version_flag: Annotated[str, Field(default=DEFAULT_VERSION_FLAG, description="Flag that prints the tool version.")]
    use_sudo: Annotated[bool, Field(default=True, description="Run the build tool and installer through sudo.")]
    installer: Annotated[InstallerOptions, Field(default_factory=InstallerOptions)]
    stages: Annotated[list[ImageStage], Field(default_factory=default_stages, description="Images to build, in order.")]

    @field_validator("minimum_version", mode="before")
    @classmethod
    def validate_minimum_version(cls, value: str | int | float) -> str:
        """Ensure the minimum version is a strict dotted version."""
        if isinstance(value, float):
            # YAML reads an unquoted 1.10 as the float 1.1.
            log.warning(f"minimum_version {value!r} was read as a number; quote it to preserve trailing zeros.")
        value = str(value)
        try:
            ToolVersion(value)
        except VersionParseError as e:
            raise ValueError(str(e)) from e
        return value

    @field_validator("stages", mode="after")
    @classmethod
    def check_stage_duplicates(cls, stages: list[ImageStage]) -> list[ImageStage]:
        """Ensures that no two stages share a tag."""
        seen_tags = set()
        for stage in stages:
            if stage.tag in seen_tags:
                raise ValueError(f"Duplicate stage tag found in config: {stage.tag}")
            seen_tags.add(stage.tag)
        return stages

    @model_validator(mode="after")
    def warn_empty_stages(self) -> Self:
        if not self.stages:
            log.warning("No stages found in the configuration. Only the tool check will run.")
        return self

    @property
    def minimum(self) -> ToolVersion:
        return ToolVersion(self.minimum_version)


class ProvisionConfig:
    """Loader for the provisioning configuration in a project context.

    :var base_path: The project root that stage contexts are resolved against.
    :var config_file: Path to the configuration file, or None when running on defaults.
    :var model: The validated ProvisionConfigDocument.
    """

    def __init__(self, base_path: str | Path | os.PathLike, config_file: str | Path | os.PathLike | None = None):
        self.base_path = Path(base_path).resolve()
        self.config_file = Path(config_file).resolve() if config_file is not None else None

        data = {}
        if self.config_file is not None:
            if not self.config_file.is_file():
                raise ProvisionFileError(f"File '{self.config_file}' does not exist.", filepath=self.config_file)
            try:
                data = YAML(typ="safe").load(self.config_file) or dict()
            except YAMLError as e:
                mark = getattr(e, "problem_mark", None)
                location = f", line {mark.line + 1}" if mark is not None else ""
                problem = getattr(e, "problem", None) or str(e)
                raise ProvisionFileError(
                    f"Could not parse '{self.config_file}'{location}: {problem}", filepath=self.config_file
                ) from e
            if not isinstance(data, dict):
                raise ProvisionFileError(f"Expected a mapping at the top level of '{self.config_file}'.")
            if "base_path" in data:
                # Stage contexts always resolve against the directory holding the file.
                raise ProvisionFileError(
                    f"'base_path' cannot be set in '{self.config_file}'.", filepath=self.config_file
                )

        try:
            self.model = ProvisionConfigDocument(base_path=self.base_path, **data)
        except pydantic.ValidationError as e:
            log.error(f"Failed to load configuration from {str(self.config_file)}")
            raise e

    @classmethod
    def from_context(cls, context: str | Path | os.PathLike) -> "ProvisionConfig":
        """Create a ProvisionConfig from a project directory, using defaults if it has no config file."""
        context = Path(context)
        if context.is_file():
            return cls(context.parent, context)

        try:
            config_file = util.find_in_context(context, CONFIG_FILENAMES)
        except ProvisionFileError:
            log.debug(f"No configuration file found in {context}, using defaults")
            return cls(context)

        log.debug(f"Loading configuration from {config_file}")
        return cls(context, config_file)

    def override(self, **kwargs) -> None:
        """Apply command line overrides, ignoring values that were not given."""
        for key, value in kwargs.items():
            if value is not None:
                setattr(self.model, key, value)
