import logging
from enum import Enum
from pathlib import Path

import python_on_whales
from python_on_whales import DockerClient

from cspace_provision.config import ImageStage
from cspace_provision.const import DEFAULT_TEMPLATE_DESTINATION
from cspace_provision.error import BuildError, ProvisionFileError

log = logging.getLogger(__name__)


class ImageBuildBackend(str, Enum):
    """Enumeration for image build backends."""

    LEGACY = "legacy"  # Build using the classic `docker build`, available on every Docker release
    BUILDX = "buildx"  # Build using Docker Buildx/BuildKit


def docker_client(path: str, use_sudo: bool = True) -> DockerClient:
    """Return a Docker client that invokes the resolved executable, optionally through sudo.

    :param path: Path to the Docker executable.
    :param use_sudo: Prefix every call with sudo.
    """
    client_call = [path]
    if use_sudo:
        client_call = ["sudo"] + client_call
    return DockerClient(client_call=client_call)


def build(
    tag: str,
    context_dir: Path,
    client: DockerClient,
    file: Path | None = None,
    cache: bool = True,
    pull: bool = False,
    backend: ImageBuildBackend = ImageBuildBackend.LEGACY,
) -> python_on_whales.Image | None:
    """Build a single image from a context directory and tag it.

    :param tag: The tag given to the built image.
    :param context_dir: The build context directory.
    :param client: The Docker client to build with.
    :param file: The build-file, defaults to the Dockerfile in the context directory.
    :param cache: Use the layer cache.
    :param pull: Always attempt to pull newer versions of base images.
    :param backend: The build backend to use.

    :raises ProvisionFileError: If the context directory does not exist.
    :raises BuildError: If the build returns a non-zero exit code.
    """
    context_dir = Path(context_dir)
    if not context_dir.is_dir():
        raise ProvisionFileError(f"Build context for '{tag}' does not exist.", filepath=context_dir)

    log.debug(f"Building {tag} from {context_dir} with the {backend.value} builder")
    try:
        if backend == ImageBuildBackend.BUILDX:
            return client.build(context_path=context_dir, file=file, tags=[tag], cache=cache, pull=pull, load=True)
        return client.legacy_build(context_path=context_dir, file=file, tags=[tag], cache=cache, pull=pull)
    except python_on_whales.DockerException as e:
        raise BuildError(
            f"Build of '{tag}' failed",
            tool_name="docker",
            cmd=[str(c) for c in e.docker_command],
            stdout=e.stdout,
            stderr=e.stderr,
            exit_code=e.return_code,
            metadata={"tag": tag, "context": str(context_dir)},
        ) from e


def stage_build_file(stage: ImageStage, context_dir: Path) -> Path | None:
    """Return the build-file rendered for a stage if it is not the context's default Dockerfile."""
    if stage.template is None or stage.template.destination == Path(DEFAULT_TEMPLATE_DESTINATION):
        return None
    return context_dir / stage.template.destination


def build_stage(
    stage: ImageStage,
    base_path: Path,
    client: DockerClient,
    cache: bool = True,
    pull: bool = False,
    backend: ImageBuildBackend = ImageBuildBackend.LEGACY,
) -> python_on_whales.Image | None:
    """Build the image for one stage of the sequence."""
    context_dir = stage.context_path(base_path)
    log.info(f"Building {stage.name} image...")
    image = build(
        stage.tag,
        context_dir,
        client,
        file=stage_build_file(stage, context_dir),
        cache=cache,
        pull=pull,
        backend=backend,
    )
    log.info(f"Built {stage.tag}")
    return image
