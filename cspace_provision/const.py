from enum import Enum

APP_NAME = "cspace-provision"

CONFIG_FILENAMES = ["cspace-provision.yaml", "cspace-provision.yml"]

DEFAULT_TOOL_NAMES = ["docker", "docker.io"]  # docker.io is the Ubuntu 14.04 package's command name
DEFAULT_TOOL_PATH_ENV_VAR = "DOCKER_PATH"
DEFAULT_VERSION_FLAG = "--version"
DEFAULT_MINIMUM_VERSION = "1.2.0"

DOCKER_BOOTSTRAP_URL = "https://get.docker.io/ubuntu/"
DOCKER_APT_KEYSERVER = "hkp://keyserver.ubuntu.com:80"
DOCKER_APT_KEY_ID = "36A1D7869245C8950F966E92D8576A8BA88D21E9"
APT_HTTPS_TRANSPORT_PATH = "/usr/lib/apt/methods/https"

DEFAULT_TEMPLATE_SOURCE = "Dockerfile.template"
DEFAULT_TEMPLATE_DESTINATION = "Dockerfile"

# Matches n.n.n with an optional fourth component, e.g. "Docker version 1.0.1, build 990021a".
REGEX_TOOL_VERSION_PATTERN = r"(?<![\d.])(\d+\.\d+\.\d+(?:\.\d+)?)"
# A strict dotted-decimal version of one to four components.
REGEX_DOTTED_VERSION_PATTERN = r"^\d+(\.\d+){0,3}$"
VERSION_COMPONENTS = 4


class GateDecision(str, Enum):
    """Outcome of checking an installed tool against a minimum version."""

    INSTALL_REQUIRED = "install-required"
    UPGRADE_REQUIRED = "upgrade-required"
    SATISFIES_MINIMUM = "satisfies-minimum"


class CompareResult(str, Enum):
    """Outcome of comparing two versions a and b."""

    A_WINS = "a-wins"
    B_WINS = "b-wins"
    TIE = "tie"
