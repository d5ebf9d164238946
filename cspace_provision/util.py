import logging
import os
import subprocess
from pathlib import Path
from shutil import which
from typing import List, Union

from cspace_provision.error import ProvisionFileError, ToolExecutionError

log = logging.getLogger(__name__)


def find_bin(bin_names: List[str], bin_env_var: str | None = None) -> str | None:
    """Search for a binary as an env var, then in the PATH under each of the given names

    :param bin_names: The names of the binary to search for, in order of preference
    :param bin_env_var: The environment variable that may hold an explicit path to the binary

    :return: The path to the binary, or None if it could not be found
    """
    if bin_env_var and os.environ.get(bin_env_var):
        env_path = os.environ.get(bin_env_var)
        if os.path.isfile(env_path) and os.access(env_path, os.X_OK):
            return env_path
        log.warning(f"Ignoring `{bin_env_var}={env_path}`, it is not an executable file.")

    for bin_name in bin_names:
        found = which(bin_name)
        if found is not None:
            log.debug(f"Found '{bin_name}' at {found}")
            return found
        log.debug(f"'{bin_name}' is not on the PATH")

    return None


def find_in_context(context: Union[str, bytes, os.PathLike], names: List[str]) -> Path:
    """Return the first of the given file names that exists in a project context"""
    search = Path(context)
    for name in names:
        if (search / name).is_file():
            return search / name

    raise ProvisionFileError(f"Could not find any of {', '.join(names)} in context: {context}", filepath=names)


def run_command(
    cmd: List[str], tool_name: str | None = None, stdin: str | bytes | None = None
) -> subprocess.CompletedProcess:
    """Run an external command to completion, capturing its output

    :param cmd: The command and its arguments
    :param tool_name: The name of the tool for error reporting, defaults to the command's basename
    :param stdin: Optional input passed to the command

    :raises ToolExecutionError: If the command cannot be started or exits non-zero
    """
    tool_name = tool_name or Path(cmd[0]).name
    log.debug(f"Running command: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, input=stdin, capture_output=True, text=not isinstance(stdin, bytes))
    except OSError as e:
        raise ToolExecutionError(
            f"Could not execute '{tool_name}': {e.strerror or e}",
            tool_name=tool_name,
            cmd=cmd,
            exit_code=e.errno or 1,
        ) from e

    if result.returncode != 0:
        raise ToolExecutionError(
            f"'{tool_name}' exited with code {result.returncode}",
            tool_name=tool_name,
            cmd=cmd,
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.returncode,
        )

    return result


def auto_path() -> Path:
    context = Path(os.getcwd())
    return context
