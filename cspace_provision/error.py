import os
import textwrap
from pathlib import Path
from typing import List, Union

from jinja2 import TemplateError


class ProvisionError(Exception):
    """Base class for all provisioning exceptions"""

    pass


class VersionParseError(ProvisionError):
    """Error for version text that does not contain a recognizable dotted version"""

    def __init__(self, message: str = None, text: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.text = text

    def __str__(self) -> str:
        s = f"{self.message}"
        if self.text is not None:
            excerpt = self.text.strip().splitlines()[0] if self.text.strip() else "<empty>"
            s += f" (got '{excerpt}')"
        return s


class ProvisionFileError(ProvisionError):
    """Generic error for file/directory issues"""

    def __init__(
        self,
        message: str = None,
        filepath: Union[str, bytes, os.PathLike] | List[Union[str, bytes, os.PathLike]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.filepath = filepath

        if filepath:
            filepath_note = "Expected filepath(s):\n"
            if isinstance(filepath, (str, bytes, os.PathLike)):
                filepath_note += f"  - {filepath}\n"
            elif isinstance(filepath, list):
                for f in filepath:
                    filepath_note += f"  - {f}\n"
            self.add_note(filepath_note)


class RenderError(ProvisionError):
    """Error for build-file templates that fail to render"""

    def __init__(
        self,
        cause: TemplateError | Exception,
        stage: str = None,
        template: Path = None,
        destination: Path = None,
    ) -> None:
        super().__init__(str(cause))
        self.__cause__ = cause
        self.stage = stage
        self.template = template
        self.destination = destination

    def __str__(self) -> str:
        s = "Error rendering template"
        if self.template:
            s += f" {self.template}"
        if isinstance(self.__cause__, TemplateError) and getattr(self.__cause__, "lineno", None):
            s += f", line {self.__cause__.lineno}"
        s += f": {self.__cause__}\n"
        if self.stage:
            s += f"  - Stage: {self.stage}\n"
        if self.destination:
            s += f"  - Destination: {self.destination}\n"
        return s


class ToolError(ProvisionError):
    """Generic error for external tool issues"""

    def __init__(self, message: str = None, tool_name: str = None) -> None:
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name

    def __str__(self) -> str:
        return f"{self.message}"


class ToolNotFoundError(ToolError):
    """Error for an expected tool not being found"""

    pass


class InstallError(ToolError):
    """Error for an install or upgrade that failed or left the tool unusable"""

    pass


class ToolRuntimeError(ToolError):
    """Error for an external command that could not run or exited non-zero"""

    def __init__(
        self,
        message: str = None,
        tool_name: str = None,
        cmd: List[str] = None,
        stdout: str | bytes | None = None,
        stderr: str | bytes | None = None,
        exit_code: int = 1,
        metadata: dict | None = None,
    ) -> None:
        super().__init__(message, tool_name)
        self.exit_code = exit_code
        self.cmd = cmd or []
        self.stdout = stdout
        self.stderr = stderr
        self.metadata = metadata

    @staticmethod
    def _dump(stream: str | bytes | None, lines: int) -> str:
        if not stream:
            return ""
        if isinstance(stream, bytes):
            stream = stream.decode(errors="replace")
        return "\n".join(stream.splitlines()[-lines:])

    def dump_stdout(self, lines: int = 10) -> str:
        return self._dump(self.stdout, lines)

    def dump_stderr(self, lines: int = 10) -> str:
        return self._dump(self.stderr, lines)

    def __str__(self) -> str:
        s = f"{self.message}\n"
        s += f"  - Exit code: {self.exit_code}\n"
        s += f"  - Command executed: {' '.join(self.cmd)}\n"
        stdout = self.dump_stdout()
        if stdout:
            s += f"  - Command output:\n{textwrap.indent(stdout, '      ')}\n"
        stderr = self.dump_stderr()
        if stderr:
            s += f"  - Command error output:\n{textwrap.indent(stderr, '      ')}\n"
        if self.metadata:
            s += "  - Metadata:\n"
            for key, value in self.metadata.items():
                s += f"    - {key}: {value}\n"
        return s


class ToolExecutionError(ToolRuntimeError):
    """Error for a tool that exists but cannot be invoked"""

    pass


class BuildError(ToolRuntimeError):
    """Error for an image build that returned a non-zero exit code"""

    pass
