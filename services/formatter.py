"""Source formatting through the external Go+ and Go toolchains.

The request body is either a single source file or a multi-file archive where
each file starts with a ``-- name --`` header line. Formatter failures are not
exceptions: they come back as a :class:`FormatError` inside the response, so
the editor can point at the offending line.
"""
import logging
import re
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from core.cancel import CancelToken, check
from core.errors import CanceledError

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "prog.gop"
FORMATTED_EXTENSIONS = (".gop", ".go", ".spx")
GO_MOD = "go.mod"
POLL_INTERVAL = 0.05

_HEADER = re.compile(r"^-- (?P<name>.+?) --$")
_ERROR = re.compile(r"^(?P<file>[^:\n]+):(?P<line>\d+)(?::(?P<column>\d+))?:\s*(?P<msg>.*)$")


@dataclass
class FormatError:
    line: int = 0
    column: int = 0
    msg: str = ""


@dataclass
class FormatResponse:
    body: str = ""
    error: FormatError = field(default_factory=FormatError)


def split_files(body: str) -> tuple[list[tuple[str, str]], bool]:
    """Return ``[(name, content)]`` and whether the body carried headers."""
    lines = body.splitlines(keepends=True)
    if not lines or not _HEADER.match(lines[0].rstrip("\r\n")):
        return [(DEFAULT_FILENAME, body)], False
    files: list[tuple[str, list[str]]] = []
    for line in lines:
        m = _HEADER.match(line.rstrip("\r\n"))
        if m:
            files.append((m.group("name").strip(), []))
        else:
            files[-1][1].append(line)
    return [(name, "".join(chunks)) for name, chunks in files], True


def join_files(files: list[tuple[str, str]], archived: bool) -> str:
    if not archived:
        return files[0][1]
    out = []
    for name, content in files:
        out.append(f"-- {name} --\n")
        out.append(content if content.endswith("\n") or not content else content + "\n")
    return "".join(out)


def extract_error(output: str, filename: str = "") -> FormatError:
    for raw in output.splitlines():
        m = _ERROR.match(raw.strip())
        if m:
            return FormatError(line=int(m.group("line")), column=int(m.group("column") or 0), msg=m.group("msg"))
    msg = output.strip() or "format failed"
    return FormatError(msg=f"{filename}: {msg}" if filename else msg)


class Formatter:
    """Runs the external formatters over each file of a request body.

    Go+ sources go through ``gop fmt -smart``; with ``fix_imports`` plain Go
    files go through ``goimports`` instead. ``go.mod`` is normalized with
    ``go mod edit -fmt``. Each tool rewrites the file in place.
    """

    def __init__(self, executable: str = "gop", timeout: float = 30.0,
                 go_executable: str = "go", goimports_executable: str = "goimports"):
        self.executable = executable
        self.timeout = timeout
        self.go_executable = go_executable
        self.goimports_executable = goimports_executable

    def _command(self, name: str, path: Path, fix_imports: bool) -> Optional[list[str]]:
        if Path(name).name == GO_MOD:
            return [self.go_executable, "mod", "edit", "-fmt", str(path)]
        if fix_imports and name.endswith(".go"):
            return [self.goimports_executable, "-w", str(path)]
        if name.endswith(FORMATTED_EXTENSIONS):
            return [self.executable, "fmt", "-smart", str(path)]
        return None

    def _run(self, command: list[str], cancel: Optional[CancelToken]) -> tuple[int, str]:
        proc = subprocess.Popen(command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        try:
            waited = 0.0
            while True:
                try:
                    stdout, _ = proc.communicate(timeout=POLL_INTERVAL)
                    return proc.returncode, stdout or ""
                except subprocess.TimeoutExpired:
                    waited += POLL_INTERVAL
                if cancel is not None and cancel.canceled:
                    raise CanceledError(cancel.reason or "canceled")
                if waited >= self.timeout:
                    return -1, f"{command[0]} timed out after {self.timeout:g}s"
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.communicate()

    def format_file(self, name: str, source: str, cancel: Optional[CancelToken] = None,
                    fix_imports: bool = False) -> tuple[str, Optional[FormatError]]:
        """Format one file; files no tool handles come back unchanged."""
        with tempfile.TemporaryDirectory(prefix="gopformat") as tmp_dir:
            path = Path(tmp_dir) / Path(name).name
            command = self._command(name, path, fix_imports)
            if command is None:
                return source, None
            path.write_text(source, encoding="utf-8")
            check(cancel)
            try:
                code, output = self._run(command, cancel)
            except OSError as exc:
                logger.warning("cannot run %s: %s", command[0], exc)
                return "", FormatError(msg=f"formatter unavailable: {exc}")
            if code != 0:
                # the tools report errors against the temp path
                output = output.replace(str(path), name)
                logger.warning("format %s failed: %s", name, output.strip())
                return "", extract_error(output, name)
            return path.read_text(encoding="utf-8"), None

    def format(self, body: str, cancel: Optional[CancelToken] = None, fix_imports: bool = False) -> FormatResponse:
        files, archived = split_files(body)
        formatted = []
        for name, content in files:
            out, err = self.format_file(name, content, cancel, fix_imports)
            if err is not None:
                return FormatResponse(body="", error=err)
            formatted.append((name, out))
        return FormatResponse(body=join_files(formatted, archived))
