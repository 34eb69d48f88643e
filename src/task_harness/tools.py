# tools.py
# Tool registry: all callable implementations.
# The harness looks tools up through a ToolRegistry and never calls these
# functions directly.

import ast
import contextlib
import io
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from pprint import pformat
from typing import Any, Callable, Iterable, Mapping


class ToolNotFoundError(Exception):
    """Raised when a tool name is absent from the registry."""


@dataclass(frozen=True)
class ToolContext:
    """Per-run resources a tool may touch."""

    working_dir: Path
    context_provider: Callable[[str], str] | None = None
    data: Mapping[str, Any] = field(default_factory=dict)

    def resolve(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.working_dir / candidate


ToolExecutor = Callable[[dict, ToolContext], Any]


@dataclass(frozen=True)
class ToolDescriptor:
    """A registry entry: what the tool is, whether it needs approval, how to run it."""

    name: str
    description: str
    risky: bool
    executor: ToolExecutor = field(compare=False, repr=False)
    parameters: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require(args: dict, name: str) -> Any:
    value = args.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"Missing required parameter: {name}")
    return value


def _walk(directory: Path, pattern: str | None) -> list[Path]:
    regex = re.compile(pattern) if pattern else None
    found = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            if regex is None or regex.search(name):
                found.append(Path(root) / name)
    return found


def default_context(working_dir: Path, level: str = "standard") -> str:
    """Summarise the working directory. Stands in when no context provider is wired."""
    if level not in ("minimal", "standard", "comprehensive"):
        raise ValueError(f"Unknown context level: {level}")

    files = _walk(working_dir, None)
    lines = [
        f"Working directory: {working_dir}",
        f"Files: {len(files)}",
    ]
    if level == "minimal":
        return "\n".join(lines)

    entries = sorted(p.name + ("/" if p.is_dir() else "") for p in working_dir.iterdir())
    lines.append("Top-level entries:")
    lines.extend(f"  {entry}" for entry in entries)

    if level == "comprehensive":
        lines.append("All files:")
        lines.extend(f"  {p.relative_to(working_dir).as_posix()}" for p in files)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------


def _tool_read_file(args: dict, ctx: ToolContext) -> str:
    path = ctx.resolve(_require(args, "filepath"))
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_text(encoding="utf-8", errors="replace")


def _tool_write_file(args: dict, ctx: ToolContext) -> str:
    path = ctx.resolve(_require(args, "filepath"))
    content = args.get("content", "")
    if not isinstance(content, str):
        content = str(content)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return f"File written successfully: {path}"


def _tool_execute_code(args: dict, ctx: ToolContext) -> str:
    code = _require(args, "code")
    namespace: dict[str, Any] = {"__name__": "__task_harness__"}
    buffer = io.StringIO()
    value = None

    try:
        tree = ast.parse(code, mode="exec")
        # A trailing expression is evaluated separately so its value can be reported.
        tail = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            tail = ast.Expression(tree.body.pop().value)
        with contextlib.redirect_stdout(buffer), contextlib.chdir(ctx.working_dir):
            exec(compile(tree, "<task>", "exec"), namespace)
            if tail is not None:
                value = eval(compile(tail, "<task>", "eval"), namespace)
    except SystemExit as exc:
        raise RuntimeError(f"Code execution error: exit({exc.code})") from exc
    except Exception as exc:
        raise RuntimeError(f"Code execution error: {exc}") from exc

    output = buffer.getvalue().rstrip("\n")
    rendered = pformat(value)
    if output:
        return f"Output:\n{output}\n\nResult:\n{rendered}"
    return rendered


def _tool_list_files(args: dict, ctx: ToolContext) -> str:
    directory = ctx.resolve(args.get("directory") or ".")
    if not directory.is_dir():
        raise NotADirectoryError(f"Directory not found: {directory}")

    files = _walk(directory, args.get("pattern"))
    if not files:
        return "No files found"
    return "\n".join(p.relative_to(directory).as_posix() for p in files)


def _tool_search_files(args: dict, ctx: ToolContext) -> str:
    regex = re.compile(_require(args, "pattern"))
    directory = ctx.resolve(args.get("directory") or ".")
    if not directory.is_dir():
        raise NotADirectoryError(f"Directory not found: {directory}")

    files = _walk(directory, args.get("file_pattern"))
    if not files:
        return "No files to search"

    blocks = []
    for path in files:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError):
            continue
        hits = [line for line in lines if regex.search(line)]
        if hits:
            blocks.append("\n".join([f"File: {path}"] + [f"  {line}" for line in hits]))

    if not blocks:
        return "No matches found"
    return "\n\n".join(blocks)


def _tool_get_context(args: dict, ctx: ToolContext) -> str:
    level = args.get("level") or "standard"
    if ctx.context_provider is not None:
        return ctx.context_provider(level)
    return default_context(ctx.working_dir, level)


def _describe_records(name: str, records: list) -> str:
    columns: dict[str, list] = {}
    for row in records:
        for key, value in row.items():
            columns.setdefault(key, []).append(value)

    lines = [f"Data: {name}", f"Rows: {len(records)}", f"Columns: {len(columns)}"]
    for column, values in columns.items():
        kinds = sorted({type(v).__name__ for v in values})
        summary = f"  {column} ({'/'.join(kinds)}): {len(values)} values"
        numbers = [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]
        if numbers and len(numbers) == len(values):
            summary += f", min={min(numbers)}, max={max(numbers)}, mean={sum(numbers) / len(numbers):.4g}"
        lines.append(summary)
    return "\n".join(lines)


def _tool_describe_data(args: dict, ctx: ToolContext) -> str:
    name = _require(args, "name")
    method = args.get("method") or "basic"
    if name not in ctx.data:
        raise LookupError(f"Object not found: {name}")
    obj = ctx.data[name]

    # pandas-style frames are recognised by shape and describe().
    if hasattr(obj, "describe") and hasattr(obj, "shape"):
        rows, cols = obj.shape
        lines = [f"Data: {name}", f"Rows: {rows}", f"Columns: {cols}", "", str(obj.dtypes)]
        if method != "basic":
            lines += ["", str(obj.describe(include="all"))]
        return "\n".join(lines)

    if isinstance(obj, list) and obj and all(isinstance(row, Mapping) for row in obj):
        return _describe_records(name, obj)

    raise TypeError(f"Object is not a data frame: {name}")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ToolRegistry:
    """
    Fixed table of tools, validated once at construction.

    Unknown names are treated as risky so the approval gate fails safe.
    """

    def __init__(self, descriptors: Iterable[ToolDescriptor]) -> None:
        table: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if not descriptor.name or not descriptor.name.isidentifier():
                raise ValueError(f"Invalid tool name: {descriptor.name!r}")
            if descriptor.name in table:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            if not callable(descriptor.executor):
                raise ValueError(f"Tool '{descriptor.name}' has no callable executor")
            table[descriptor.name] = descriptor
        if not table:
            raise ValueError("A tool registry needs at least one tool")
        self._tools = table

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> tuple[str, ...]:
        return tuple(self._tools)

    def list_tools(self) -> frozenset[ToolDescriptor]:
        return frozenset(self._tools.values())

    def describe(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(f"Tool '{name}' is not in the registry.") from None

    def is_risky(self, name: str | None) -> bool:
        descriptor = self._tools.get(name) if name else None
        return True if descriptor is None else descriptor.risky


DEFAULT_REGISTRY = ToolRegistry(
    [
        ToolDescriptor(
            name="read_file",
            description="Read contents of a file",
            risky=False,
            executor=_tool_read_file,
            parameters={"filepath": "Path to the file to read"},
        ),
        ToolDescriptor(
            name="write_file",
            description="Write content to a file",
            risky=True,
            executor=_tool_write_file,
            parameters={"filepath": "Path to the file to write", "content": "Content to write"},
        ),
        ToolDescriptor(
            name="execute_code",
            description="Execute Python code and capture its output",
            risky=True,
            executor=_tool_execute_code,
            parameters={"code": "Python code to execute"},
        ),
        ToolDescriptor(
            name="list_files",
            description="List files in a directory",
            risky=False,
            executor=_tool_list_files,
            parameters={
                "directory": "Directory to list (default: working directory)",
                "pattern": "Optional regex matched against file names",
            },
        ),
        ToolDescriptor(
            name="search_files",
            description="Search for text in files",
            risky=False,
            executor=_tool_search_files,
            parameters={
                "pattern": "Regex to search for",
                "directory": "Directory to search (default: working directory)",
                "file_pattern": "Optional regex to limit which files are searched",
            },
        ),
        ToolDescriptor(
            name="get_context",
            description="Get project context information",
            risky=False,
            executor=_tool_get_context,
            parameters={"level": "Context level: 'minimal', 'standard', or 'comprehensive'"},
        ),
        ToolDescriptor(
            name="describe_data",
            description="Describe an in-memory data table",
            risky=False,
            executor=_tool_describe_data,
            parameters={
                "name": "Name of the data table",
                "method": "Description method: 'basic' or 'full'",
            },
        ),
    ]
)


TOOL_PRESETS: dict[str, tuple[str, ...]] = {
    "all": DEFAULT_REGISTRY.names(),
    "read_only": ("read_file", "list_files", "search_files", "get_context", "describe_data"),
    "code_analysis": ("read_file", "list_files", "search_files", "get_context"),
    "data_analysis": ("describe_data", "execute_code", "get_context"),
    "code_generation": ("read_file", "list_files", "write_file", "get_context"),
}


def tool_preset(name: str = "all") -> tuple[str, ...]:
    """Return a predefined tool selection for common task shapes."""
    try:
        return TOOL_PRESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown tool preset '{name}'. Choose one of: {', '.join(TOOL_PRESETS)}"
        ) from None
