"""Sandboxed Executor — compiles untrusted code bodies into restricted procedures.

A code body is parsed, checked against a deny-list of constructs, wrapped as a
function whose only parameters are the capability names, and compiled against
a namespace holding allow-listed builtins plus ``math`` and a private
``random.Random``. Nothing from the host process is reachable from inside.

Compilation and execution are separate steps:
- ``compile_procedure`` raises CompileError and has no side effects.
- ``Procedure.__call__`` raises ArtifactRuntimeError for anything that escapes.
"""

import ast
import math
import random
import sys
import time
from dataclasses import dataclass

from gengame.errors import ArtifactRuntimeError, CompileError
from gengame.state import Artifact

ARTIFACT_FILENAME = "<artifact>"
SETUP_PARAMS = ("surface", "scratch")
UPDATE_PARAMS = ("surface", "scratch", "input")

_ENTRY = "procedure"

SAFE_BUILTINS = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "dict": dict,
    "divmod": divmod,
    "enumerate": enumerate,
    "filter": filter,
    "float": float,
    "int": int,
    "isinstance": isinstance,
    "len": len,
    "list": list,
    "map": map,
    "max": max,
    "min": min,
    "pow": pow,
    "range": range,
    "reversed": reversed,
    "round": round,
    "set": set,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
    "zip": zip,
    "Exception": Exception,
    "IndexError": IndexError,
    "KeyError": KeyError,
    "ValueError": ValueError,
    "ZeroDivisionError": ZeroDivisionError,
}

_DENIED_NODES = {
    ast.Import: "import",
    ast.ImportFrom: "import",
    ast.Global: "global",
    ast.Nonlocal: "nonlocal",
    ast.Yield: "yield",
    ast.YieldFrom: "yield from",
    ast.Await: "await",
    ast.AsyncFunctionDef: "async def",
    ast.AsyncFor: "async for",
    ast.AsyncWith: "async with",
    ast.ClassDef: "class definitions",
}

# str.format can reach attributes the AST never shows. The introspection
# attributes lead from a generator, frame or traceback back to host globals.
_DENIED_ATTRIBUTES = {
    "format",
    "format_map",
    "gi_frame",
    "gi_code",
    "gi_yieldfrom",
    "cr_frame",
    "cr_code",
    "cr_await",
    "ag_frame",
    "ag_code",
    "ag_await",
    "f_back",
    "f_globals",
    "f_locals",
    "f_builtins",
    "f_code",
    "tb_frame",
    "tb_next",
    "func_globals",
}


class _ASTGuard(ast.NodeVisitor):
    """Collect violations instead of stopping at the first one."""

    def __init__(self) -> None:
        self.violations: list[str] = []

    def visit(self, node):
        label = _DENIED_NODES.get(type(node))
        if label:
            self._reject(f"{label} is not allowed", node)
            return None
        return super().visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_") or node.attr in _DENIED_ATTRIBUTES:
            self._reject(f"access to attribute '{node.attr}' is not allowed", node)
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("_"):
            self._reject(f"name '{node.id}' is not allowed", node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        if node.name.startswith("_"):
            self._reject(f"function name '{node.name}' is not allowed", node)
        self.generic_visit(node)

    def visit_arg(self, node: ast.arg) -> None:
        if node.arg.startswith("_"):
            self._reject(f"argument name '{node.arg}' is not allowed", node)

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.type is None:
            self._reject("bare 'except:' is not allowed", node)
        self.generic_visit(node)

    def _reject(self, message: str, node: ast.AST) -> None:
        self.violations.append(f"{message} (line {getattr(node, 'lineno', '?')})")


class _Deadline(BaseException):
    """Raised inside artifact code once its wall-clock budget is spent.

    Derives from BaseException so ``except Exception`` in artifact code cannot
    swallow it.
    """


def _deadline_tracer(deadline: float):
    """Build a sys.settrace hook that only watches frames compiled from artifacts."""

    def _local(frame, event, arg):
        if event == "line" and time.monotonic() > deadline:
            raise _Deadline()
        return _local

    def _global(frame, event, arg):
        if frame.f_code.co_filename != ARTIFACT_FILENAME:
            return None
        if time.monotonic() > deadline:
            raise _Deadline()
        return _local

    return _global


class Procedure:
    """A compiled code body bound to a fixed parameter list."""

    def __init__(self, fn, params: tuple[str, ...], timeout: float = 0.0):
        self._fn = fn
        self.params = params
        self.timeout = timeout

    def __call__(self, *args) -> None:
        if len(args) != len(self.params):
            raise TypeError(
                f"Procedure expects {len(self.params)} capabilities "
                f"({', '.join(self.params)}), got {len(args)}."
            )

        previous = sys.gettrace()
        if self.timeout > 0:
            sys.settrace(_deadline_tracer(time.monotonic() + self.timeout))
        try:
            self._fn(*args)
        except _Deadline:
            raise ArtifactRuntimeError(
                f"Timeout: call exceeded {self.timeout:g}s wall-clock budget"
            ) from None
        except Exception as exc:
            raise ArtifactRuntimeError(f"{type(exc).__name__}: {exc}") from exc
        finally:
            if self.timeout > 0:
                sys.settrace(previous)


def build_runtime(seed: int | None = None) -> dict:
    """Language-level helpers shared by the procedures of one artifact."""
    return {"math": math, "random": random.Random(seed)}


def _wrap(body: ast.Module, params: tuple[str, ...]) -> ast.Module:
    """Place the parsed body inside ``def procedure(<params>): ...``."""
    template = ast.parse(f"def {_ENTRY}({', '.join(params)}):\n    pass\n")
    template.body[0].body = body.body or [ast.Pass()]
    return ast.fix_missing_locations(template)


def compile_procedure(
    source: str,
    params: tuple[str, ...],
    runtime: dict | None = None,
    timeout: float = 0.0,
) -> Procedure:
    """Compile a code body into a Procedure taking exactly ``params``.

    Raises CompileError if the body does not parse, uses a forbidden
    construct, or is not valid as a function body.
    """
    if not isinstance(source, str):
        raise CompileError("Code body must be a string.")

    try:
        tree = ast.parse(source, filename=ARTIFACT_FILENAME)
    except SyntaxError as exc:
        raise CompileError(f"{exc.msg} (line {exc.lineno})") from exc

    guard = _ASTGuard()
    guard.visit(tree)
    if guard.violations:
        raise CompileError("; ".join(guard.violations))

    try:
        code = compile(_wrap(tree, params), ARTIFACT_FILENAME, "exec")
    except (SyntaxError, ValueError) as exc:
        raise CompileError(str(exc)) from exc

    namespace = {"__builtins__": dict(SAFE_BUILTINS)}
    namespace.update(runtime if runtime is not None else build_runtime())
    exec(code, namespace)  # defines the wrapper only
    fn = namespace.pop(_ENTRY)
    return Procedure(fn, params, timeout)


class Scratch:
    """Mutable state bag owned by one validation run.

    Fields are reachable as attributes (``scratch.score``) or items
    (``scratch["score"]``). Only dunder methods are defined so no field name
    is shadowed.
    """

    __slots__ = ("_fields",)

    def __init__(self, **fields):
        object.__setattr__(self, "_fields", dict(fields))

    def __getattr__(self, name):
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(f"scratch has no field '{name}'") from None

    def __setattr__(self, name, value):
        self._fields[name] = value

    def __delattr__(self, name):
        try:
            del self._fields[name]
        except KeyError:
            raise AttributeError(f"scratch has no field '{name}'") from None

    def __getitem__(self, name):
        return self._fields[name]

    def __setitem__(self, name, value):
        self._fields[name] = value

    def __delitem__(self, name):
        del self._fields[name]

    def __contains__(self, name):
        return name in self._fields

    def __iter__(self):
        return iter(list(self._fields))

    def __len__(self):
        return len(self._fields)

    def __repr__(self):
        return f"Scratch({self._fields!r})"


class Surface:
    """Headless drawing surface with a snake_case subset of the Canvas 2D API.

    Calls are counted but never rendered or read back.
    """

    __slots__ = (
        "width",
        "height",
        "fill_style",
        "stroke_style",
        "line_width",
        "font",
        "text_align",
        "global_alpha",
        "draw_calls",
    )

    def __init__(self, width: int = 800, height: int = 600):
        self.width = width
        self.height = height
        self.fill_style = "#000000"
        self.stroke_style = "#000000"
        self.line_width = 1.0
        self.font = "10px sans-serif"
        self.text_align = "start"
        self.global_alpha = 1.0
        self.draw_calls = 0

    def _record(self, *numbers) -> None:
        for n in numbers:
            if not isinstance(n, (int, float)):
                raise TypeError(f"expected a number, got {type(n).__name__}")
        self.draw_calls += 1

    def clear_rect(self, x, y, w, h):
        self._record(x, y, w, h)

    def fill_rect(self, x, y, w, h):
        self._record(x, y, w, h)

    def stroke_rect(self, x, y, w, h):
        self._record(x, y, w, h)

    def begin_path(self):
        self._record()

    def close_path(self):
        self._record()

    def move_to(self, x, y):
        self._record(x, y)

    def line_to(self, x, y):
        self._record(x, y)

    def arc(self, x, y, radius, start_angle, end_angle):
        self._record(x, y, radius, start_angle, end_angle)

    def fill(self):
        self._record()

    def stroke(self):
        self._record()

    def fill_text(self, text, x, y):
        self._record(x, y)

    def save(self):
        self._record()

    def restore(self):
        self._record()


@dataclass(frozen=True)
class CompiledArtifact:
    setup: Procedure
    update: Procedure


class Executor:
    """Compiles both bodies of an Artifact against one shared runtime."""

    def __init__(self, frame_timeout: float = 0.0, seed: int | None = None):
        self.frame_timeout = frame_timeout
        self.seed = seed

    def compile_artifact(self, artifact: Artifact) -> CompiledArtifact:
        """Compile setup and update. Raises CompileError naming the failing body."""
        runtime = build_runtime(self.seed)
        procedures = {}
        for name, source, params in (
            ("setup", artifact.setup_code, SETUP_PARAMS),
            ("update", artifact.update_code, UPDATE_PARAMS),
        ):
            try:
                procedures[name] = compile_procedure(source, params, runtime, self.frame_timeout)
            except CompileError as exc:
                raise CompileError(f"{name}: {exc}") from exc
        return CompiledArtifact(**procedures)
