"""
foreach_lint/checkers.py
════════════════════════

Checker framework that turns loop analysis results into diagnostics.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │  ┌──────────────────────────────────────────────────┐   │
  │  │           PreferForEachChecker                   │   │
  │  └──────────────────────┬───────────────────────────┘   │
  │                         │                               │
  │  ┌──────────────────────▼───────────────────────────┐   │
  │  │   Evidence: analyzer.find_simple_loops()         │   │
  │  └──────────────────────┬───────────────────────────┘   │
  │                         │                               │
  │  ┌──────────────────────▼───────────────────────────┐   │
  │  │           SuppressionManager                     │   │
  │  │ // foreach-lint-disable-line │ file │ global     │   │
  │  └──────────────────────┬───────────────────────────┘   │
  │                         │                               │
  │  ┌──────────────────────▼───────────────────────────┐   │
  │  │        Diagnostic Formatter (JSON / text)        │   │
  │  └──────────────────────────────────────────────────┘   │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        — per-run setup
  2. **collect_evidence()** — run analyses, gather suspicious sites
  3. **diagnose()**         — turn evidence into Diagnostics
  4. **report()**           — return Diagnostics not suppressed

License: MIT
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatch
from pathlib import Path
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    Union,
)

from foreach_lint.analyzer import LoopFinding, find_simple_loops
from foreach_lint.errors import ForEachLintError
from foreach_lint.syntax import Dialect, SourceFile, load_source

_log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"
    STYLE = "style"
    INFORMATION = "information"


@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single diagnostic finding.

    Attributes
    ----------
    error_id     : Unique identifier (e.g., "preferForEach")
    message      : Human-readable description
    severity     : DiagnosticSeverity
    location     : Line/column of the start of the flagged span
    start, end   : Character offsets of the flagged span
    checker_name : Name of the checker that produced this
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    start: int = 0
    end: int = 0
    checker_name: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "start": self.start,
            "end": self.end,
            "severity": self.severity.value,
            "message": self.message,
            "errorId": self.error_id,
            "checker": self.checker_name,
        }

    def to_json_str(self) -> str:
        return json.dumps(self.to_json())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        return f"{self.location}: {self.severity.value}: {self.message} [{self.error_id}]"


@dataclass(frozen=True)
class RuleMetadata:
    """Descriptive metadata published for a checker."""
    rule_name: str
    description: str
    rationale: str
    options_description: str = "Not configurable."
    type: str = "typescript"
    typescript_only: bool = False


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

_INLINE_RE = re.compile(
    r"foreach-lint-disable-(?P<scope>next-line|line)\b(?P<ids>[^\n]*)"
)

# errorIds are camelCase; anything else on the line is a free-text reason.
_ERROR_ID_RE = re.compile(r"^[a-z][a-z0-9]*(?:[A-Z][A-Za-z0-9]*)+$")


def _parse_inline_ids(text: str) -> List[str]:
    text = text.replace("*/", "").split("--", 1)[0]
    return [tok for tok in re.split(r"[\s,]+", text) if _ERROR_ID_RE.match(tok)]


class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Sources:
      1. Inline comments:
         ``// foreach-lint-disable-line [errorId ...]``
         ``// foreach-lint-disable-next-line [errorId ...]``
         (no ids → every id)
         Text after ``--`` is a reason and is ignored.
      2. File-level suppressions (fnmatch patterns)
      3. Global suppressions (command-line)
    """

    def __init__(self) -> None:
        # {(file, line)} → error_ids suppressed at that line ("*" = any)
        self._inline: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        self._global: Set[str] = set()

    def load_inline_suppressions(self, source: SourceFile) -> None:
        """Scan the comments of *source* for suppression markers."""
        for comment in source.comments():
            match = _INLINE_RE.search(source.node_text(comment))
            if match is None:
                continue
            line = comment.start_point[0] + 1
            if match.group("scope") == "next-line":
                line = comment.end_point[0] + 2
            ids = _parse_inline_ids(match.group("ids"))
            self._inline[(source.path, line)].update(ids or ["*"])

    def add_file_suppression(self, error_id: str, file_pattern: str) -> None:
        self._file_level[file_pattern].add(error_id)

    def add_global_suppression(self, error_id: str) -> None:
        self._global.add(error_id)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        eid = diag.error_id
        if eid in self._global or "*" in self._global:
            return True

        loc = diag.location
        inline = self._inline.get((loc.file, loc.line), set())
        if eid in inline or "*" in inline:
            return True

        for pattern, ids in self._file_level.items():
            if eid in ids or "*" in ids:
                if pattern == loc.file or loc.file.endswith(pattern) or fnmatch(loc.file, pattern):
                    return True
        return False

    def filter_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerContext:
    """
    Shared context passed to every checker during execution.

    Attributes
    ----------
    source       : the parsed file under analysis
    suppressions : SuppressionManager
    stats        : mutable dict for timing / counting statistics
    """
    source: SourceFile
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    stats: Dict[str, Any] = field(default_factory=dict)


class Checker(ABC):
    """
    Abstract base class for all checkers.

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``error_ids``
      - Implement ``collect_evidence()`` and ``diagnose()``
      - Optionally override ``configure()`` for custom setup
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    error_ids: ClassVar[FrozenSet[str]] = frozenset()
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING
    metadata: ClassVar[Optional[RuleMetadata]] = None

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def configure(self, ctx: CheckerContext) -> None:
        """Called before evidence collection.  Default does nothing."""
        pass

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        """Append Diagnostic objects to ``self._diagnostics``."""
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        error_id: str,
        message: str,
        file: str,
        line: int,
        column: int = 0,
        start: int = 0,
        end: int = 0,
        severity: Optional[DiagnosticSeverity] = None,
    ) -> None:
        self._diagnostics.append(Diagnostic(
            error_id=error_id,
            message=message,
            severity=severity or self.default_severity,
            location=SourceLocation(file=file, line=line, column=column),
            start=start,
            end=end,
            checker_name=self.name,
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Registry of available checkers.

    >>> registry = CheckerRegistry()
    >>> registry.register(PreferForEachChecker)
    >>> registry.get_enabled()
    [<class 'foreach_lint.checkers.PreferForEachChecker'>]
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> None:
        self._checkers[checker_cls.name] = checker_cls

    def unregister(self, name: str) -> None:
        self._checkers.pop(name, None)

    def disable(self, name: str) -> None:
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        self._disabled.discard(name)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())

    def get_enabled(self) -> List[Type[Checker]]:
        return [
            cls for name, cls in self._checkers.items()
            if name not in self._disabled
        ]

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    @property
    def names(self) -> List[str]:
        return sorted(self._checkers.keys())


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — PREFER-FOR-EACH CHECKER
# ═════════════════════════════════════════════════════════════════════════

class PreferForEachChecker(Checker):
    """
    Flags counted ``for`` loops whose index only reads the iterated array.

    The check takes no options; every canonical loop in the file is
    examined.
    """

    name: ClassVar[str] = "prefer-for-each"
    description: ClassVar[str] = (
        "Recommends a for-each loop over a standard for loop if the index "
        "is only used to access the array being iterated."
    )
    error_ids: ClassVar[FrozenSet[str]] = frozenset({"preferForEach"})
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.STYLE
    metadata: ClassVar[Optional[RuleMetadata]] = RuleMetadata(
        rule_name="prefer-for-each",
        description=description,
        rationale="A for-each loop is easier to implement and read when the index is not needed.",
    )

    def __init__(self) -> None:
        super().__init__()
        self._loops: List[LoopFinding] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        self._loops = find_simple_loops(ctx.source)
        ctx.stats["loops_flagged"] = ctx.stats.get("loops_flagged", 0) + len(self._loops)

    def diagnose(self, ctx: CheckerContext) -> None:
        for loop in self._loops:
            self._emit(
                error_id="preferForEach",
                message=loop.message,
                file=ctx.source.path,
                line=loop.line,
                column=loop.column,
                start=loop.start,
                end=loop.end,
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

_DEFAULT_REGISTRY = CheckerRegistry()
_DEFAULT_REGISTRY.register(PreferForEachChecker)


def default_registry() -> CheckerRegistry:
    return _DEFAULT_REGISTRY


@dataclass
class CheckerRunResults:
    """
    Aggregate results from running a suite of checkers.

    Attributes
    ----------
    diagnostics            : All diagnostics from all checkers
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing and counting statistics
    checker_names          : Names of checkers that were run
    files                  : Files analyzed
    failures               : Paths that could not be loaded, with the reason
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def by_file(self, file: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.location.file == file]

    def merge(self, other: "CheckerRunResults") -> None:
        self.diagnostics.extend(other.diagnostics)
        for name, diags in other.diagnostics_by_checker.items():
            self.diagnostics_by_checker[name].extend(diags)
        for key, val in other.stats.items():
            self.stats[key] = self.stats.get(key, 0) + val
        for name in other.checker_names:
            if name not in self.checker_names:
                self.checker_names.append(name)
        self.files.extend(other.files)
        self.failures.extend(other.failures)

    def to_json_lines(self) -> str:
        return "\n".join(d.to_json_str() for d in self.diagnostics)

    def to_gcc_format(self) -> str:
        return "\n".join(d.to_gcc_format() for d in self.diagnostics)

    def summary(self) -> str:
        lines = [
            f"Checked {len(self.files)} file(s): {self.total_count} diagnostics",
        ]
        for name in self.checker_names:
            count = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        for failure in self.failures:
            lines.append(f"  not checked: {failure}")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs a suite of checkers against parsed source files.

    >>> runner = CheckerRunner()
    >>> results = runner.run(parse_source(text))
    >>> print(results.summary())
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
    ) -> None:
        self.registry = registry or _DEFAULT_REGISTRY
        self.suppressions = suppressions or SuppressionManager()

    def _select(self, checkers: Optional[Sequence[str]]) -> List[Type[Checker]]:
        if checkers is None:
            return self.registry.get_enabled()
        selected: List[Type[Checker]] = []
        for name in checkers:
            cls = self.registry.get_by_name(name)
            if cls is None:
                _log.warning("unknown checker %r ignored", name)
                continue
            selected.append(cls)
        return selected

    def run(
        self,
        source: SourceFile,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """Run checkers against a single parsed file."""
        results = CheckerRunResults(files=[source.path])
        self.suppressions.load_inline_suppressions(source)
        ctx = CheckerContext(
            source=source,
            suppressions=self.suppressions,
        )

        for cls in self._select(checkers):
            checker = cls()
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                _log.exception("checker %s failed on %s", checker_name, source.path)
                diags = [Diagnostic(
                    error_id="checkerInternalError",
                    message=f"Checker '{checker_name}' failed: {exc}",
                    severity=DiagnosticSeverity.INFORMATION,
                    location=SourceLocation(file=source.path),
                    checker_name=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[checker_name].extend(diags)
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms

        results.stats.update(ctx.stats)
        return results

    def run_files(
        self,
        paths: Iterable[Union[str, Path]],
        checkers: Optional[Sequence[str]] = None,
        dialect: Optional[Dialect] = None,
    ) -> CheckerRunResults:
        """
        Load, parse and check each path.

        A path that cannot be read or has no grammar is logged and
        recorded in ``failures``; the remaining paths are still checked.
        """
        combined = CheckerRunResults()
        for path in paths:
            _log.info("checking %s", path)
            try:
                source = load_source(path, dialect=dialect)
            except ForEachLintError as exc:
                _log.error("%s", exc)
                combined.failures.append(str(exc))
                continue
            combined.merge(self.run(source, checkers=checkers))
        return combined


__all__ = [
    "Diagnostic",
    "DiagnosticSeverity",
    "SourceLocation",
    "RuleMetadata",
    "SuppressionManager",
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "PreferForEachChecker",
    "CheckerRunner",
    "CheckerRunResults",
    "default_registry",
]
