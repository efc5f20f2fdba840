"""Data structures for JMX plan generation.

This module defines the typed records the tree collector builds from a
simplified test description, the typed outcomes processors return, and
the diagnostics reported back to the operator.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


# === Node classification ===


class NodeKind(Enum):
    """Kinds of elements understood in a simplified test description."""

    TIMER = "timer"
    LOOP = "loop"
    CONTROLLER = "controller"
    HTTP = "http"
    CSV = "csv"
    SCRIPT = "script"
    TESTINFO = "testinfo"
    REPEAT = "repeat"
    ASSERTS = "asserts"
    REGEX = "regex"
    RESULTS = "results"
    UPLOAD = "upload"
    DATA = "data"
    OTHER = "other"

    @classmethod
    def of(cls, name: str) -> "NodeKind":
        """Classify an element name.

        Args:
            name: Element name from the input document

        Returns:
            Matching NodeKind, or OTHER for names with no special meaning
        """
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER


# === Outcomes ===


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A value that was present in the input."""

    value: T


@dataclass(frozen=True)
class Defaulted(Generic[T]):
    """A value that was absent and replaced by a documented default."""

    value: T
    reason: str


@dataclass(frozen=True)
class Missing:
    """A required value that was absent and has no safe default."""

    reason: str


Outcome = Union[Ok[T], Defaulted[T], Missing]


def value_or_default(values: dict[str, str], key: str, default: T, reason: str) -> "Outcome[Any]":
    """Look up a key, falling back to a default.

    Args:
        values: Flat field mapping
        key: Key to look up
        default: Value used when the key is absent
        reason: Diagnostic text used when the default applies

    Returns:
        Ok with the stored value, or Defaulted with the default
    """
    if key in values:
        return Ok(values[key])
    return Defaulted(default, reason)


# === Diagnostics ===


class DiagnosticKind(Enum):
    """Categories of problems found while building a plan."""

    STRUCTURAL_DEFAULT = "default"
    UNUSABLE_RECORD = "unusable"
    RESOURCE_UNAVAILABLE = "unavailable"
    PARSE_FAILURE = "parse"


@dataclass(frozen=True)
class Diagnostic:
    """A problem reported to the operator.

    Attributes:
        kind: Category of the problem
        message: Human-readable description
        source: Document the problem was found in
        line: Source line (0 when unknown)
    """

    kind: DiagnosticKind
    message: str
    source: str = ""
    line: int = 0

    def render(self) -> str:
        """Render the diagnostic as operator text."""
        location = self.source or "<input>"
        if self.line:
            location = f"{location}:{self.line}"
        return f"{location}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "source": self.source,
            "line": self.line,
        }


# === Records ===


@dataclass
class TestInfo:
    """Plan-wide settings collected from a testinfo block.

    Keys are stored as "testinfo.<name>". Accessors apply defaults at
    generation time and report whether the default was used.
    """

    __test__ = False  # not a pytest test class

    values: dict[str, str] = field(default_factory=dict)

    def merge(self, name: str, value: str) -> None:
        """Store one testinfo field, overwriting earlier occurrences."""
        self.values[f"testinfo.{name}"] = value

    def get(self, name: str) -> Optional[str]:
        """Return a raw testinfo field, or None when absent."""
        return self.values.get(f"testinfo.{name}")

    def name(self) -> "Outcome[str]":
        return value_or_default(
            self.values,
            "testinfo.name",
            "Test Plan",
            "Failed to find <testinfo>:<name> element, using 'Test Plan'",
        )

    def num_threads(self) -> "Outcome[str]":
        if "testinfo.numthreads" in self.values:
            return Ok(self.values["testinfo.numthreads"])
        return Ok("1")

    def assert_log(self) -> "Outcome[str]":
        return value_or_default(
            self.values,
            "testinfo.assertlog",
            "assert.log",
            "Failed to find <testinfo>:<assertlog> element, "
            "setting default assert log file: assert.log",
        )

    def assert_type(self) -> "Outcome[str]":
        if "testinfo.asserttype" in self.values:
            return Ok(self.values["testinfo.asserttype"])
        return Ok("AssertionVisualizer")

    def ramp_time(self, default: int) -> "Outcome[str]":
        if "testinfo.rampup" in self.values:
            return Ok(self.values["testinfo.rampup"])
        return Ok(str(default))


@dataclass(frozen=True)
class TimerSpec:
    """Gaussian random timer.

    Attributes:
        name: Display name
        delay: Constant delay in milliseconds
        range: Deviation in milliseconds
    """

    name: str
    delay: str
    range: str


@dataclass
class AssertSpec:
    """Response assertion over the response body.

    Attributes:
        negate: Invert the match ("not" in the input)
        type: "contains" or "matches"; empty means contains, not negated
        name: Display name
        literals: Patterns the response is tested against, in order
    """

    negate: bool = False
    type: str = ""
    name: str = "!Unnamed Assert!"
    literals: list[str] = field(default_factory=list)

    @property
    def test_type(self) -> int:
        """JMeter Assertion.test_type code.

        2 = contains, 1 = matches; adding 4 negates the match. An empty or
        unknown type keeps the contains code and ignores negation.
        """
        kind = self.type.lower()
        if "contains" in kind:
            return 6 if self.negate else 2
        if "matches" in kind:
            return 5 if self.negate else 1
        return 2


@dataclass(frozen=True)
class RegexSpec:
    """Regular expression extractor.

    Every field has a default; input values override them.
    """

    name: str = ""
    refname: str = "UNDEFINED_REF_NAME"
    expression: str = ""
    matchnum: str = "0"
    defaultvalue: str = "REGEX_ERROR"
    type: str = "body"
    template: str = "$1$"

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "RegexSpec":
        """Build an extractor record from input fields over the defaults.

        Args:
            fields: Flat field mapping from a regex element

        Returns:
            RegexSpec with known keys overridden; unknown keys are ignored
        """
        known = {name: value for name, value in fields.items() if name in cls.__dataclass_fields__}
        return cls(**known)

    @property
    def use_headers(self) -> str:
        """Value of RegexExtractor.useHeaders for the match target."""
        return {"body": "false", "headers": "true", "url": "URL"}.get(self.type, "false")


@dataclass(frozen=True)
class UploadSpec:
    """File sent with an HTTP request."""

    filename: str = ""
    mimetype: str = ""
    name_value: str = ""


@dataclass
class RequestData:
    """Request parameters of an HTTP test.

    Attributes:
        attributes: Attributes of the data element
        vars: (name, value) pairs in document order
    """

    attributes: dict[str, str] = field(default_factory=dict)
    vars: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class ResultSpec:
    """Result collector attached to an HTTP test."""

    result_file: str = "report-result.log"
    name: str = ""
    type: str = "ViewResultsFullVisualizer"


@dataclass
class HttpTestSpec:
    """One HTTP request with its post-processors, timers and assertions.

    Attributes:
        has_children: True when an asserts, regex, results or upload block
                      produced content; controls whether the sampler's
                      companion hashTree is populated
        extra: Flat fields without a dedicated attribute
    """

    name: str = ""
    domain: str = ""
    path: str = ""
    method: str = "GET"
    port: str = ""
    protocol: str = ""
    upload: Optional[UploadSpec] = None
    asserts: list[AssertSpec] = field(default_factory=list)
    regexes: list[RegexSpec] = field(default_factory=list)
    timers: list[TimerSpec] = field(default_factory=list)
    data: Optional[RequestData] = None
    results: Optional[ResultSpec] = None
    has_children: bool = False
    extra: dict[str, str] = field(default_factory=dict)
    line: int = 0

    @property
    def vars(self) -> list[tuple[str, str]]:
        """Request parameters, empty when no data block was given."""
        return self.data.vars if self.data else []


@dataclass
class LoopSpec:
    """Loop controller around a list of HTTP tests.

    Attributes:
        count: Iterations; -1 when looping forever
        forever: Loop until the thread stops
    """

    name: str = ""
    count: int = 0
    forever: bool = True
    tests: list[HttpTestSpec] = field(default_factory=list)
    line: int = 0


@dataclass(frozen=True)
class TimerEntry:
    timer: TimerSpec


@dataclass(frozen=True)
class HttpEntry:
    http: HttpTestSpec


@dataclass(frozen=True)
class LoopEntry:
    loop: LoopSpec


@dataclass(frozen=True)
class ControllerEntry:
    controller: "ControllerSpec"


StackEntry = Union[TimerEntry, LoopEntry, ControllerEntry, HttpEntry]


@dataclass
class ControllerSpec:
    """Throughput controller around nested entries.

    Attributes:
        percent_throughput: Percentage of iterations that run the children
        stack: Nested entries in execution order
        csv_stack: CSV data sets pulled in through script includes
    """

    name: str = ""
    percent_throughput: float = 15.0
    stack: list[StackEntry] = field(default_factory=list)
    csv_stack: list["CsvDataSetSpec"] = field(default_factory=list)
    extra: dict[str, str] = field(default_factory=dict)
    line: int = 0

    @property
    def percent_int(self) -> int:
        """Percent truncated towards zero."""
        return int(self.percent_throughput)


@dataclass(frozen=True)
class RepeatEntry:
    """Entries replicated once per non-blank line of the bound CSV file."""

    items: tuple[Union[HttpEntry, LoopEntry, ControllerEntry], ...] = ()


CsvEntry = Union[HttpEntry, LoopEntry, ControllerEntry, RepeatEntry]


@dataclass
class CsvDataSetSpec:
    """CSV data set with the thread groups that consume it.

    Attributes:
        filename: CSV file read by JMeter (and by repeat expansion)
        varnames: Comma-separated variable names
        base_dir: Directory of the declaring document
    """

    name: str = ""
    filename: str = ""
    varnames: str = ""
    delimiter: str = ","
    recycle: bool = True
    stack: list[CsvEntry] = field(default_factory=list)
    base_dir: Optional[Path] = None
    extra: dict[str, str] = field(default_factory=dict)
    line: int = 0

    def resolve_file(self) -> Path:
        """Path of the CSV file as seen from this process.

        Relative names are looked up next to the declaring document
        first, then in the working directory.
        """
        path = Path(self.filename)
        if not path.is_absolute() and self.base_dir is not None:
            candidate = self.base_dir / path
            if candidate.exists():
                return candidate
        return path


@dataclass
class CollectedPlan:
    """Everything collected from one simplified test description."""

    stack: list[StackEntry] = field(default_factory=list)
    csv_stack: list[CsvDataSetSpec] = field(default_factory=list)
    test_info: TestInfo = field(default_factory=TestInfo)
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class BuildResult:
    """Result of a JMX build.

    Attributes:
        success: True if the JMX file was written
        jmx_path: Absolute path of the written file
        counts: Number of generated elements per kind
        diagnostics: Defaults applied and records dropped during the build
    """

    success: bool
    jmx_path: str
    counts: dict[str, int] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """One-line description of the generated plan."""
        return (
            f"Generated JMX test plan with {self.counts.get('samplers', 0)} HTTP samplers, "
            f"{self.counts.get('timers', 0)} timers, "
            f"{self.counts.get('assertions', 0)} assertions and "
            f"{self.counts.get('thread_groups', 0)} thread groups."
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "jmx_path": self.jmx_path,
            "counts": self.counts,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "summary": self.summary,
        }
