"""Processors turning simplified-input elements into typed records.

Each processor walks one input element's children and returns the record
for it. Absent values are replaced by their documented defaults and a
diagnostic is recorded; a record that cannot be completed (a timer without
a delay) is returned as Missing and left out by the caller.
"""

import logging
import math
import re
from typing import Any, Callable, Optional

from jmx_builder.core.input_tree import InputNode
from jmx_builder.core.plan_data import (
    AssertSpec,
    ControllerEntry,
    ControllerSpec,
    CsvDataSetSpec,
    Defaulted,
    Diagnostic,
    DiagnosticKind,
    HttpEntry,
    HttpTestSpec,
    LoopEntry,
    LoopSpec,
    Missing,
    NodeKind,
    Ok,
    Outcome,
    RegexSpec,
    RepeatEntry,
    RequestData,
    ResultSpec,
    StackEntry,
    TimerSpec,
    UploadSpec,
)
from jmx_builder.core.settings import GeneratorSettings

logger = logging.getLogger(__name__)

# Splices a script element's includes: returns (stack, csv_stack)
IncludeHandler = Callable[[InputNode], tuple[list[StackEntry], list[CsvDataSetSpec]]]

TIMER_FIELDS = ("name", "delay", "range")

# Leading decimal number of a value such as "25%"
_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


def flat_fields(node: InputNode) -> dict[str, str]:
    """Map each element child's name to its text content.

    Later children with the same name overwrite earlier ones.
    """
    return {child.name: child.content for child in node}


def parse_forever(value: Optional[str]) -> bool:
    """Parse a loop's forever flag.

    Only the literal text "false" (any case) turns it off; any other
    value, including absence, means loop forever.
    """
    if value is None:
        return True
    return value.strip().lower() != "false"


class ElementProcessor:
    """Build typed records from simplified-input elements.

    Example:
        >>> processor = ElementProcessor()
        >>> outcome = processor.process_timer(timer_node)
        >>> isinstance(outcome, Ok)
        True
    """

    def __init__(
        self,
        settings: Optional[GeneratorSettings] = None,
        diagnostics: Optional[list[Diagnostic]] = None,
        include: Optional[IncludeHandler] = None,
    ) -> None:
        """Initialize the processor.

        Args:
            settings: Generator settings (defaults when None)
            diagnostics: List diagnostics are appended to
            include: Handler for script elements inside controllers;
                     scripts are ignored when None
        """
        self.settings = settings or GeneratorSettings()
        self.diagnostics = diagnostics if diagnostics is not None else []
        self.include = include
        self._controller_count = 0

    # === Diagnostics ===

    def report(self, kind: DiagnosticKind, message: str, node: InputNode) -> None:
        """Record a diagnostic located at a node."""
        diagnostic = Diagnostic(kind=kind, message=message, source=node.source, line=node.line)
        logger.debug("%s", diagnostic.render())
        self.diagnostics.append(diagnostic)

    def resolve(self, outcome: "Outcome[Any]", node: InputNode) -> Any:
        """Unwrap an Ok/Defaulted outcome, recording defaults as diagnostics."""
        if isinstance(outcome, Defaulted):
            self.report(DiagnosticKind.STRUCTURAL_DEFAULT, outcome.reason, node)
        return outcome.value

    # === Timers ===

    def process_timer(self, node: InputNode) -> "Outcome[TimerSpec]":
        """Build a Gaussian timer record.

        Args:
            node: timer element

        Returns:
            Ok(TimerSpec), or Missing naming the absent fields
        """
        fields = flat_fields(node)

        missing = [key for key in TIMER_FIELDS if fields.get(key) is None]
        if missing:
            return Missing(f"Found a nil value for a timer element for key(s): {', '.join(missing)}")

        return Ok(TimerSpec(name=fields["name"], delay=fields["delay"], range=fields["range"]))

    def report_missing(self, outcome: Missing, node: InputNode) -> None:
        """Record an unusable record; it will not be generated."""
        self.report(DiagnosticKind.UNUSABLE_RECORD, outcome.reason, node)

    # === HTTP tests ===

    def process_http(self, node: InputNode) -> HttpTestSpec:
        """Build an HTTP test record.

        Args:
            node: http element

        Returns:
            HttpTestSpec with timers, assertions, extractors, results,
            upload and request data collected in document order
        """
        spec = HttpTestSpec(line=node.line)
        fields: dict[str, str] = {}

        for child in node:
            kind = NodeKind.of(child.name)

            if kind is NodeKind.TIMER:
                if not child.has_children:
                    continue
                outcome = self.process_timer(child)
                if isinstance(outcome, Missing):
                    self.report_missing(outcome, child)
                else:
                    spec.timers.append(outcome.value)
            elif kind is NodeKind.ASSERTS:
                if not child.has_children:
                    continue
                spec.has_children = True
                spec.asserts.append(self.process_asserts(child))
            elif kind is NodeKind.REGEX:
                if not child.has_children:
                    continue
                spec.has_children = True
                spec.regexes.append(RegexSpec.from_fields(flat_fields(child)))
            elif kind is NodeKind.RESULTS:
                if not child.has_children:
                    continue
                spec.has_children = True
                spec.results = self.process_results(child)
            elif kind is NodeKind.UPLOAD:
                if not child.has_children:
                    continue
                spec.has_children = True
                spec.upload = self.process_upload(child)
            elif kind is NodeKind.DATA:
                spec.data = self.process_data(child)
            else:
                fields[child.name] = child.content

        spec.domain = fields.pop("domain", "")
        spec.path = fields.pop("path", "")
        spec.port = fields.pop("port", "")
        spec.protocol = fields.pop("protocol", "")

        if "method" in fields:
            spec.method = fields.pop("method")
        else:
            spec.method = self.resolve(
                Defaulted("GET", "HTTP test has no <method>, using GET"), node
            )

        if "name" in fields:
            spec.name = fields.pop("name")
        else:
            spec.name = self.resolve(
                Defaulted(
                    f"{spec.method} {spec.path}",
                    f"HTTP test has no <name>, using '{spec.method} {spec.path}'",
                ),
                node,
            )

        spec.extra = fields

        if spec.results is not None:
            spec.results = self._finish_results(spec.results, spec.name, node)

        return spec

    def process_asserts(self, node: InputNode) -> AssertSpec:
        """Build a response assertion record.

        Attributes of the asserts element are read first; children whose
        name starts with "assert" are assertion literals, any other child
        is a field that overrides the attributes.
        """
        fields = dict(node.attributes)
        literals: list[str] = []

        for child in node:
            if child.name.lower().startswith("assert"):
                literals.append(child.content)
            else:
                fields[child.name] = child.content

        spec = AssertSpec(literals=literals)
        if "not" in fields:
            spec.negate = "true" in fields["not"].lower()
        if "type" in fields:
            spec.type = fields["type"]
        if "name" in fields:
            spec.name = fields["name"]

        return spec

    def process_upload(self, node: InputNode) -> UploadSpec:
        fields = flat_fields(node)
        return UploadSpec(
            filename=fields.get("filename", ""),
            mimetype=fields.get("mimetype", ""),
            name_value=fields.get("name_value", ""),
        )

    def process_data(self, node: InputNode) -> RequestData:
        """Build request parameters from a data element.

        Each child carrying a name attribute becomes one (name, value)
        pair; children without one are skipped.
        """
        data = RequestData(attributes=dict(node.attributes))

        for child in node:
            if "name" not in child.attributes:
                logger.debug("Skipping request parameter without name at line %d", child.line)
                continue
            data.vars.append((child.attributes["name"], child.content))

        return data

    def process_results(self, node: InputNode) -> ResultSpec:
        """Build a result collector record.

        Fields left empty here are defaulted once the owning test's name
        is known.
        """
        fields = flat_fields(node)
        return ResultSpec(
            result_file=fields.get("result_file", fields.get("resultfile", "")),
            name=fields.get("name", ""),
            type=fields.get("type", ""),
        )

    def _finish_results(self, result: ResultSpec, test_name: str, node: InputNode) -> ResultSpec:
        if not result.result_file:
            result.result_file = self.resolve(
                Defaulted("report-result.log", "Missing 'result_file' key, using report-result.log"),
                node,
            )
        if not result.name:
            result.name = test_name
        if not result.type:
            result.type = self.resolve(
                Defaulted(
                    "ViewResultsFullVisualizer",
                    "Missing results 'type' key, using ViewResultsFullVisualizer",
                ),
                node,
            )
        return result

    # === Loops ===

    def process_loop(self, node: InputNode) -> LoopSpec:
        """Build a loop record.

        http children become the loop's tests; any other child is a field
        (name, count, forever). When forever is on the count is -1.
        """
        spec = LoopSpec(line=node.line)
        fields: dict[str, str] = {}

        for child in node:
            if NodeKind.of(child.name) is NodeKind.HTTP:
                spec.tests.append(self.process_http(child))
            else:
                fields[child.name] = child.content

        spec.name = fields.get("name", "")
        spec.forever = parse_forever(fields.get("forever"))

        if spec.forever:
            spec.count = -1
        else:
            spec.count = self.resolve(self._loop_count(fields.get("count")), node)

        return spec

    def _loop_count(self, value: Optional[str]) -> "Outcome[int]":
        if value is None:
            return Defaulted(0, "Loop has no <count>, using 0")
        try:
            return Ok(int(value.strip()))
        except ValueError:
            return Defaulted(0, f"Loop count '{value}' is not a number, using 0")

    # === Controllers ===

    def process_controller(self, node: InputNode) -> ControllerSpec:
        """Build a throughput controller record.

        Nested http, loop and controller elements are collected in order;
        script elements are spliced in through the include handler; any
        other child is a field (name, percent).
        """
        ordinal = self._controller_count
        self._controller_count += 1

        spec = ControllerSpec(line=node.line)
        fields: dict[str, str] = {}

        for child in node:
            kind = NodeKind.of(child.name)

            if kind is NodeKind.HTTP:
                spec.stack.append(HttpEntry(self.process_http(child)))
            elif kind is NodeKind.LOOP:
                spec.stack.append(LoopEntry(self.process_loop(child)))
            elif kind is NodeKind.CONTROLLER:
                spec.stack.append(ControllerEntry(self.process_controller(child)))
            elif kind is NodeKind.SCRIPT:
                if not child.has_children or self.include is None:
                    continue
                stack, csv_stack = self.include(child)
                spec.stack.extend(stack)
                spec.csv_stack.extend(csv_stack)
            else:
                fields[child.name] = child.content

        if "name" in fields:
            spec.name = fields.pop("name")
        else:
            spec.name = self.resolve(
                Defaulted(
                    f"My Controller: {ordinal}",
                    f"Failed to find name for controller, using 'My Controller: {ordinal}'",
                ),
                node,
            )

        spec.percent_throughput = self.resolve(
            self._percent(fields.pop("percent", fields.pop("precent", None))), node
        )
        spec.extra = fields

        return spec

    def _percent(self, value: Optional[str]) -> "Outcome[float]":
        default = self.settings.default_percent
        if value is None:
            return Defaulted(default, f"Failed to find percent for controller, using {default}")
        match = _LEADING_NUMBER.match(value)
        if not match:
            return Defaulted(default, f"Controller percent '{value}' is not a number, using {default}")
        percent = float(match.group(1))
        if not math.isfinite(percent):
            return Defaulted(default, f"Controller percent '{value}' is not a finite number, using {default}")
        if match.group(1) != value.strip():
            logger.debug("Controller percent '%s' read as %s", value, percent)
        return Ok(percent)

    # === CSV data sets ===

    def process_csv(self, node: InputNode) -> CsvDataSetSpec:
        """Build a CSV data set record.

        http, controller and loop children each become an entry run in
        its own thread group; repeat children become entries replicated
        once per data line; any other child is a field (name, filename,
        varnames, delimiter, recycle).
        """
        spec = CsvDataSetSpec(base_dir=node.base_dir, line=node.line)
        spec.delimiter = self.settings.csv_delimiter
        spec.recycle = self.settings.csv_recycle
        fields: dict[str, str] = {}

        for child in node:
            kind = NodeKind.of(child.name)

            if kind is NodeKind.HTTP:
                spec.stack.append(HttpEntry(self.process_http(child)))
            elif kind is NodeKind.CONTROLLER:
                spec.stack.append(ControllerEntry(self.process_controller(child)))
            elif kind is NodeKind.LOOP:
                spec.stack.append(LoopEntry(self.process_loop(child)))
            elif kind is NodeKind.REPEAT:
                if not child.has_children:
                    continue
                spec.stack.append(self.process_repeat(child))
            else:
                fields[child.name] = child.content

        spec.name = fields.pop("name", "")
        spec.varnames = fields.pop("varnames", "")
        if "filename" in fields:
            spec.filename = fields.pop("filename")
        else:
            spec.filename = self.resolve(Defaulted("", "CSV data set has no <filename>"), node)
        if "delimiter" in fields:
            spec.delimiter = fields.pop("delimiter")
        if "recycle" in fields:
            spec.recycle = fields.pop("recycle").strip().lower() != "false"
        spec.extra = fields

        return spec

    def process_repeat(self, node: InputNode) -> RepeatEntry:
        """Build a repeat block from its http, controller and loop children."""
        items: list = []

        for child in node:
            kind = NodeKind.of(child.name)

            if kind is NodeKind.HTTP:
                items.append(HttpEntry(self.process_http(child)))
            elif kind is NodeKind.CONTROLLER:
                items.append(ControllerEntry(self.process_controller(child)))
            elif kind is NodeKind.LOOP:
                items.append(LoopEntry(self.process_loop(child)))
            else:
                logger.debug("Ignoring <%s> inside repeat at line %d", child.name, child.line)

        return RepeatEntry(items=tuple(items))
