"""Tree collector for simplified test descriptions.

This module walks a parsed test description and produces the ordered
model the assembler generates from: the main stack, the CSV data sets and
the testinfo mapping. Script elements splice in the collected contents of
other documents.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from jmx_builder.core.element_processors import ElementProcessor
from jmx_builder.core.input_tree import InputNode, parse_document
from jmx_builder.core.plan_data import (
    CollectedPlan,
    ControllerEntry,
    CsvDataSetSpec,
    Diagnostic,
    DiagnosticKind,
    HttpEntry,
    LoopEntry,
    Missing,
    NodeKind,
    StackEntry,
    TimerEntry,
)
from jmx_builder.core.settings import GeneratorSettings
from jmx_builder.exceptions import IncludeException, SourceParseException

logger = logging.getLogger(__name__)


class TreeCollector:
    """Collect the ordered plan model from a test description.

    The collector never raises for problems inside the description;
    they are recorded as diagnostics and collection continues with what
    could be read.

    Example:
        >>> collector = TreeCollector()
        >>> plan = collector.collect_file("smoke.xml")
        >>> len(plan.stack)
        3
    """

    def __init__(self, settings: Optional[GeneratorSettings] = None) -> None:
        """Initialize the collector.

        Args:
            settings: Generator settings (defaults when None)
        """
        self.settings = settings or GeneratorSettings()
        self.diagnostics: list[Diagnostic] = []
        self.processor = ElementProcessor(
            self.settings, self.diagnostics, include=self.include_scripts
        )
        # Resolved paths of the documents currently being collected
        self._include_chain: list[Path] = []

    def collect_file(self, path: Union[str, Path]) -> CollectedPlan:
        """Parse and collect a test description file.

        Args:
            path: Path to the simplified XML document

        Returns:
            CollectedPlan for the document

        Raises:
            FileNotFoundError: Document doesn't exist
            SourceParseException: Document is not well-formed XML
        """
        return self.collect(parse_document(path))

    def collect(self, node: InputNode) -> CollectedPlan:
        """Collect the plan model from a document's root node.

        Args:
            node: Root node of a parsed test description

        Returns:
            CollectedPlan with stack, csv stack, testinfo and diagnostics
        """
        if node.base_dir is None:
            return self._collect(node)

        self._include_chain.append(Path(node.source).resolve())
        try:
            return self._collect(node)
        finally:
            self._include_chain.pop()

    def _collect(self, node: InputNode) -> CollectedPlan:
        plan = CollectedPlan(diagnostics=self.diagnostics)

        for child in node:
            kind = NodeKind.of(child.name)

            if kind is NodeKind.TIMER:
                if not child.has_children:
                    continue
                outcome = self.processor.process_timer(child)
                if isinstance(outcome, Missing):
                    self.processor.report_missing(outcome, child)
                    continue
                plan.stack.append(TimerEntry(outcome.value))
            elif kind is NodeKind.LOOP:
                if not child.has_children:
                    continue
                plan.stack.append(LoopEntry(self.processor.process_loop(child)))
            elif kind is NodeKind.CONTROLLER:
                if not child.has_children:
                    continue
                plan.stack.append(ControllerEntry(self.processor.process_controller(child)))
            elif kind is NodeKind.TESTINFO:
                for info in child:
                    plan.test_info.merge(info.name, info.content)
            elif kind is NodeKind.HTTP:
                plan.stack.append(HttpEntry(self.processor.process_http(child)))
            elif kind is NodeKind.CSV:
                if not child.has_children:
                    continue
                plan.csv_stack.append(self.processor.process_csv(child))
            elif kind is NodeKind.SCRIPT:
                if not child.has_children:
                    continue
                stack, csv_stack = self.include_scripts(child)
                plan.stack.extend(stack)
                plan.csv_stack.extend(csv_stack)
            else:
                logger.debug("Ignoring <%s> at %s:%d", child.name, child.source, child.line)

        logger.debug(
            "Collected %d entries and %d CSV data sets from %s",
            len(plan.stack),
            len(plan.csv_stack),
            node.source,
        )
        return plan

    # === Script includes ===

    def include_scripts(
        self, node: InputNode
    ) -> tuple[list[StackEntry], list[CsvDataSetSpec]]:
        """Collect the documents named by a script element.

        Every file child names one document; its stack and CSV data sets
        are returned in order for splicing. Included testinfo blocks are
        not merged.

        Args:
            node: script element

        Returns:
            Tuple of (stack entries, CSV data sets)
        """
        stack: list[StackEntry] = []
        csv_stack: list[CsvDataSetSpec] = []

        for child in node:
            if child.name != "file":
                logger.debug("Ignoring script field <%s> at line %d", child.name, child.line)
                continue

            included = self._include_file(child.content, child)
            if included is None:
                continue

            stack.extend(included.stack)
            csv_stack.extend(included.csv_stack)

        return stack, csv_stack

    def _include_file(self, name: str, node: InputNode) -> Optional[CollectedPlan]:
        try:
            path = self._resolve_include(name, node)
        except IncludeException as e:
            self.processor.report(DiagnosticKind.RESOURCE_UNAVAILABLE, str(e), node)
            return None

        try:
            root = parse_document(path)
        except FileNotFoundError as e:
            self.processor.report(DiagnosticKind.RESOURCE_UNAVAILABLE, str(e), node)
            return None
        except SourceParseException as e:
            self.processor.report(DiagnosticKind.PARSE_FAILURE, str(e), node)
            return None

        logger.debug("Including %s", path)
        self._include_chain.append(path)
        try:
            return self._collect(root)
        finally:
            self._include_chain.pop()

    def _resolve_include(self, name: str, node: InputNode) -> Path:
        """Find the document a script file element names.

        Relative names are looked up next to the including document
        first, then in the working directory.

        Raises:
            IncludeException: File not found, already being included, or
                              the include chain is too deep
        """
        if not name:
            raise IncludeException("Script element has an empty <file>")

        candidates = [Path(name)]
        if not Path(name).is_absolute() and node.base_dir is not None:
            candidates.insert(0, node.base_dir / name)

        found = next((c for c in candidates if c.is_file()), None)
        if found is None:
            raise IncludeException(f'Script file doesn\'t exist: "{name}"')

        path = found.resolve()
        if path in self._include_chain:
            raise IncludeException(f'Script file "{name}" is already being included')

        if len(self._include_chain) > self.settings.max_include_depth:
            raise IncludeException(
                f'Script file "{name}" exceeds the maximum include depth '
                f"of {self.settings.max_include_depth}"
            )

        return path
