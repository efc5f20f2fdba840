"""Assembly of complete JMeter test plans.

This module provides the PlanAssembler, which lays collected entries out
in the fixed JMX document structure, and JMXBuilder, which runs a whole
build from a simplified test description to a written .jmx file.

Document structure:

    jmeterTestPlan
      hashTree
        TestPlan
        hashTree
          ResultCollector (Assertion Results) + hashTree
          ThreadGroup [0] + hashTree
            CookieManager + hashTree
            main stack fragments, in order
          CSVDataSet + hashTree, ThreadGroup [n] + hashTree, ...
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from jmx_builder.core.element_generators import ElementGenerator, GenerationContext
from jmx_builder.core.jmx_writer import write_plan
from jmx_builder.core.plan_data import (
    BuildResult,
    CollectedPlan,
    ControllerEntry,
    ControllerSpec,
    CsvDataSetSpec,
    Defaulted,
    Diagnostic,
    DiagnosticKind,
    RepeatEntry,
    StackEntry,
)
from jmx_builder.core.settings import GeneratorSettings
from jmx_builder.core.tree_collector import TreeCollector
from jmx_builder.exceptions import JMXGenerationException, SourceParseException

logger = logging.getLogger(__name__)

COUNT_KEYS = (
    "samplers",
    "timers",
    "assertions",
    "extractors",
    "loops",
    "controllers",
    "csv_data_sets",
    "thread_groups",
    "result_collectors",
)


def hoist_csv_data_sets(
    stack: list[StackEntry], csv_stack: Sequence[CsvDataSetSpec] = ()
) -> list[CsvDataSetSpec]:
    """Collect CSV data sets included inside controllers, depth first.

    CSV data sets are top-level blocks of a plan, so the ones pulled in
    by a controller's script includes are moved to the plan level. The
    controllers of the main stack are searched, along with the ones in
    each CSV data set's stack and repeat blocks, hoisted ones included.
    """
    hoisted: list[CsvDataSetSpec] = []

    def visit(ctrl: ControllerSpec) -> None:
        for csv in ctrl.csv_stack:
            hoisted.append(csv)
            visit_csv(csv)
        for entry in ctrl.stack:
            if isinstance(entry, ControllerEntry):
                visit(entry.controller)

    def visit_csv(csv: CsvDataSetSpec) -> None:
        for entry in csv.stack:
            items = entry.items if isinstance(entry, RepeatEntry) else (entry,)
            for item in items:
                if isinstance(item, ControllerEntry):
                    visit(item.controller)

    for entry in stack:
        if isinstance(entry, ControllerEntry):
            visit(entry.controller)
    for csv in csv_stack:
        visit_csv(csv)

    return hoisted


class PlanAssembler:
    """Lay collected entries out as a complete JMX document tree.

    Example:
        >>> assembler = PlanAssembler()
        >>> root, context = assembler.assemble(plan, "smoke.xml")
        >>> root.tag
        'jmeterTestPlan'
    """

    def __init__(self, settings: Optional[GeneratorSettings] = None) -> None:
        """Initialize the assembler.

        Args:
            settings: Generator settings (defaults when None)
        """
        self.settings = settings or GeneratorSettings()

    def assemble(
        self, plan: CollectedPlan, source: str = ""
    ) -> tuple[ET.Element, GenerationContext]:
        """Generate the document tree for a collected plan.

        Main stack entries are generated in order inside the main thread
        group; CSV data sets follow the main thread group at test plan
        level. Defaults applied to testinfo values are added to the
        plan's diagnostics.

        Args:
            plan: Output of TreeCollector.collect()
            source: Input document name used in diagnostics

        Returns:
            Tuple of (jmeterTestPlan element, generation context with counts)
        """
        context = GenerationContext(
            settings=self.settings, source=source, diagnostics=plan.diagnostics
        )
        generator = ElementGenerator(context)
        info = plan.test_info

        name = self._resolve(info.name(), context)
        num_threads = self._resolve(info.num_threads(), context)
        assert_log = self._resolve(info.assert_log(), context)
        assert_type = self._resolve(info.assert_type(), context)
        ramp_time = self._resolve(info.ramp_time(self.settings.ramp_time), context)

        jmeter_test_plan = ET.Element(
            "jmeterTestPlan",
            {
                "version": "1.2",
                "properties": self.settings.jmeter_version,
                "jmeter": self.settings.jmeter_version,
            },
        )
        main_hashtree = ET.SubElement(jmeter_test_plan, "hashTree")
        main_hashtree.append(self._create_test_plan(name))
        test_plan_hashtree = ET.SubElement(main_hashtree, "hashTree")

        test_plan_hashtree.extend(generator.generate_assertion_results(assert_type, assert_log))

        thread_group_num = context.next_thread_group()
        test_plan_hashtree.append(
            generator.create_thread_group(
                f"Thread Group [{thread_group_num}]: {name}", num_threads, ramp_time
            )
        )
        thread_group_hashtree = ET.SubElement(test_plan_hashtree, "hashTree")
        thread_group_hashtree.extend(generator.create_cookie_manager())

        for entry in plan.stack:
            fragment = generator.generate_entry(entry)
            if fragment is not None:
                thread_group_hashtree.extend(fragment)

        for csv in plan.csv_stack + hoist_csv_data_sets(plan.stack, plan.csv_stack):
            test_plan_hashtree.extend(generator.generate_csv_data_set(csv))

        return jmeter_test_plan, context

    def _resolve(self, outcome: Any, context: GenerationContext) -> Any:
        if isinstance(outcome, Defaulted):
            context.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.STRUCTURAL_DEFAULT,
                    message=outcome.reason,
                    source=context.source,
                )
            )
        return outcome.value

    def _create_test_plan(self, name: str) -> ET.Element:
        """Create JMeter Test Plan element.

        Args:
            name: Test plan name from testinfo

        Returns:
            TestPlan XML Element
        """
        test_plan = ET.Element(
            "TestPlan",
            {
                "guiclass": "TestPlanGui",
                "testclass": "TestPlan",
                "testname": name,
                "enabled": "true",
            },
        )

        ET.SubElement(test_plan, "stringProp", {"name": "TestPlan.comments"}).text = ""
        ET.SubElement(test_plan, "boolProp", {"name": "TestPlan.functional_mode"}).text = "true"
        ET.SubElement(
            test_plan, "boolProp", {"name": "TestPlan.serialize_threadgroups"}
        ).text = "false"
        ET.SubElement(test_plan, "stringProp", {"name": "TestPlan.user_define_classpath"}).text = ""

        elem_prop = ET.SubElement(
            test_plan,
            "elementProp",
            {
                "name": "TestPlan.user_defined_variables",
                "elementType": "Arguments",
                "guiclass": "ArgumentsPanel",
                "testclass": "Arguments",
                "testname": "User Defined Variables",
                "enabled": "true",
            },
        )
        ET.SubElement(elem_prop, "collectionProp", {"name": "Arguments.arguments"})

        return test_plan


class JMXBuilder:
    """Build a JMX test plan file from a simplified test description.

    Example:
        >>> builder = JMXBuilder()
        >>> result = builder.build("smoke.xml", "smoke.jmx")
        >>> result.success
        True
    """

    def __init__(self, settings: Optional[GeneratorSettings] = None) -> None:
        """Initialize the builder.

        Args:
            settings: Generator settings (defaults when None)
        """
        self.settings = settings or GeneratorSettings()

    def build(
        self, input_path: Union[str, Path], output_path: Union[str, Path]
    ) -> BuildResult:
        """Convert a test description into a .jmx file.

        Problems inside the description are reported as diagnostics on
        the result; only an unreadable input document or an unwritable
        output file stop the build.

        Args:
            input_path: Simplified XML test description
            output_path: Where to write the JMX file

        Returns:
            BuildResult with the written path, element counts and diagnostics

        Raises:
            JMXGenerationException: Input is missing or malformed, or the
                                    output can't be written
        """
        collector = TreeCollector(self.settings)

        try:
            plan = collector.collect_file(input_path)
        except FileNotFoundError as e:
            raise JMXGenerationException(f"Input file not found: {input_path}") from e
        except SourceParseException as e:
            raise JMXGenerationException(str(e)) from e

        root, context = PlanAssembler(self.settings).assemble(plan, str(input_path))

        try:
            jmx_path = write_plan(root, output_path)
        except OSError as e:
            raise JMXGenerationException(f"Failed to write JMX file '{output_path}': {e}") from e

        counts = {key: context.counts.get(key, 0) for key in COUNT_KEYS}
        result = BuildResult(
            success=True,
            jmx_path=str(jmx_path),
            counts=counts,
            diagnostics=list(plan.diagnostics),
        )
        logger.info("%s", result.summary)
        return result
