"""Element generators for JMeter test plan fragments.

Every generator returns a fragment: a list of sibling elements in which
each primary element is immediately followed by its companion hashTree.
JMeter reads a plan by pairing each element with the hashTree after it,
so fragments are only ever extended with whole pairs. A generator with
nothing to emit returns None.

Text is stored raw on the elements; escaping happens when the tree is
serialized by jmx_writer.
"""

import logging
import xml.etree.ElementTree as ET
import zlib
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from jmx_builder.core.plan_data import (
    AssertSpec,
    ControllerEntry,
    ControllerSpec,
    CsvDataSetSpec,
    Diagnostic,
    DiagnosticKind,
    HttpEntry,
    HttpTestSpec,
    LoopEntry,
    LoopSpec,
    RegexSpec,
    RepeatEntry,
    ResultSpec,
    TimerEntry,
    TimerSpec,
    UploadSpec,
)
from jmx_builder.core.settings import GeneratorSettings

logger = logging.getLogger(__name__)

Fragment = list[ET.Element]

# What result collectors write for each sample
SAVE_CONFIG_ITEMS = {
    "time": "true",
    "latency": "true",
    "timestamp": "true",
    "success": "true",
    "label": "true",
    "code": "true",
    "message": "true",
    "threadName": "true",
    "dataType": "true",
    "encoding": "false",
    "assertions": "true",
    "subresults": "true",
    "responseData": "false",
    "samplerData": "false",
    "xml": "false",
    "fieldNames": "false",
    "responseHeaders": "false",
    "requestHeaders": "false",
    "responseDataOnError": "false",
    "saveAssertionResultsFailureMessage": "true",
    "assertionsResultsToSave": "0",
}


def count_csv_lines(path: Union[str, Path]) -> int:
    """Count the non-blank lines of a CSV file.

    Lines holding only whitespace are not counted. The header row, if
    any, counts like any other line.

    Raises:
        OSError: File can't be opened or read
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        return sum(1 for line in f if line.strip())


def _pair(element: ET.Element) -> Fragment:
    return [element, ET.Element("hashTree")]


@dataclass
class GenerationContext:
    """State threaded through one generation run.

    Attributes:
        settings: Generator settings
        thread_group_num: Number given to the next thread group
        source: Input document name used in generation diagnostics
        diagnostics: List generation diagnostics are appended to
        counts: Number of generated elements per kind
    """

    settings: GeneratorSettings = field(default_factory=GeneratorSettings)
    thread_group_num: int = 0
    source: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)
    counts: Counter = field(default_factory=Counter)

    def next_thread_group(self) -> int:
        """Return the current thread group number and advance it."""
        num = self.thread_group_num
        self.thread_group_num += 1
        return num


class ElementGenerator:
    """Generate JMeter element fragments from collected records.

    Example:
        >>> generator = ElementGenerator(GenerationContext())
        >>> fragment = generator.generate_timer(TimerSpec("T1", "100", "50"))
        >>> [e.tag for e in fragment]
        ['GaussianRandomTimer', 'hashTree']
    """

    def __init__(self, context: Optional[GenerationContext] = None) -> None:
        self.context = context or GenerationContext()

    # === Timers, extractors, assertions, listeners ===

    def generate_timer(self, timer: TimerSpec) -> Fragment:
        """Create a Gaussian Random Timer.

        Args:
            timer: Timer record

        Returns:
            [GaussianRandomTimer, hashTree]
        """
        element = ET.Element(
            "GaussianRandomTimer",
            {
                "guiclass": "GaussianRandomTimerGui",
                "testclass": "GaussianRandomTimer",
                "testname": f"Gaussian Timer: {timer.name}",
                "enabled": "true",
            },
        )
        ET.SubElement(element, "stringProp", {"name": "ConstantTimer.delay"}).text = timer.delay
        ET.SubElement(element, "stringProp", {"name": "RandomTimer.range"}).text = timer.range

        self.context.counts["timers"] += 1
        return _pair(element)

    def generate_regex(self, regex: RegexSpec) -> Fragment:
        """Create a Regular Expression Extractor.

        The display name falls back to the reference name when the regex
        has no name of its own.
        """
        element = ET.Element(
            "RegexExtractor",
            {
                "guiclass": "RegexExtractorGui",
                "testclass": "RegexExtractor",
                "testname": f"Regular Expression Extractor: {regex.name or regex.refname}",
                "enabled": "true",
            },
        )
        ET.SubElement(element, "stringProp", {"name": "RegexExtractor.useHeaders"}).text = (
            regex.use_headers
        )
        ET.SubElement(element, "stringProp", {"name": "RegexExtractor.refname"}).text = (
            regex.refname
        )
        ET.SubElement(element, "stringProp", {"name": "RegexExtractor.regex"}).text = (
            regex.expression
        )
        ET.SubElement(element, "stringProp", {"name": "RegexExtractor.template"}).text = (
            regex.template
        )
        ET.SubElement(element, "stringProp", {"name": "RegexExtractor.default"}).text = (
            regex.defaultvalue
        )
        ET.SubElement(element, "stringProp", {"name": "RegexExtractor.match_number"}).text = (
            regex.matchnum
        )

        self.context.counts["extractors"] += 1
        return _pair(element)

    def generate_assert(self, assertion: AssertSpec) -> Optional[Fragment]:
        """Create a Response Assertion over the response body.

        Args:
            assertion: Assertion record

        Returns:
            [ResponseAssertion, hashTree], or None when there is nothing
            to assert
        """
        if not assertion.literals:
            return None

        element = ET.Element(
            "ResponseAssertion",
            {
                "guiclass": "AssertionGui",
                "testclass": "ResponseAssertion",
                "testname": f"Response Assertion: {assertion.name}",
                "enabled": "true",
            },
        )

        # JMeter's own property name is misspelled "Asserion"
        coll_prop = ET.SubElement(element, "collectionProp", {"name": "Asserion.test_strings"})
        for literal in assertion.literals:
            key = str(zlib.crc32(literal.encode("utf-8")))
            ET.SubElement(coll_prop, "stringProp", {"name": key}).text = literal

        ET.SubElement(element, "stringProp", {"name": "Assertion.test_field"}).text = (
            "Assertion.response_data"
        )
        ET.SubElement(element, "boolProp", {"name": "Assertion.assume_success"}).text = "false"
        ET.SubElement(element, "intProp", {"name": "Assertion.test_type"}).text = str(
            assertion.test_type
        )

        self.context.counts["assertions"] += 1
        return _pair(element)

    def generate_result_collector(self, result: ResultSpec) -> Fragment:
        """Create the result collector attached to an HTTP test."""
        return _pair(
            self._create_result_collector(
                result.type, f"{result.name}: Results", result.result_file
            )
        )

    def generate_assertion_results(self, guiclass: str, filename: str) -> Fragment:
        """Create the plan-wide Assertion Results collector."""
        return _pair(self._create_result_collector(guiclass, "Assertion Results", filename))

    def _create_result_collector(self, guiclass: str, testname: str, filename: str) -> ET.Element:
        listener = ET.Element(
            "ResultCollector",
            {
                "guiclass": guiclass,
                "testclass": "ResultCollector",
                "testname": testname,
                "enabled": "true",
            },
        )

        ET.SubElement(listener, "boolProp", {"name": "ResultCollector.error_logging"}).text = (
            "false"
        )

        obj_prop = ET.SubElement(listener, "objProp")
        ET.SubElement(obj_prop, "name").text = "saveConfig"
        value_elem = ET.SubElement(obj_prop, "value", {"class": "SampleSaveConfiguration"})
        for key, val in SAVE_CONFIG_ITEMS.items():
            ET.SubElement(value_elem, key).text = val

        ET.SubElement(listener, "stringProp", {"name": "filename"}).text = filename

        self.context.counts["result_collectors"] += 1
        return listener

    # === HTTP samplers ===

    def generate_http(self, test: HttpTestSpec) -> Fragment:
        """Create an HTTP Request sampler with its children.

        When the test has assertions, extractors, results or an upload,
        the sampler's hashTree holds (in order) extractors, timers,
        assertions and the result collector. Otherwise the hashTree stays
        empty and the timers follow the sampler as siblings.

        Args:
            test: HTTP test record

        Returns:
            [HTTPSamplerProxy, hashTree, ...]
        """
        sampler = self._create_http_sampler(test)
        companion = ET.Element("hashTree")
        fragment = [sampler, companion]

        timers: Fragment = []
        for timer in test.timers:
            timers.extend(self.generate_timer(timer))

        if not test.has_children:
            fragment.extend(timers)
            return fragment

        for regex in test.regexes:
            companion.extend(self.generate_regex(regex))

        companion.extend(timers)

        for assertion in test.asserts:
            assert_fragment = self.generate_assert(assertion)
            if assert_fragment is not None:
                companion.extend(assert_fragment)

        if test.results is not None:
            companion.extend(self.generate_result_collector(test.results))

        return fragment

    def _create_http_sampler(self, test: HttpTestSpec) -> ET.Element:
        sampler = ET.Element(
            "HTTPSamplerProxy",
            {
                "guiclass": "HttpTestSampleGui",
                "testclass": "HTTPSamplerProxy",
                "testname": test.name,
                "enabled": "true",
            },
        )

        sampler.append(self._create_arguments(test.vars))

        if test.upload is not None:
            sampler.append(self._create_file_args(test.upload))

        ET.SubElement(sampler, "stringProp", {"name": "HTTPSampler.domain"}).text = test.domain
        ET.SubElement(sampler, "stringProp", {"name": "HTTPSampler.port"}).text = test.port
        ET.SubElement(sampler, "stringProp", {"name": "HTTPSampler.protocol"}).text = test.protocol
        ET.SubElement(sampler, "stringProp", {"name": "HTTPSampler.path"}).text = test.path
        ET.SubElement(sampler, "stringProp", {"name": "HTTPSampler.method"}).text = test.method
        ET.SubElement(sampler, "boolProp", {"name": "HTTPSampler.follow_redirects"}).text = "true"
        ET.SubElement(sampler, "boolProp", {"name": "HTTPSampler.auto_redirects"}).text = "false"
        ET.SubElement(sampler, "boolProp", {"name": "HTTPSampler.use_keepalive"}).text = "true"

        self.context.counts["samplers"] += 1
        return sampler

    def _create_arguments(self, variables: list[tuple[str, str]]) -> ET.Element:
        """Create the sampler's request parameter collection.

        Args:
            variables: (name, value) pairs in request order

        Returns:
            elementProp holding one HTTPArgument per pair
        """
        elem_prop = ET.Element(
            "elementProp",
            {
                "name": "HTTPsampler.Arguments",
                "elementType": "Arguments",
                "guiclass": "HTTPArgumentsPanel",
                "testclass": "Arguments",
                "testname": "User Defined Variables",
                "enabled": "true",
            },
        )
        coll_prop = ET.SubElement(elem_prop, "collectionProp", {"name": "Arguments.arguments"})

        for name, value in variables:
            arg_elem = ET.SubElement(
                coll_prop, "elementProp", {"name": name, "elementType": "HTTPArgument"}
            )
            ET.SubElement(arg_elem, "boolProp", {"name": "HTTPArgument.always_encode"}).text = (
                "false"
            )
            ET.SubElement(arg_elem, "stringProp", {"name": "Argument.name"}).text = name
            ET.SubElement(arg_elem, "stringProp", {"name": "Argument.value"}).text = value
            ET.SubElement(arg_elem, "stringProp", {"name": "Argument.metadata"}).text = "="
            ET.SubElement(arg_elem, "boolProp", {"name": "HTTPArgument.use_equals"}).text = "true"

        return elem_prop

    def _create_file_args(self, upload: UploadSpec) -> ET.Element:
        files = ET.Element("elementProp", {"name": "HTTPsampler.Files", "elementType": "HTTPFileArgs"})
        coll_prop = ET.SubElement(files, "collectionProp", {"name": "HTTPFileArgs.files"})
        file_arg = ET.SubElement(
            coll_prop, "elementProp", {"name": upload.filename, "elementType": "HTTPFileArg"}
        )
        ET.SubElement(file_arg, "stringProp", {"name": "File.path"}).text = upload.filename
        ET.SubElement(file_arg, "stringProp", {"name": "File.paramname"}).text = upload.name_value
        ET.SubElement(file_arg, "stringProp", {"name": "File.mimetype"}).text = upload.mimetype
        return files

    # === Loops and controllers ===

    def generate_loop(self, loop: LoopSpec) -> Optional[Fragment]:
        """Create a Loop Controller around the loop's HTTP tests.

        Returns:
            [LoopController, hashTree], or None when the loop has no tests
        """
        if not loop.tests:
            logger.debug("Loop '%s' at line %d has no tests, skipping", loop.name, loop.line)
            return None

        controller = ET.Element(
            "LoopController",
            {
                "guiclass": "LoopControlPanel",
                "testclass": "LoopController",
                "testname": f"Loop Controller: {loop.name}",
                "enabled": "true",
            },
        )
        ET.SubElement(controller, "intProp", {"name": "LoopController.loops"}).text = str(
            loop.count
        )
        ET.SubElement(controller, "boolProp", {"name": "LoopController.continue_forever"}).text = (
            "true" if loop.forever else "false"
        )

        fragment = _pair(controller)
        for test in loop.tests:
            fragment[1].extend(self.generate_http(test))

        self.context.counts["loops"] += 1
        return fragment

    def generate_controller(self, ctrl: ControllerSpec) -> Fragment:
        """Create a Simple Controller holding a Throughput Controller.

        The throughput percentage is written as a float value and as its
        truncated integer in savedValue.

        Returns:
            [GenericController, hashTree[ThroughputController, hashTree[...]]]
        """
        generic = ET.Element(
            "GenericController",
            {
                "guiclass": "LogicControllerGui",
                "testclass": "GenericController",
                "testname": f"Simple Controller: {ctrl.name}",
                "enabled": "true",
            },
        )

        throughput = ET.Element(
            "ThroughputController",
            {
                "guiclass": "ThroughputControllerGui",
                "testclass": "ThroughputController",
                "testname": f"Throughput Controller: {ctrl.name}",
                "enabled": "true",
            },
        )
        float_prop = ET.SubElement(throughput, "FloatProperty")
        ET.SubElement(float_prop, "name").text = "ThroughputController.percentThroughput"
        ET.SubElement(float_prop, "value").text = str(float(ctrl.percent_throughput))
        ET.SubElement(float_prop, "savedValue").text = str(ctrl.percent_int)
        ET.SubElement(throughput, "boolProp", {"name": "ThroughputController.perThread"}).text = (
            "true"
        )
        ET.SubElement(throughput, "intProp", {"name": "ThroughputController.style"}).text = "1"
        ET.SubElement(throughput, "intProp", {"name": "ThroughputController.maxThroughput"}).text = (
            "1"
        )

        inner = _pair(throughput)
        for entry in ctrl.stack:
            nested = self.generate_entry(entry)
            if nested is not None:
                inner[1].extend(nested)

        fragment = _pair(generic)
        fragment[1].extend(inner)

        self.context.counts["controllers"] += 1
        return fragment

    def generate_entry(
        self, entry: Union[TimerEntry, HttpEntry, LoopEntry, ControllerEntry]
    ) -> Optional[Fragment]:
        """Generate the fragment for one stack entry."""
        if isinstance(entry, HttpEntry):
            return self.generate_http(entry.http)
        if isinstance(entry, LoopEntry):
            return self.generate_loop(entry.loop)
        if isinstance(entry, ControllerEntry):
            return self.generate_controller(entry.controller)
        if isinstance(entry, TimerEntry):
            return self.generate_timer(entry.timer)
        raise TypeError(f"Unknown stack entry: {entry!r}")

    # === Thread groups and CSV data sets ===

    def create_thread_group(self, name: str, num_threads: str, ramp_time: str) -> ET.Element:
        """Create a Thread Group running its children once per thread.

        Args:
            name: Display name
            num_threads: Number of virtual users
            ramp_time: Ramp-up period in seconds

        Returns:
            ThreadGroup XML Element
        """
        thread_group = ET.Element(
            "ThreadGroup",
            {
                "guiclass": "ThreadGroupGui",
                "testclass": "ThreadGroup",
                "testname": name,
                "enabled": "true",
            },
        )
        ET.SubElement(thread_group, "stringProp", {"name": "ThreadGroup.on_sample_error"}).text = (
            self.context.settings.on_sample_error
        )

        loop_controller = ET.SubElement(
            thread_group,
            "elementProp",
            {
                "name": "ThreadGroup.main_controller",
                "elementType": "LoopController",
                "guiclass": "LoopControlPanel",
                "testclass": "LoopController",
                "testname": "Loop Controller",
                "enabled": "true",
            },
        )
        ET.SubElement(
            loop_controller, "boolProp", {"name": "LoopController.continue_forever"}
        ).text = "false"
        ET.SubElement(loop_controller, "stringProp", {"name": "LoopController.loops"}).text = "1"

        ET.SubElement(thread_group, "stringProp", {"name": "ThreadGroup.num_threads"}).text = (
            num_threads
        )
        ET.SubElement(thread_group, "stringProp", {"name": "ThreadGroup.ramp_time"}).text = (
            ramp_time
        )
        ET.SubElement(thread_group, "boolProp", {"name": "ThreadGroup.scheduler"}).text = "false"
        ET.SubElement(thread_group, "stringProp", {"name": "ThreadGroup.duration"}).text = ""
        ET.SubElement(thread_group, "stringProp", {"name": "ThreadGroup.delay"}).text = ""

        self.context.counts["thread_groups"] += 1
        return thread_group

    def create_cookie_manager(self) -> Fragment:
        """Create an HTTP Cookie Manager that keeps cookies across iterations."""
        manager = ET.Element(
            "CookieManager",
            {
                "guiclass": "CookiePanel",
                "testclass": "CookieManager",
                "testname": "HTTP Cookie Manager",
                "enabled": "true",
            },
        )
        ET.SubElement(manager, "collectionProp", {"name": "CookieManager.cookies"})
        ET.SubElement(manager, "boolProp", {"name": "CookieManager.clearEachIteration"}).text = (
            "false"
        )
        return _pair(manager)

    def wrap_in_thread_group(self, name: str, fragment: Fragment) -> Fragment:
        """Run a fragment in its own single-thread, single-iteration group.

        Args:
            name: Name of the CSV data set the group belongs to
            fragment: Fragment to run

        Returns:
            [ThreadGroup, hashTree[CookieManager, hashTree, *fragment]]
        """
        num = self.context.next_thread_group()
        thread_group = self.create_thread_group(
            f"Thread Group [{num}]: {name}", "1", str(self.context.settings.ramp_time)
        )

        wrapped = _pair(thread_group)
        wrapped[1].extend(self.create_cookie_manager())
        wrapped[1].extend(fragment)
        return wrapped

    def generate_csv_data_set(self, csv: CsvDataSetSpec) -> Fragment:
        """Create a CSV Data Set Config and the thread groups that use it.

        Each http, loop and controller entry runs in its own thread group.
        A repeat entry runs its items once per non-blank line of the CSV
        file, all items of one line before the next line.

        Args:
            csv: CSV data set record

        Returns:
            [CSVDataSet, hashTree, ThreadGroup, hashTree, ...]
        """
        data_set = ET.Element(
            "CSVDataSet",
            {
                "guiclass": "TestBeanGUI",
                "testclass": "CSVDataSet",
                "testname": f"CSV Data Set Config: {csv.name}",
                "enabled": "true",
            },
        )
        ET.SubElement(data_set, "stringProp", {"name": "delimiter"}).text = csv.delimiter
        ET.SubElement(data_set, "stringProp", {"name": "fileEncoding"}).text = ""
        ET.SubElement(data_set, "stringProp", {"name": "filename"}).text = csv.filename
        ET.SubElement(data_set, "boolProp", {"name": "quotedData"}).text = "false"
        ET.SubElement(data_set, "boolProp", {"name": "recycle"}).text = (
            "true" if csv.recycle else "false"
        )
        ET.SubElement(data_set, "stringProp", {"name": "shareMode"}).text = "shareMode.all"
        ET.SubElement(data_set, "boolProp", {"name": "stopThread"}).text = "false"
        ET.SubElement(data_set, "stringProp", {"name": "variableNames"}).text = csv.varnames

        self.context.counts["csv_data_sets"] += 1
        fragment = _pair(data_set)

        for entry in csv.stack:
            if isinstance(entry, RepeatEntry):
                fragment.extend(self._generate_repeat(csv, entry))
                continue

            generated = self.generate_entry(entry)
            if generated is None:
                continue
            fragment.extend(self.wrap_in_thread_group(csv.name, generated))

        return fragment

    def _generate_repeat(self, csv: CsvDataSetSpec, repeat: RepeatEntry) -> Fragment:
        path = csv.resolve_file()
        try:
            line_count = count_csv_lines(path)
        except OSError as e:
            self.context.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.RESOURCE_UNAVAILABLE,
                    message=f"Can't read CSV file '{csv.filename}' for repeat: {e}",
                    source=self.context.source,
                    line=csv.line,
                )
            )
            return []

        logger.debug("Repeating %d item(s) for %d line(s) of %s", len(repeat.items), line_count, path)

        fragment: Fragment = []
        for _ in range(line_count):
            for item in repeat.items:
                generated = self.generate_entry(item)
                if generated is None:
                    continue
                fragment.extend(self.wrap_in_thread_group(csv.name, generated))

        return fragment
