"""Tests for tree_collector module."""

import pytest

from jmx_builder.core.input_tree import parse_string
from jmx_builder.core.plan_data import (
    ControllerEntry,
    DiagnosticKind,
    HttpEntry,
    LoopEntry,
    TimerEntry,
)
from jmx_builder.core.settings import GeneratorSettings
from jmx_builder.core.tree_collector import TreeCollector


def http(name: str) -> str:
    return f"<http><name>{name}</name><method>GET</method><path>/{name}</path></http>"


class TestCollect:
    """Test suite for collecting a single document."""

    @pytest.fixture
    def collector(self) -> TreeCollector:
        """Create a TreeCollector with default settings."""
        return TreeCollector()

    def test_stack_order(self, collector: TreeCollector):
        """Test entries keep document order."""
        plan = collector.collect(
            parse_string(
                "<test>"
                "<timer><name>T</name><delay>1</delay><range>1</range></timer>"
                + http("a")
                + "<loop><http><name>b</name><method>GET</method></http></loop>"
                "<controller><name>c</name><percent>10</percent></controller>"
                "</test>"
            )
        )

        assert [type(entry) for entry in plan.stack] == [
            TimerEntry,
            HttpEntry,
            LoopEntry,
            ControllerEntry,
        ]
        assert plan.diagnostics == []

    def test_childless_elements_skipped(self, collector: TreeCollector):
        """Test timer, loop, controller, csv and script without children are skipped."""
        plan = collector.collect(
            parse_string("<test><timer/><loop/><controller/><csv/><script/><unknown/></test>")
        )

        assert plan.stack == []
        assert plan.csv_stack == []

    def test_http_always_processed(self, collector: TreeCollector):
        """Test an http element without children still becomes an entry."""
        plan = collector.collect(parse_string("<test><http/></test>"))

        assert len(plan.stack) == 1
        assert plan.stack[0].http.name == "GET "

    def test_incomplete_timer_excluded(self, collector: TreeCollector):
        """Test a timer missing a field is dropped with a diagnostic."""
        plan = collector.collect(
            parse_string("<test><timer><name>T</name><delay>1</delay></timer></test>")
        )

        assert plan.stack == []
        assert len(plan.diagnostics) == 1
        assert plan.diagnostics[0].kind is DiagnosticKind.UNUSABLE_RECORD
        assert "range" in plan.diagnostics[0].message
        assert plan.diagnostics[0].line == 1

    def test_testinfo_merged(self, collector: TreeCollector):
        """Test testinfo fields merge and later ones win."""
        plan = collector.collect(
            parse_string(
                "<test>"
                "<testinfo><name>First</name><numthreads>5</numthreads></testinfo>"
                "<testinfo><name>Second</name></testinfo>"
                "</test>"
            )
        )

        assert plan.test_info.get("name") == "Second"
        assert plan.test_info.get("numthreads") == "5"

    def test_csv_collected(self, collector: TreeCollector):
        """Test csv elements go to the csv stack, not the main stack."""
        plan = collector.collect(
            parse_string(
                "<test><csv><name>d</name><filename>d.csv</filename>" + http("a") + "</csv></test>"
            )
        )

        assert plan.stack == []
        assert len(plan.csv_stack) == 1
        assert plan.csv_stack[0].name == "d"


class TestScriptIncludes:
    """Test suite for script includes."""

    def test_include_spliced_in_place(self, write_file):
        """Test included entries appear where the script element was.

        Args:
            write_file: File writer fixture
        """
        write_file(
            "lib/common.xml",
            "<test><testinfo><name>Included</name></testinfo>"
            + http("inc")
            + "<csv><name>d</name><filename>d.csv</filename>"
            + http("c")
            + "</csv></test>",
        )
        main = write_file(
            "main.xml",
            "<test><testinfo><name>Main</name></testinfo>"
            + http("before")
            + "<script><file>lib/common.xml</file></script>"
            + http("after")
            + "</test>",
        )

        plan = TreeCollector().collect_file(main)

        assert [entry.http.name for entry in plan.stack] == ["before", "inc", "after"]
        assert [csv.name for csv in plan.csv_stack] == ["d"]
        assert plan.test_info.get("name") == "Main"
        assert plan.diagnostics == []

    def test_each_file_child_included(self, write_file):
        """Test every file child of a script element is included in order.

        Args:
            write_file: File writer fixture
        """
        write_file("a.xml", "<test>" + http("a") + "</test>")
        write_file("b.xml", "<test>" + http("b") + "</test>")
        main = write_file("main.xml", "<test><script><file>a.xml</file><file>b.xml</file></script></test>")

        plan = TreeCollector().collect_file(main)

        assert [entry.http.name for entry in plan.stack] == ["a", "b"]

    def test_missing_include(self, write_file):
        """Test a missing include adds nothing, reports, and collection goes on.

        Args:
            write_file: File writer fixture
        """
        main = write_file(
            "main.xml",
            "<test><script><file>nope.xml</file></script>" + http("after") + "</test>",
        )

        plan = TreeCollector().collect_file(main)

        assert [entry.http.name for entry in plan.stack] == ["after"]
        assert len(plan.diagnostics) == 1
        assert plan.diagnostics[0].kind is DiagnosticKind.RESOURCE_UNAVAILABLE
        assert "nope.xml" in plan.diagnostics[0].message

    def test_empty_file_name(self, write_file):
        """Test an empty file element is reported.

        Args:
            write_file: File writer fixture
        """
        main = write_file("main.xml", "<test><script><file/></script></test>")

        plan = TreeCollector().collect_file(main)

        assert plan.stack == []
        assert plan.diagnostics[0].kind is DiagnosticKind.RESOURCE_UNAVAILABLE

    def test_malformed_include(self, write_file):
        """Test an include that fails to parse is reported as a parse failure.

        Args:
            write_file: File writer fixture
        """
        write_file("broken.xml", "<test><http>")
        main = write_file("main.xml", "<test><script><file>broken.xml</file></script></test>")

        plan = TreeCollector().collect_file(main)

        assert plan.stack == []
        assert plan.diagnostics[0].kind is DiagnosticKind.PARSE_FAILURE

    def test_self_include_refused(self, write_file):
        """Test a document including itself is refused instead of recursing.

        Args:
            write_file: File writer fixture
        """
        main = write_file(
            "main.xml", "<test>" + http("a") + "<script><file>main.xml</file></script></test>"
        )

        plan = TreeCollector().collect_file(main)

        assert [entry.http.name for entry in plan.stack] == ["a"]
        assert plan.diagnostics[0].kind is DiagnosticKind.RESOURCE_UNAVAILABLE
        assert "already being included" in plan.diagnostics[0].message

    def test_mutual_include_refused(self, write_file):
        """Test a cycle through two documents includes each one once.

        Args:
            write_file: File writer fixture
        """
        write_file("b.xml", "<test>" + http("b") + "<script><file>a.xml</file></script></test>")
        main = write_file("a.xml", "<test>" + http("a") + "<script><file>b.xml</file></script></test>")

        plan = TreeCollector().collect_file(main)

        assert [entry.http.name for entry in plan.stack] == ["a", "b"]
        assert len(plan.diagnostics) == 1

    def test_same_file_included_twice_in_sequence(self, write_file):
        """Test including one file twice side by side is not a cycle.

        Args:
            write_file: File writer fixture
        """
        write_file("a.xml", "<test>" + http("a") + "</test>")
        main = write_file(
            "main.xml",
            "<test><script><file>a.xml</file></script><script><file>a.xml</file></script></test>",
        )

        plan = TreeCollector().collect_file(main)

        assert [entry.http.name for entry in plan.stack] == ["a", "a"]
        assert plan.diagnostics == []

    def test_include_depth_limit(self, write_file):
        """Test includes deeper than max_include_depth are refused.

        Args:
            write_file: File writer fixture
        """
        write_file("c.xml", "<test>" + http("c") + "</test>")
        write_file("b.xml", "<test>" + http("b") + "<script><file>c.xml</file></script></test>")
        main = write_file("a.xml", "<test><script><file>b.xml</file></script></test>")

        plan = TreeCollector(GeneratorSettings(max_include_depth=1)).collect_file(main)

        assert [entry.http.name for entry in plan.stack] == ["b"]
        assert "maximum include depth" in plan.diagnostics[0].message

    def test_include_inside_controller(self, write_file):
        """Test a controller's script include fills the controller's stacks.

        Args:
            write_file: File writer fixture
        """
        write_file(
            "inc.xml",
            "<test>" + http("inc") + "<csv><name>d</name><filename>d.csv</filename>"
            + http("c") + "</csv></test>",
        )
        main = write_file(
            "main.xml",
            "<test><controller><name>ctl</name><percent>50</percent>"
            "<script><file>inc.xml</file></script></controller></test>",
        )

        plan = TreeCollector().collect_file(main)

        ctrl = plan.stack[0].controller
        assert [entry.http.name for entry in ctrl.stack] == ["inc"]
        assert [csv.name for csv in ctrl.csv_stack] == ["d"]
        assert plan.csv_stack == []

    def test_missing_top_level_document(self, tmp_path):
        """Test a missing top-level document raises FileNotFoundError.

        Args:
            tmp_path: Pytest temporary directory fixture
        """
        with pytest.raises(FileNotFoundError):
            TreeCollector().collect_file(tmp_path / "missing.xml")
