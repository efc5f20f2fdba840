"""Shared pytest fixtures for all tests."""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable

import pytest

SMOKE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<test>
  <testinfo>
    <name>Smoke</name>
  </testinfo>
  <http>
    <domain>example.com</domain>
    <path>/</path>
    <method>GET</method>
  </http>
  <timer>
    <name>T1</name>
    <delay>100</delay>
    <range>50</range>
  </timer>
</test>
"""


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper writing a text file under tmp_path.

    Args:
        tmp_path: Pytest temporary directory fixture

    Returns:
        Function taking (relative name, content) and returning the file path
    """

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def smoke_file(write_file: Callable[[str, str], Path]) -> Path:
    """Create the Smoke test description.

    One testinfo block named Smoke, one GET http test against example.com
    and one Gaussian timer.

    Returns:
        Path to smoke.xml
    """
    return write_file("smoke.xml", SMOKE_XML)


def _assert_paired(element: ET.Element) -> None:
    for tree in element.iter("hashTree"):
        children = list(tree)
        assert len(children) % 2 == 0, [c.tag for c in children]
        for idx, child in enumerate(children):
            if idx % 2 == 0:
                assert child.tag != "hashTree", [c.tag for c in children]
            else:
                assert child.tag == "hashTree", [c.tag for c in children]


def _assert_fragment_paired(fragment: list[ET.Element]) -> None:
    wrapper = ET.Element("hashTree")
    wrapper.extend(fragment)
    _assert_paired(wrapper)


@pytest.fixture
def assert_paired() -> Callable[[ET.Element], None]:
    """Return a checker asserting every hashTree below an element alternates
    element, hashTree."""
    return _assert_paired


@pytest.fixture
def assert_fragment_paired() -> Callable[[list[ET.Element]], None]:
    """Return a checker asserting a fragment is made of element, hashTree pairs."""
    return _assert_fragment_paired
