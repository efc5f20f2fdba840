"""Core modules for JMX Builder."""

from jmx_builder.core.element_generators import ElementGenerator, GenerationContext
from jmx_builder.core.element_processors import ElementProcessor
from jmx_builder.core.input_tree import InputNode, parse_document, parse_string
from jmx_builder.core.jmx_validator import JMXValidator
from jmx_builder.core.jmx_writer import serialize, write_plan
from jmx_builder.core.plan_assembler import JMXBuilder, PlanAssembler
from jmx_builder.core.plan_data import (
    BuildResult,
    CollectedPlan,
    Diagnostic,
    DiagnosticKind,
    NodeKind,
)
from jmx_builder.core.sanitizer import sanitize
from jmx_builder.core.settings import GeneratorSettings, load_settings
from jmx_builder.core.tree_collector import TreeCollector

__all__ = [
    "InputNode",
    "parse_document",
    "parse_string",
    "TreeCollector",
    "ElementProcessor",
    "ElementGenerator",
    "GenerationContext",
    "PlanAssembler",
    "JMXBuilder",
    "JMXValidator",
    "serialize",
    "write_plan",
    "sanitize",
    "GeneratorSettings",
    "load_settings",
    "BuildResult",
    "CollectedPlan",
    "Diagnostic",
    "DiagnosticKind",
    "NodeKind",
]
