"""JMX Builder - Generate JMeter JMX test plans from simple XML test descriptions."""

__version__ = "1.0.0"

from jmx_builder.core.jmx_validator import JMXValidator
from jmx_builder.core.plan_assembler import JMXBuilder, PlanAssembler
from jmx_builder.core.settings import GeneratorSettings, load_settings
from jmx_builder.core.tree_collector import TreeCollector

__all__ = [
    "JMXBuilder",
    "PlanAssembler",
    "TreeCollector",
    "JMXValidator",
    "GeneratorSettings",
    "load_settings",
]
