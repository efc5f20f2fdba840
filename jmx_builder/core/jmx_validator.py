"""JMX file validator for JMX Builder.

This module provides validation capabilities for JMeter JMX files,
checking structure, configuration, element/hashTree pairing, and
providing improvement recommendations.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Union

from jmx_builder.exceptions import JMXValidationException


class JMXValidator:
    """Validate JMeter JMX test plans.

    This class validates JMX files written by JMXBuilder or created
    manually. It checks for required elements, configuration validity,
    and that every element inside a hashTree is followed by its own
    hashTree, which is how JMeter attaches children to an element.
    """

    REQUIRED_ELEMENTS = [
        "jmeterTestPlan",
        "TestPlan",
        "ThreadGroup"
    ]

    TIMER_TAGS = ["GaussianRandomTimer", "ConstantTimer", "UniformRandomTimer"]

    def validate(self, jmx_path: Union[str, Path]) -> Dict:
        """Validate JMX file structure and configuration.

        Args:
            jmx_path: Path to JMX file to validate

        Returns:
            Validation results containing:
            - valid: Whether the JMX file is valid
            - issues: List of problems found
            - recommendations: List of improvement suggestions

        Raises:
            FileNotFoundError: If JMX file doesn't exist
            JMXValidationException: If XML parsing fails
        """
        jmx_file = Path(jmx_path)
        if not jmx_file.exists():
            raise FileNotFoundError(f"JMX file not found: {jmx_path}")

        try:
            tree = ET.parse(jmx_file)
            root = tree.getroot()
        except ET.ParseError as e:
            raise JMXValidationException(f"Invalid XML in JMX file: {e}")

        return self.validate_tree(root)

    def validate_tree(self, root: ET.Element) -> Dict:
        """Validate an in-memory test plan tree.

        Args:
            root: jmeterTestPlan element

        Returns:
            Validation results, as for validate()
        """
        issues: List[str] = []

        issues.extend(self._check_structure(root))
        issues.extend(self._check_pairing(root))
        issues.extend(self._check_configuration(root))
        issues.extend(self._check_samplers(root))

        recommendations = self._generate_recommendations(root)

        return {
            "valid": len(issues) == 0,
            "issues": issues,
            "recommendations": recommendations
        }

    def _check_structure(self, root: ET.Element) -> List[str]:
        """Check for required XML elements.

        Args:
            root: Root XML element

        Returns:
            List of issues found (empty if valid)
        """
        issues: List[str] = []

        if root.tag != "jmeterTestPlan":
            issues.append("Root element must be 'jmeterTestPlan'")
            return issues  # Cannot continue without proper root

        if root.find(".//TestPlan") is None:
            issues.append("Missing TestPlan element")

        if root.find(".//ThreadGroup") is None:
            issues.append("Missing ThreadGroup element")

        if root.find("hashTree") is None:
            issues.append("Missing main hashTree element after jmeterTestPlan")

        return issues

    def _check_pairing(self, root: ET.Element) -> List[str]:
        """Check that hashTree children alternate element, hashTree.

        Args:
            root: Root XML element

        Returns:
            List of issues found (empty if valid)
        """
        issues: List[str] = []

        for tree in root.iter("hashTree"):
            children = list(tree)
            for idx, child in enumerate(children):
                expects_element = idx % 2 == 0
                if expects_element and child.tag == "hashTree":
                    issues.append("Found a hashTree that does not follow an element")
                    break
                if not expects_element and child.tag != "hashTree":
                    previous = children[idx - 1]
                    issues.append(
                        f"{previous.tag} '{previous.get('testname', '')}' "
                        f"is not followed by its hashTree"
                    )
                    break
            else:
                if len(children) % 2 == 1:
                    last = children[-1]
                    issues.append(
                        f"{last.tag} '{last.get('testname', '')}' is not followed by its hashTree"
                    )

        return issues

    def _check_configuration(self, root: ET.Element) -> List[str]:
        """Check ThreadGroup configuration validity.

        Args:
            root: Root XML element

        Returns:
            List of issues found (empty if valid)
        """
        issues: List[str] = []

        for thread_group in root.iter("ThreadGroup"):
            name = thread_group.get("testname", "Thread Group")

            num_threads_elem = thread_group.find("stringProp[@name='ThreadGroup.num_threads']")
            if num_threads_elem is None:
                issues.append(f"ThreadGroup '{name}' missing 'num_threads' configuration")
            elif not (num_threads_elem.text or "").startswith("${"):
                try:
                    num_threads = int(num_threads_elem.text or "0")
                    if num_threads <= 0:
                        issues.append(
                            f"ThreadGroup '{name}' 'num_threads' must be > 0 (found: {num_threads})"
                        )
                except ValueError:
                    issues.append(
                        f"ThreadGroup '{name}' 'num_threads' must be a valid number "
                        f"(found: '{num_threads_elem.text}')"
                    )

            if thread_group.find("stringProp[@name='ThreadGroup.ramp_time']") is None:
                issues.append(f"ThreadGroup '{name}' missing 'ramp_time' configuration")

            scheduler_elem = thread_group.find("boolProp[@name='ThreadGroup.scheduler']")
            duration_elem = thread_group.find("stringProp[@name='ThreadGroup.duration']")
            loops_elem = thread_group.find(".//stringProp[@name='LoopController.loops']")

            has_scheduler = scheduler_elem is not None and scheduler_elem.text == "true"
            has_duration = duration_elem is not None and bool(duration_elem.text)

            if not (has_scheduler or loops_elem is not None):
                issues.append(
                    f"ThreadGroup '{name}' must have either scheduler enabled or loop count configured"
                )

            if has_scheduler and not has_duration:
                issues.append(
                    f"ThreadGroup '{name}' has scheduler enabled but missing 'duration' configuration"
                )

        return issues

    def _check_samplers(self, root: ET.Element) -> List[str]:
        """Check for samplers in test plan.

        Args:
            root: Root XML element

        Returns:
            List of issues found (empty if valid)
        """
        issues: List[str] = []

        samplers = root.findall(".//HTTPSamplerProxy")

        if len(samplers) == 0:
            issues.append("No HTTP samplers found in test plan")
            return issues

        for idx, sampler in enumerate(samplers, 1):
            sampler_name = sampler.get("testname") or f"Sampler #{idx}"

            path_elem = sampler.find("stringProp[@name='HTTPSampler.path']")
            if path_elem is None or not path_elem.text:
                issues.append(f"Sampler '{sampler_name}' missing path configuration")

            method_elem = sampler.find("stringProp[@name='HTTPSampler.method']")
            if method_elem is None or not method_elem.text:
                issues.append(f"Sampler '{sampler_name}' missing HTTP method")

            domain_elem = sampler.find("stringProp[@name='HTTPSampler.domain']")
            if domain_elem is None or not domain_elem.text:
                defaults = root.find(".//ConfigTestElement[@testclass='ConfigTestElement']")
                if defaults is None:
                    issues.append(
                        f"Sampler '{sampler_name}' has no domain and no HTTP Request Defaults found"
                    )

        return issues

    def _generate_recommendations(self, root: ET.Element) -> List[str]:
        """Generate improvement suggestions for the test plan.

        Args:
            root: Root XML element

        Returns:
            List of recommendations
        """
        recommendations: List[str] = []

        timers = [timer for tag in self.TIMER_TAGS for timer in root.iter(tag)]
        if len(timers) == 0:
            recommendations.append("Consider adding timers to simulate realistic user think time")

        assertions = root.findall(".//ResponseAssertion")
        samplers = root.findall(".//HTTPSamplerProxy")
        if len(samplers) > 0 and len(assertions) == 0:
            recommendations.append("No assertions found. Consider adding assertions to validate responses")

        if len(assertions) > 0 and len(root.findall(".//DurationAssertion")) == 0:
            recommendations.append("Consider adding Duration Assertions for performance validation")

        for loop in root.iter("LoopController"):
            forever = loop.find("boolProp[@name='LoopController.continue_forever']")
            if forever is not None and forever.text == "true":
                recommendations.append(
                    f"Loop '{loop.get('testname', '')}' runs forever; "
                    f"make sure the test is stopped by duration or by hand"
                )

        thread_group = root.find(".//ThreadGroup")
        if thread_group is not None:
            num_threads_elem = thread_group.find("stringProp[@name='ThreadGroup.num_threads']")
            if num_threads_elem is not None and num_threads_elem.text:
                try:
                    num_threads = int(num_threads_elem.text)
                    if num_threads < 10:
                        recommendations.append(
                            f"Thread count is low ({num_threads}). "
                            f"Consider increasing for realistic load testing"
                        )
                except ValueError:
                    pass  # Already handled in configuration check

        return recommendations
