"""
Policy document compiler.

This package converts policy models to and from gateway policy XML and
checks them against the policy catalog.

Key Components:
- catalog: Registry of known policies, their sections and parameters
- xml_generator: Deterministic PolicyModel to XML generation
- xml_parser: Heuristic XML to PolicyModel parsing
- validator: Structural and semantic checks with stable codes
- wizard: Step-by-step editing sessions over one model
- detection: Merge of cached and live gateway policy documents

Design Principles:
- Determinism: Same model produces byte-for-byte identical XML
- Tolerance: Unknown policies and elements pass through instead of failing
- Findings as data: Validation never raises
"""

from apim_policy.compiler.catalog import (
    get_all_policies,
    get_policies_by_category,
    get_policy_by_id,
)
from apim_policy.compiler.detection import detect_policy
from apim_policy.compiler.validator import check_duplicate_variable_names, validate
from apim_policy.compiler.wizard import PolicyWizard, PolicyWizardInstance
from apim_policy.compiler.xml_generator import escape_xml, to_xml, unescape_xml
from apim_policy.compiler.xml_parser import classify_element, from_xml, from_xml_async

__all__ = [
    "PolicyWizard",
    "PolicyWizardInstance",
    "check_duplicate_variable_names",
    "classify_element",
    "detect_policy",
    "escape_xml",
    "from_xml",
    "from_xml_async",
    "get_all_policies",
    "get_policies_by_category",
    "get_policy_by_id",
    "to_xml",
    "unescape_xml",
    "validate",
]
