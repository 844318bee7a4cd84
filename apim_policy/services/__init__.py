"""
Services package for the policy compiler.

Contains the compiler capability that other parts of a system depend on
instead of importing the compiler package directly.
"""

from apim_policy.services.compiler import (
    LocalPolicyCompiler,
    PolicyCompiler,
    RemotePolicyCompiler,
    get_policy_compiler,
)

__all__ = [
    "LocalPolicyCompiler",
    "PolicyCompiler",
    "RemotePolicyCompiler",
    "get_policy_compiler",
]
