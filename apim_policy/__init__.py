"""
API Management policy document compiler.

Represents gateway policy configurations as structured models and converts
them to and from the vendor's ``<policies>`` XML format, with a catalog of
known policies and a validator in between.
"""

__version__ = "0.1.0"
