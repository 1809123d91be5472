"""
smoked - Looking-glass network diagnostics service

Runs mtr, traceroute, ping and BGP route lookups against validated
targets and returns their output over HTTP.
"""

__version__ = "1.0.0"
__author__ = "smoked contributors"
