"""
Language Runners

Concrete implementations of BaseRunner for each supported language.
"""

from .python_runner import PythonRunner
from .node_runner import NodeRunner

__all__ = [
    "PythonRunner",
    "NodeRunner",
]
