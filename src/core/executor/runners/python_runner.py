"""
Python Runner

Runs snippets with the system Python 3 interpreter.
"""

from pathlib import Path
from typing import List

from ..interface import BaseRunner, Language


class PythonRunner(BaseRunner):
    """Execute Python code with the interpreter found on PATH."""

    language = Language.PYTHON3
    display_name = "Python"
    file_suffix = ".py"

    def build_command(self, script_path: Path) -> List[str]:
        return [self.binary, str(script_path)]
