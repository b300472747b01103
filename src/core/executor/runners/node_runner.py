"""
Node.js Runner

Node.js is an optional runtime: it is probed at startup and requests
are rejected without staging anything when it is missing.
"""

from pathlib import Path
from typing import List

from ..interface import BaseRunner, Language


class NodeRunner(BaseRunner):
    """Execute JavaScript with Node.js."""

    language = Language.NODEJS
    display_name = "Node.js"
    file_suffix = ".js"
    optional = True

    def build_command(self, script_path: Path) -> List[str]:
        return [self.binary, str(script_path)]
