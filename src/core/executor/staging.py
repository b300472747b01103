"""
Source Staging

Scoped temporary files holding submitted source text.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .exceptions import StagingError

logger = logging.getLogger(__name__)


@contextmanager
def staged_source(
    code: str,
    prefix: str = "snippet-",
    suffix: str = "",
    directory: Optional[str] = None,
) -> Iterator[Path]:
    """
    Write code to a uniquely named temporary file.

    The file is removed when the block exits, whatever the outcome.

    Args:
        code: Source text, written verbatim as UTF-8
        prefix: File name prefix
        suffix: File name suffix (extension)
        directory: Parent directory (system temp dir if None)

    Yields:
        Path of the staged file

    Raises:
        StagingError: If the file cannot be created or written
    """
    try:
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
    except OSError as e:
        raise StagingError(f"Failed to create temporary file: {e}") from e

    path = Path(name)
    try:
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(code)
        except (OSError, UnicodeEncodeError) as e:
            raise StagingError(f"Failed to write code: {e}", path=name) from e

        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove staged file {name}: {e}")
