from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from packbuilder.core.errors import BuildIOError

_log = logging.getLogger("packbuilder.assembler")


@contextmanager
def working_directory(prefix: str = "create-builder", parent: Optional[Path] = None) -> Iterator[Path]:
    """Yield a fresh directory and always try to remove it afterwards.

    Removal failures are logged and never raised.
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=parent))
    except OSError as exc:
        raise BuildIOError(f"failed to create temporary directory: {exc}") from exc

    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as exc:
            _log.warning("failed to remove working directory %s: %s", path, exc)
