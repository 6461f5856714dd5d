"""Text file access rooted at the repository.

Relative paths resolve against ``root``. Writes are recorded instead of
performed when the shared :class:`DryRunLog` is enabled.
"""

from __future__ import annotations

from pathlib import Path

from firefly.core.errors import FireflyError, io_error, not_found_error
from firefly.core.result import Err, Ok, Result
from firefly.platform.files import atomic_write_text

from .dry_run import DryRunLog

_SOURCE = "fs"

__all__ = ["FileSystem"]


class FileSystem:
    def __init__(self, root: Path, *, dry_run: DryRunLog | None = None) -> None:
        self.root = root
        self.dry_run = dry_run

    def resolve(self, path: Path | str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    def exists(self, path: Path | str) -> bool:
        return self.resolve(path).exists()

    def read_text(self, path: Path | str) -> Result[str, FireflyError]:
        target = self.resolve(path)
        if not target.is_file():
            return Err(not_found_error(f"file not found: {target}", source=_SOURCE))
        try:
            return Ok(target.read_text(encoding="utf-8"))
        except OSError as e:
            return Err(io_error(f"cannot read {target}", source=_SOURCE, cause=e))

    def write_text(self, path: Path | str, text: str) -> Result[None, FireflyError]:
        target = self.resolve(path)
        if self.dry_run is not None and self.dry_run.enabled:
            self.dry_run.record("file", "write", str(target))
            return Ok(None)
        try:
            atomic_write_text(target, text)
        except OSError as e:
            return Err(io_error(f"cannot write {target}", source=_SOURCE, cause=e))
        return Ok(None)

    def remove(self, path: Path | str) -> Result[None, FireflyError]:
        """Delete ``path``; a file that is already gone is not an error."""
        target = self.resolve(path)
        if self.dry_run is not None and self.dry_run.enabled:
            self.dry_run.record("file", "remove", str(target))
            return Ok(None)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            return Err(io_error(f"cannot remove {target}", source=_SOURCE, cause=e))
        return Ok(None)
