from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Protocol

from minimarket.domain.errors import PersistenceError


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def stage(self, path: Path, lines: Iterable[str]) -> None: ...


@dataclass
class FileWriteBatch:
    """Unit of Work for full-file rewrites.

    Staged files are written next to their targets as ``*.tmp`` and only
    renamed into place once the block exits cleanly, so a failure before
    commit leaves every target untouched. The renames themselves are not a
    transaction: a crash between two of them can still leave the set out of
    sync.
    """

    staged: dict[Path, str] = field(default_factory=dict)

    def __enter__(self) -> "FileWriteBatch":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.staged.clear()
        return None

    def stage(self, path: Path, lines: Iterable[str]) -> None:
        body = "".join(f"{ln}\n" for ln in lines)
        self.staged[Path(path)] = body

    def commit(self) -> None:
        temps: list[tuple[Path, Path]] = []
        current: Path | None = None
        try:
            for target, body in self.staged.items():
                current = target
                target.parent.mkdir(parents=True, exist_ok=True)
                tmp = target.with_name(target.name + ".tmp")
                tmp.write_text(body, encoding="utf-8")
                temps.append((tmp, target))
            for tmp, target in temps:
                current = target
                os.replace(tmp, target)
        except OSError as exc:
            for tmp, _target in temps:
                tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Could not write data files: {exc}", path=current) from exc
        finally:
            self.staged.clear()
