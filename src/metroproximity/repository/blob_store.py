from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath
import tempfile
from typing import Any

from metroproximity.errors import NotFound


logger = logging.getLogger(__name__)


class LocalBlobStore:
    """
    Filesystem-backed blob container.

    Blob names are `/`-separated relative paths (`it-roma/123/5min.json`) mapped onto
    `<root>/<container>/...`. Writes go through a temp file + `replace` so readers never see
    a half-written blob.
    """

    def __init__(self, root_dir: Path, container: str) -> None:
        self._dir = Path(root_dir) / container
        self.container = container
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        pure = PurePosixPath(name)
        if not name or pure.is_absolute() or ".." in pure.parts:
            raise ValueError(f"Invalid blob name: {name!r}")
        return self._dir.joinpath(*pure.parts)

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def put_bytes(self, name: str, payload: bytes) -> None:
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent) as tmp:
            tmp.write(payload)
            tmp_path = Path(tmp.name)
        tmp_path.replace(path)
        logger.debug("Wrote blob %s/%s (%s bytes)", self.container, name, len(payload))

    def get_bytes(self, name: str) -> bytes:
        path = self._path(name)
        if not path.is_file():
            raise NotFound(f"Blob '{self.container}/{name}' not found")
        return path.read_bytes()

    def put_json(self, name: str, payload: Any) -> None:
        self.put_bytes(name, json.dumps(payload, ensure_ascii=False).encode("utf-8"))

    def get_json(self, name: str) -> Any:
        return json.loads(self.get_bytes(name).decode("utf-8"))

    def delete(self, name: str) -> bool:
        """
        Delete one blob. Returns False when it did not exist.
        """

        path = self._path(name)
        if not path.is_file():
            return False
        path.unlink()
        self._prune_empty_dirs(path.parent)
        return True

    def _prune_empty_dirs(self, start: Path) -> None:
        current = start
        while current != self._dir and current.is_dir() and not any(current.iterdir()):
            current.rmdir()
            current = current.parent

    def list(self, prefix: str = "") -> list[str]:
        """
        Blob names starting with `prefix`, sorted, always `/`-separated.
        """

        if not self._dir.exists():
            return []
        names = []
        for path in self._dir.rglob("*"):
            if not path.is_file():
                continue
            name = path.relative_to(self._dir).as_posix()
            if name.startswith(prefix):
                names.append(name)
        return sorted(names)
