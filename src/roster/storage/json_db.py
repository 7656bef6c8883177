"""Path-addressed JSON document store.

A single JSON object on disk, addressed with ``/``-separated paths::

    db.push("/42", {"id": "42", "name": "VIPs"})
    db.get_data("/42/name")   # -> "VIPs"
    db.delete("/42")

``/`` is the whole document. Every write goes straight to disk (atomic
replace); there is no write-behind.
"""
from __future__ import annotations

import json
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional


class DataPathError(KeyError):
    pass


class DocumentStoreError(RuntimeError):
    pass


def _canonical_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _split_path(path: str) -> List[str]:
    text = str(path or "").strip()
    if not text.startswith("/"):
        raise ValueError(f"Document path must start with '/': {path!r}")
    return [part for part in text.split("/") if part]


class JsonDocumentStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Optional[Dict[str, Any]] = None

    def _load_locked(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            self._data = {}
            return self._data
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8-sig") or "{}")
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            raise DocumentStoreError(f"Cannot read document store {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise DocumentStoreError(f"Document store {self.path} root is not an object")
        self._data = raw
        return self._data

    def _write_locked(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(_canonical_json(data), encoding="utf-8")
        tmp_path.replace(self.path)

    def reload(self) -> None:
        with self._lock:
            self._data = None

    def get_data(self, path: str = "/") -> Any:
        parts = _split_path(path)
        with self._lock:
            node: Any = self._load_locked()
            for idx, key in enumerate(parts):
                if not isinstance(node, dict) or key not in node:
                    walked = "/" + "/".join(parts[: idx + 1])
                    raise DataPathError(f"Can't find dataPath: {walked}")
                node = node[key]
            return deepcopy(node)

    def exists(self, path: str) -> bool:
        try:
            self.get_data(path)
        except DataPathError:
            return False
        return True

    def push(self, path: str, value: Any, *, override: bool = True) -> None:
        parts = _split_path(path)
        payload = deepcopy(value)
        with self._lock:
            data = deepcopy(self._load_locked())
            if not parts:
                if not isinstance(payload, dict):
                    raise ValueError("Root document must be an object")
                if override:
                    data = payload
                else:
                    data.update(payload)
            else:
                node = data
                for key in parts[:-1]:
                    child = node.get(key)
                    if not isinstance(child, dict):
                        child = {}
                        node[key] = child
                    node = child
                leaf = parts[-1]
                current = node.get(leaf)
                if not override and isinstance(current, dict) and isinstance(payload, dict):
                    current.update(payload)
                else:
                    node[leaf] = payload
            self._write_locked(data)
            self._data = data

    def delete(self, path: str) -> None:
        parts = _split_path(path)
        with self._lock:
            data = deepcopy(self._load_locked())
            if not parts:
                data = {}
            else:
                node: Any = data
                for key in parts[:-1]:
                    if not isinstance(node, dict) or key not in node:
                        return
                    node = node[key]
                if not isinstance(node, dict) or parts[-1] not in node:
                    return
                del node[parts[-1]]
            self._write_locked(data)
            self._data = data
