from __future__ import annotations

import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    # Add repo `src/` to sys.path so the script runs without installing.
    repo_root = Path(__file__).resolve().parent
    src_dir = (repo_root / "src").resolve()
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


def main(argv: list[str] | None = None) -> int:
    _ensure_src_on_path()
    from roster.cli import main as _main

    return int(_main(argv))


if __name__ == "__main__":
    raise SystemExit(main())
