from __future__ import annotations

from pathlib import Path


def relative_to_checkout(file_path: str, root: Path) -> str:
    """Report paths relative to the checkout, whatever form the tool used."""
    if not file_path:
        return file_path
    candidate = Path(file_path)
    if candidate.is_absolute():
        for base in (root, root.resolve()):
            try:
                return candidate.relative_to(base).as_posix()
            except ValueError:
                continue
        return candidate.as_posix()
    text = candidate.as_posix()
    return text[2:] if text.startswith("./") else text
