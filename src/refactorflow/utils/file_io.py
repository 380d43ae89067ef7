"""Disk access for the documents refactor edits are applied to.

The workspace loads a file once, remembers a :class:`FileSignature` of the
bytes it saw and refuses to save over a file whose bytes moved on since.
"""

from __future__ import annotations

import codecs
import hashlib
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "FileSignature",
    "LoadedText",
    "load_text",
    "save_text",
    "changed_on_disk",
    "detect_grammar",
]

# UTF-32 first: its little-endian BOM starts with the UTF-16 one.
_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)
_GRAMMAR_EXTENSIONS = {
    "source.python": {".py", ".pyi"},
    "source.js": {".js", ".jsx", ".mjs"},
    "source.ts": {".ts", ".tsx"},
    "source.json": {".json"},
    "source.yaml": {".yaml", ".yml"},
    "text.md": {".md", ".markdown"},
}
DEFAULT_GRAMMAR = "text.plain"


@dataclass(slots=True, frozen=True)
class FileSignature:
    """Fingerprint of the bytes last read from or written to ``path``."""

    path: Path
    digest: str
    size: int

    @classmethod
    def of(cls, path: Path, data: bytes) -> "FileSignature":
        return cls(
            path=path,
            digest=hashlib.sha256(data).hexdigest(),
            size=len(data),
        )


@dataclass(slots=True, frozen=True)
class LoadedText:
    text: str
    encoding: str
    signature: FileSignature


def load_text(path: Path | str) -> LoadedText:
    """Read ``path`` as text with ``\\n`` line endings.

    A byte order mark picks the encoding and is dropped; otherwise UTF-8 is
    tried before Latin-1, which accepts any byte sequence.
    """

    target = Path(path)
    raw = target.read_bytes()
    encoding, body = _split_bom(raw)
    if encoding is None:
        try:
            text = body.decode("utf-8")
            encoding = "utf-8"
        except UnicodeDecodeError:
            text = body.decode("latin-1")
            encoding = "latin-1"
    else:
        text = body.decode(encoding)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return LoadedText(text=text, encoding=encoding, signature=FileSignature.of(target, raw))


def save_text(path: Path | str, text: str, *, encoding: str = "utf-8") -> FileSignature:
    """Atomically replace ``path`` with ``text`` and return the new signature."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    data = text.encode(encoding)
    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            os.unlink(tmp_name)
    return FileSignature.of(target, data)


def changed_on_disk(signature: FileSignature) -> bool:
    """Return ``True`` when the file no longer holds the signed bytes."""

    try:
        size = signature.path.stat().st_size
    except FileNotFoundError:
        return True
    if size != signature.size:
        return True
    return hashlib.sha256(signature.path.read_bytes()).hexdigest() != signature.digest


def detect_grammar(path: Path | str | None) -> str:
    """Infer the grammar scope name providers are matched against."""

    suffix = Path(path).suffix.lower() if path else ""
    for grammar, extensions in _GRAMMAR_EXTENSIONS.items():
        if suffix in extensions:
            return grammar
    return DEFAULT_GRAMMAR


def _split_bom(raw: bytes) -> tuple[str | None, bytes]:
    for bom, encoding in _BOMS:
        if raw.startswith(bom):
            return encoding, raw[len(bom):]
    return None, raw
