"""Load .proto files into a linked type registry."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from protoc_docschema.models import Message, short_name

from .proto_ast import ProtoFile
from .proto_ast_parser import ProtoParser
from .proto_tokenizer import tokenize_proto
from .proto_transform import TypeNode, transform_protos

logger = logging.getLogger(__name__)

# Imports under this prefix are the well-known types; they are mapped by name
# and never read from disk.
WELL_KNOWN_IMPORT_PREFIX = "google/protobuf/"


class ProtoRegistry:
    """All types declared by a set of loaded files, keyed by full name."""

    def __init__(self, types: Dict[str, TypeNode], roots: Optional[List[Message]] = None):
        self.types = types
        self.roots = roots or []

    @property
    def messages(self) -> List[Message]:
        return [t for t in self.types.values() if isinstance(t, Message)]

    def lookup(self, name: str) -> Message:
        """Find a message by full name, or by short name when unambiguous."""
        found = self.types.get(name.lstrip("."))
        if found is None:
            candidates = [m for m in self.messages if m.name == short_name(name)]
            if len(candidates) > 1:
                names = ", ".join(m.full_name for m in candidates)
                raise LookupError(f"Message name {name!r} is ambiguous: {names}")
            found = candidates[0] if candidates else None
        if not isinstance(found, Message):
            raise LookupError(f"No message named {name!r}")
        return found


def parse_proto_text(text: str) -> ProtoFile:
    """Tokenize and parse proto source text into an AST."""
    return ProtoParser(tokenize_proto(text)).parse()


def parse_proto_file(file_path: str, include_paths: Sequence[str] = ()) -> ProtoRegistry:
    """Parse a .proto file (and whatever it imports) into a registry."""
    return load_proto_files([file_path], include_paths)


def load_proto_files(
    file_paths: Iterable[str],
    include_paths: Sequence[str] = (),
) -> ProtoRegistry:
    """Parse .proto files, following their imports, into one registry.

    Imports are searched relative to the importing file first, then in each
    include path. Imports that cannot be found are logged and skipped; any
    type they would have provided stays unresolved.
    """
    parsed: List[Tuple[ProtoFile, str]] = []
    seen: Dict[Path, ProtoFile] = {}
    root_asts: List[ProtoFile] = []

    queue: List[Path] = []
    for fp in file_paths:
        path = Path(fp).resolve()
        queue.append(path)

    requested = set(queue)
    while queue:
        path = queue.pop(0)
        if path in seen:
            continue
        logger.debug("Loading proto file %s", path)
        ast = parse_proto_text(path.read_text())
        seen[path] = ast
        parsed.append((ast, str(path)))
        if path in requested:
            root_asts.append(ast)

        for imp in ast.imports:
            if imp.startswith(WELL_KNOWN_IMPORT_PREFIX):
                continue
            found = _find_import(imp, path.parent, include_paths)
            if found is None:
                logger.warning("Import %r from %s not found", imp, path)
                continue
            queue.append(found)

    types = transform_protos(parsed)
    roots = []
    for ast in root_asts:
        for msg_node in ast.messages:
            full_name = f"{ast.package}.{msg_node.name}" if ast.package else msg_node.name
            roots.append(types[full_name])
    return ProtoRegistry(types, roots)


def _find_import(import_path: str, base_dir: Path, include_paths: Sequence[str]) -> Optional[Path]:
    for directory in [base_dir, *(Path(p) for p in include_paths)]:
        candidate = directory / import_path
        if candidate.is_file():
            return candidate.resolve()
    return None
