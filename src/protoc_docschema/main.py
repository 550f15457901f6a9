from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from protoc_docschema.assembler import Schema, build_schema
from protoc_docschema.generator.schema_module_generator import OUTPUT_FORMATS, write_schemas
from protoc_docschema.parser.proto_ast_parser import ProtoParseError
from protoc_docschema.parser.proto_parser import load_proto_files
from protoc_docschema.walker import SchemaTranslationError


def _find_files(paths: Sequence[str]) -> List[str]:
    """Expand directories into the .proto files under them."""
    results: List[str] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            results.extend(sorted(str(f) for f in path.rglob("*.proto")))
        else:
            results.append(str(path))
    return results


def run(
    proto_paths: Sequence[str],
    message_names: Sequence[str] = (),
    output_dir: Optional[str] = None,
    output_format: str = "python",
    include_paths: Sequence[str] = (),
) -> List[Schema]:
    """Main pipeline: load, translate, write."""
    # 1. Find input files
    proto_files = _find_files(proto_paths)
    if not proto_files:
        print(f"No .proto files found under {', '.join(proto_paths)}")
        sys.exit(1)

    # 2. Load and translate
    try:
        registry = load_proto_files(proto_files, include_paths)
        if message_names:
            messages = [registry.lookup(name) for name in message_names]
        else:
            messages = registry.roots
        schemas = [build_schema(m) for m in messages]
    except (ProtoParseError, LookupError, SchemaTranslationError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    if not schemas:
        print("No messages found.")
        sys.exit(0)

    # 3. Emit
    if output_dir is None:
        payload = [s.to_dict() for s in schemas]
        print(json.dumps(payload if len(payload) > 1 else payload[0], indent=2))
        return schemas

    source = proto_files[0] if len(proto_files) == 1 else ", ".join(proto_files)
    for f in write_schemas(schemas, output_dir, output_format, source_file=source):
        print(f"  Generated: {f}")
    return schemas


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        description="Generate document schemas from protobuf messages",
    )
    parser.add_argument(
        "--proto",
        required=True,
        action="append",
        help="A .proto file or a directory to scan for them (repeatable)",
    )
    parser.add_argument(
        "--message",
        action="append",
        default=[],
        help="Root message to translate (repeatable; defaults to every top-level message)",
    )
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Directory to search for imported .proto files (repeatable)",
    )
    parser.add_argument(
        "--out",
        help="Output directory; schemas are printed as JSON when omitted",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="python",
        help="Output file format when --out is given",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log translation details to stderr",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    run(args.proto, args.message, args.out, args.format, args.include)


if __name__ == "__main__":
    main()
