from __future__ import annotations

import json
import os
from pathlib import Path
from pprint import pformat
from typing import List

from jinja2 import Environment, FileSystemLoader

from protoc_docschema.assembler import Schema
from protoc_docschema.hooks import OneOfRule

OUTPUT_FORMATS = ("python", "json")


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
    )
    env.filters["pyrepr"] = repr
    return env


def _module_name(message_name: str) -> str:
    """OrderInfo -> order_info_schema"""
    out = []
    for i, ch in enumerate(message_name):
        if ch.isupper() and i > 0 and not message_name[i - 1].isupper():
            out.append("_")
        out.append(ch.lower())
    return "".join(out) + "_schema"


def generate_schema_module(schema: Schema, source_file: str = "") -> str:
    """Generate Python source declaring ``schema`` as plain data."""
    env = _get_template_env()
    template = env.get_template("schema_module.py.j2")
    data = schema.to_dict()

    return template.render(
        message_name=schema.root.name,
        source_file=source_file or "<memory>",
        schema=pformat(data["fields"], sort_dicts=False),
        options=pformat(data["options"], sort_dicts=False),
        rules=[h for h in schema.pre_validate if isinstance(h, OneOfRule)],
    )


def generate_schema_json(schema: Schema) -> str:
    return json.dumps(schema.to_dict(), indent=2) + "\n"


def write_schemas(
    schemas: List[Schema],
    output_dir: str,
    output_format: str = "python",
    source_file: str = "",
) -> List[str]:
    """Write one file per schema into ``output_dir``.

    Returns list of generated file paths.
    """
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format {output_format!r}")
    os.makedirs(output_dir, exist_ok=True)

    generated: List[str] = []
    for schema in schemas:
        if output_format == "json":
            source = generate_schema_json(schema)
            file_name = f"{schema.root.name}.schema.json"
        else:
            source = generate_schema_module(schema, source_file)
            file_name = f"{_module_name(schema.root.name)}.py"
        file_path = os.path.join(output_dir, file_name)
        Path(file_path).write_text(source)
        generated.append(file_path)

    return generated
