"""YAML formatter — block-style YAML with literal blocks for multi-line strings."""
from __future__ import annotations

import yaml


class _LiteralDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, value: str):
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


_LiteralDumper.add_representer(str, _represent_str)


def format_yaml(data, indent: int = 2) -> str:
    if indent <= 0:
        indent = 2
    return yaml.dump(data, Dumper=_LiteralDumper, indent=indent, sort_keys=True,
                     allow_unicode=True, default_flow_style=False)
