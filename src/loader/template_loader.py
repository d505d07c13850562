"""Load and dump CloudFormation template documents.

YAML templates may use the short-form intrinsic tags (``!Ref VPC``,
``!GetAtt EC2Instance.PublicIp``); they are expanded to the long-form
mappings the models work with. Documents starting with ``{`` are read as
JSON.

Plain YAML loaders keep the last of two identical mapping keys, which
would hide a duplicated resource name. The loader here rejects them.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml
from yaml.nodes import MappingNode, ScalarNode, SequenceNode

from ..models import CfnTemplate

logger = structlog.get_logger(__name__)

OutputFormat = Literal["yaml", "json"]

# Short-form tags that do not take the Fn:: prefix
_UNPREFIXED_TAGS = {"Ref": "Ref", "Condition": "Condition"}


class TemplateParseError(ValueError):
    """Template text could not be turned into a document mapping."""

    pass


class CfnYamlLoader(yaml.SafeLoader):
    """SafeLoader that understands intrinsic tags and rejects duplicate keys."""

    pass


def _construct_mapping(loader: CfnYamlLoader, node: MappingNode, deep: bool = True) -> dict:
    loader.flatten_mapping(node)
    mapping: dict[Any, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=True)
        if key in mapping:
            raise TemplateParseError(
                f"Duplicate key '{key}' at line {key_node.start_mark.line + 1}"
            )
        mapping[key] = loader.construct_object(value_node, deep=True)
    return mapping


def _construct_intrinsic(loader: CfnYamlLoader, tag_suffix: str, node: yaml.Node) -> dict:
    key = _UNPREFIXED_TAGS.get(tag_suffix, f"Fn::{tag_suffix}")

    if isinstance(node, ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    elif isinstance(node, MappingNode):
        value = _construct_mapping(loader, node)
    else:
        raise TemplateParseError(f"Unsupported node for tag !{tag_suffix}")

    if key == "Fn::GetAtt" and isinstance(value, str):
        if "." not in value:
            raise TemplateParseError(
                f"!GetAtt expects Resource.Attribute, got '{value}' "
                f"at line {node.start_mark.line + 1}"
            )
        value = value.split(".", 1)

    return {key: value}


def _construct_timestamp(loader: CfnYamlLoader, node: ScalarNode) -> str:
    # The provider reads unquoted dates as plain strings
    return loader.construct_scalar(node)


def _reject_duplicate_pairs(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key, value in pairs:
        if key in mapping:
            raise TemplateParseError(f"Duplicate key '{key}'")
        mapping[key] = value
    return mapping


CfnYamlLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_mapping
)
CfnYamlLoader.add_constructor("tag:yaml.org,2002:timestamp", _construct_timestamp)
CfnYamlLoader.add_multi_constructor("!", _construct_intrinsic)


def load_template_data(text: str) -> dict[str, Any]:
    """Parse template text into the provider's document mapping.

    Args:
        text: YAML or JSON template body

    Returns:
        Document mapping with intrinsics in long form

    Raises:
        TemplateParseError: Empty document, non-mapping root, or duplicate keys
        yaml.YAMLError: Syntax errors
    """
    if text.lstrip().startswith("{"):
        try:
            data = json.loads(text, object_pairs_hook=_reject_duplicate_pairs)
        except json.JSONDecodeError as e:
            raise TemplateParseError(f"Invalid JSON: {e}") from e
    else:
        data = yaml.load(text, Loader=CfnYamlLoader)  # noqa: S506 - SafeLoader subclass
    if data is None:
        raise TemplateParseError("Template document is empty")
    if not isinstance(data, dict):
        raise TemplateParseError("Template document must be a mapping")
    return data


def load_template(text: str) -> CfnTemplate:
    """Parse and validate template text."""
    return CfnTemplate.from_cfn_dict(load_template_data(text))


def load_template_file(path: str | Path) -> CfnTemplate:
    """Parse and validate a template file."""
    path = Path(path)
    logger.info("template_file_loading", path=str(path))
    return load_template(path.read_text(encoding="utf-8"))


def dump_template(template: CfnTemplate, format: OutputFormat = "yaml") -> str:
    """Serialize a template in long form.

    Output is deterministic for a given template: key order follows the
    document and no keys are sorted.
    """
    data = template.to_cfn_dict()
    if format == "json":
        return json.dumps(data, indent=2) + "\n"
    if format == "yaml":
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, width=100)
    raise ValueError(f"Unsupported output format '{format}'")


def write_template(
    template: CfnTemplate, output_path: str | Path, format: OutputFormat = "yaml"
) -> Path:
    """Write a serialized template to disk, creating parent directories."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    body = dump_template(template, format)
    path.write_text(body, encoding="utf-8")
    logger.info("template_written", path=str(path), format=format, size=len(body))
    return path
