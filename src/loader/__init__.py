"""Template document loading and serialization."""

from .template_loader import (
    CfnYamlLoader,
    TemplateParseError,
    dump_template,
    load_template,
    load_template_data,
    load_template_file,
    write_template,
)

__all__ = [
    "CfnYamlLoader",
    "TemplateParseError",
    "dump_template",
    "load_template",
    "load_template_data",
    "load_template_file",
    "write_template",
]
