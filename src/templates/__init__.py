"""Bundled stack templates."""

from .stack_templates import (
    STACK_TEMPLATES,
    StackTemplate,
    TemplateOverrides,
    build_template,
    get_template,
    list_templates,
)

__all__ = [
    "STACK_TEMPLATES",
    "StackTemplate",
    "TemplateOverrides",
    "build_template",
    "get_template",
    "list_templates",
]
