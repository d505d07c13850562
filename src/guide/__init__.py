"""Console upload guide generation."""

from .console_guide import render_console_guide, required_capabilities, validate_stack_name

__all__ = ["render_console_guide", "required_capabilities", "validate_stack_name"]
