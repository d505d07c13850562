"""Template document validation."""

from .template_checks import collect_warnings, count_resources, validate_template_text

__all__ = ["collect_warnings", "count_resources", "validate_template_text"]
