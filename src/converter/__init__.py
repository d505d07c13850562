"""Converter module for template documents to PlantUML."""

from .template_to_puml import TemplateToPumlConverter

__all__ = ["TemplateToPumlConverter"]
