"""FastMCP server for the CloudFormation VPC + EC2 template.

Exposes MCP tools to fetch the bundled template, validate and render
template documents, resolve parameters, draw them as PlantUML and produce
the console upload guide.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Literal

import structlog
import yaml
from mcp.server.fastmcp import FastMCP

from .converter import TemplateToPumlConverter
from .converter.layout_hints import LayoutDirection, LayoutEngine
from .guide import render_console_guide, required_capabilities
from .loader import dump_template, load_template, write_template
from .models import ResourceCategory, list_resource_types
from .settings import get_settings
from .templates import STACK_TEMPLATES, build_template, list_templates
from .validation import validate_template_text

# Logging is configured once at import; tools read settings per call
_log_settings = get_settings()

# Configure structured logging (stderr; stdout carries the MCP protocol)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
        if _log_settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logging.basicConfig(
    level=getattr(logging, _log_settings.log_level.upper(), logging.INFO),
    format="%(message)s",
    stream=sys.stderr,
)

logger = structlog.get_logger(__name__)

OutputFormat = Literal["yaml", "json"]

mcp = FastMCP(
    name="cfn_vpc_mcp",
    instructions="Work with the CloudFormation VPC + EC2 template. "
    "Use cfn_get_template to fetch the bundled document, cfn_validate_template "
    "before uploading, cfn_console_guide for the manual upload steps, and "
    "cfn_get_plantuml_source to draw the resources.",
)

_READ_ONLY = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": False,
}


def _error(error: Exception | str, suggestion: str | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {"success": False, "isError": True, "error": str(error)}
    if suggestion:
        result["suggestion"] = suggestion
    return result


@mcp.tool(annotations=_READ_ONLY)
async def cfn_list_templates() -> dict[str, Any]:
    """List bundled stack templates.

    Returns:
        Dict with templates array containing name, version, description, use_case
    """
    templates = list_templates()
    return {"templates": templates, "count": len(templates)}


@mcp.tool(annotations=_READ_ONLY)
async def cfn_get_template(
    name: str = "vpc_ec2_instance",
    format: OutputFormat | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a bundled template document.

    Args:
        name: Template name (see cfn_list_templates)
        format: 'yaml' or 'json' (default from settings)
        overrides: Optional literal changes:
            - key_pair_name: Default for the KeyPairName parameter
            - vpc_cidr / subnet_cidr: Network ranges
            - instance_type / image_id: Instance size and image
            - ingress_ports / ingress_cidr: Security group ingress

    Returns:
        Dict with template_body, format, resource_count
    """
    format = format or get_settings().output_format
    logger.info("cfn_get_template_started", name=name, format=format)

    try:
        template = build_template(name, overrides)
        return {
            "success": True,
            "name": name,
            "format": format,
            "template_body": dump_template(template, format),
            "resource_count": len(template.resources),
            "file_name": STACK_TEMPLATES[name].file_name,
        }
    except ValueError as e:
        logger.warning("cfn_get_template_validation_error", error=str(e))
        return _error(e, "Check the template name with cfn_list_templates and the override values")
    except Exception as e:
        logger.exception("cfn_get_template_failed", error=str(e))
        return _error(e)


@mcp.tool(annotations=_READ_ONLY)
async def cfn_validate_template(template_body: str, strict: bool = False) -> dict[str, Any]:
    """Validate a template document before uploading it.

    Checks:
    - YAML/JSON syntax, duplicate keys
    - Unique parameter, resource and output names
    - Every reference names a declared parameter or resource
    - Ordering hints (DependsOn plus references) contain no cycle

    Args:
        template_body: YAML or JSON template text
        strict: If True, treat warnings as errors

    Returns:
        Dict with valid (bool), errors[], warnings[], summary, counts
    """
    logger.info("cfn_validate_template_started", strict=strict)

    try:
        return validate_template_text(template_body, strict=strict)
    except Exception as e:
        logger.exception("cfn_validate_template_failed", error=str(e))
        return {
            "valid": False,
            "errors": [f"Unexpected error: {e}"],
            "warnings": [],
            "summary": "Validation failed",
        }


@mcp.tool(
    annotations={
        "readOnlyHint": False,  # May write output file
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    }
)
async def cfn_render_template(
    template_body: str,
    format: OutputFormat | None = None,
    output_path: str | None = None,
) -> dict[str, Any]:
    """Normalize a template to long-form YAML or JSON.

    Short-form tags (!Ref, !GetAtt) are expanded. Rendering the result
    again produces identical text.

    Args:
        template_body: YAML or JSON template text
        format: 'yaml' or 'json' (default from settings)
        output_path: Optional path to save the rendered document

    Returns:
        Dict with template_body, format, file_path (if saved)
    """
    format = format or get_settings().output_format
    logger.info("cfn_render_template_started", format=format)

    try:
        template = load_template(template_body)
        result: dict[str, Any] = {
            "success": True,
            "format": format,
            "template_body": dump_template(template, format),
        }
        if output_path:
            result["file_path"] = str(write_template(template, output_path, format))
        return result
    except (ValueError, yaml.YAMLError) as e:
        logger.warning("cfn_render_template_validation_error", error=str(e))
        return _error(e, "Validate the template with cfn_validate_template first")
    except OSError as e:
        logger.error("cfn_render_template_write_error", error=str(e))
        return _error(e, "Check that output_path is writable")
    except Exception as e:
        logger.exception("cfn_render_template_failed", error=str(e))
        return _error(e)


@mcp.tool(annotations=_READ_ONLY)
async def cfn_resolve_parameters(
    template_body: str,
    parameter_values: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Resolve the parameter values a deployment would start with.

    Args:
        template_body: YAML or JSON template text
        parameter_values: Values to use instead of defaults

    Returns:
        Dict with parameters (name -> value) and required_capabilities
    """
    logger.info("cfn_resolve_parameters_started")

    try:
        template = load_template(template_body)
        values = template.resolve_parameters(parameter_values)
        shown = {
            name: "****" if template.get_parameter(name).no_echo else value
            for name, value in values.items()
        }
        return {
            "success": True,
            "parameters": shown,
            "required_capabilities": required_capabilities(template),
        }
    except (ValueError, yaml.YAMLError) as e:
        logger.warning("cfn_resolve_parameters_validation_error", error=str(e))
        return _error(e, "Supply a value for every parameter without a default")
    except Exception as e:
        logger.exception("cfn_resolve_parameters_failed", error=str(e))
        return _error(e)


@mcp.tool(annotations=_READ_ONLY)
async def cfn_get_plantuml_source(
    template_body: str,
    layout: LayoutDirection = "top_to_bottom",
    layout_engine: LayoutEngine = "graphviz",
    show_parameters: bool = True,
    show_outputs: bool = True,
    show_legend: bool = True,
) -> dict[str, Any]:
    """Draw a template's resources and references as PlantUML source.

    Args:
        template_body: YAML or JSON template text
        layout: Layout direction
        layout_engine: Layout engine pragma
        show_parameters: Draw parameters and edges to them
        show_outputs: Draw outputs and edges from them
        show_legend: Include edge legend

    Returns:
        Dict with plantuml_source, line_count, element_count
    """
    logger.info("cfn_get_plantuml_source_started", layout=layout)

    try:
        template = load_template(template_body)
        converter = TemplateToPumlConverter(
            template=template,
            layout=layout,
            layout_engine=layout_engine,
            show_parameters=show_parameters,
            show_outputs=show_outputs,
            show_legend=show_legend,
        )
        puml_source = converter.convert()
        return {
            "success": True,
            "plantuml_source": puml_source,
            "line_count": len(puml_source.splitlines()),
            "element_count": converter.get_element_count(),
        }
    except (ValueError, yaml.YAMLError) as e:
        return _error(e, "Validate the template with cfn_validate_template first")
    except Exception as e:
        logger.exception("cfn_get_plantuml_source_failed", error=str(e))
        return _error(e)


@mcp.tool(annotations=_READ_ONLY)
async def cfn_console_guide(
    template_body: str,
    stack_name: str | None = None,
    template_file: str = "vpc-ec2-instance.yaml",
    parameter_values: dict[str, Any] | None = None,
    region: str | None = None,
) -> dict[str, Any]:
    """Produce the console upload guide for a template.

    Args:
        template_body: YAML or JSON template text
        stack_name: Stack name to enter (default from settings)
        template_file: File name the operator uploads
        parameter_values: Values to enter instead of defaults
        region: Region to deploy into (default from settings)

    Returns:
        Dict with guide_markdown and required_capabilities
    """
    settings = get_settings()
    stack_name = stack_name or settings.stack_name
    region = region or settings.region
    logger.info("cfn_console_guide_started", stack_name=stack_name, region=region)

    try:
        template = load_template(template_body)
        guide = render_console_guide(
            template,
            stack_name=stack_name,
            template_file=template_file,
            parameter_values=parameter_values,
            region=region,
        )
        return {
            "success": True,
            "guide_markdown": guide,
            "required_capabilities": required_capabilities(template),
        }
    except (ValueError, yaml.YAMLError) as e:
        logger.warning("cfn_console_guide_validation_error", error=str(e))
        return _error(e, "Check the stack name and parameter values")
    except Exception as e:
        logger.exception("cfn_console_guide_failed", error=str(e))
        return _error(e)


@mcp.tool(annotations=_READ_ONLY)
async def cfn_list_resource_types(
    category: Literal["network", "security", "compute", "all"] = "all",
) -> dict[str, Any]:
    """List resource types known to the local catalogue.

    Args:
        category: Filter by category - 'network', 'security', 'compute', or 'all'

    Returns:
        Dict with resource_types array containing type, label, category, attributes
    """
    selected = None if category == "all" else ResourceCategory[category.upper()]
    types = list_resource_types(selected)
    return {"resource_types": types, "count": len(types), "category_filter": category}


def run_server():
    """Run the MCP server (MCP transport only)."""
    logger.info("cfn_vpc_mcp_server_starting")
    mcp.run()


def main():
    """Main entry point."""
    run_server()


if __name__ == "__main__":
    main()
