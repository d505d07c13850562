"""Console upload guide for a template document.

Generates the step-by-step Markdown an operator follows to create the
stack by hand in the CloudFormation console: upload the file, name the
stack, fill in parameters, acknowledge capabilities and submit.
"""
from __future__ import annotations

import re
from typing import Any, Mapping

import structlog

from ..models import CfnTemplate, get_resource_type
from ..models.resource_types import IAM_NAME_PROPERTIES, IAM_RESOURCE_TYPES

logger = structlog.get_logger(__name__)

STACK_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")
STACK_NAME_MAX_LENGTH = 128


def validate_stack_name(stack_name: str) -> str:
    """Return ``stack_name`` or raise ValueError if the console would reject it."""
    if not stack_name or len(stack_name) > STACK_NAME_MAX_LENGTH:
        raise ValueError(f"Stack name must be 1-{STACK_NAME_MAX_LENGTH} characters")
    if not STACK_NAME_PATTERN.match(stack_name):
        raise ValueError(
            f"Stack name '{stack_name}' must start with a letter and contain only "
            "letters, digits and hyphens"
        )
    return stack_name


def required_capabilities(template: CfnTemplate) -> list[str]:
    """Capabilities the operator must acknowledge before creation."""
    iam = [r for r in template.resources if r.type in IAM_RESOURCE_TYPES]
    if not iam:
        return []
    if any(IAM_NAME_PROPERTIES & set(r.properties) for r in iam):
        return ["CAPABILITY_NAMED_IAM"]
    return ["CAPABILITY_IAM"]


def _console_url(region: str) -> str:
    return f"https://{region}.console.aws.amazon.com/cloudformation/home?region={region}"


def _cell(text: str) -> str:
    """Fit free text into one Markdown table cell."""
    return " ".join(str(text).split()).replace("|", "\\|")


def _resource_label(type_name: str) -> str:
    info = get_resource_type(type_name)
    return info.label if info else type_name


def render_console_guide(
    template: CfnTemplate,
    stack_name: str = "vpc-ec2-stack",
    template_file: str = "vpc-ec2-instance.yaml",
    parameter_values: Mapping[str, Any] | None = None,
    region: str = "us-east-1",
) -> str:
    """Render the console upload guide as Markdown.

    Args:
        template: Template document to upload
        stack_name: Name to give the stack in the console
        template_file: File name the operator uploads
        parameter_values: Values to enter instead of defaults
        region: Region to create the stack in

    Returns:
        Markdown guide

    Raises:
        ValueError: Invalid stack name or parameter values
    """
    validate_stack_name(stack_name)
    values = template.resolve_parameters(parameter_values)
    capabilities = required_capabilities(template)

    logger.info(
        "console_guide_rendering",
        stack_name=stack_name,
        region=region,
        capabilities=capabilities,
    )

    lines: list[str] = [f"# Deploying `{template_file}` from the console", ""]
    if template.description:
        lines.extend([template.description, ""])

    lines.extend(["## What gets created", "", "| Logical ID | Type | Kind |", "| --- | --- | --- |"])
    for resource in template.resources:
        lines.append(f"| {resource.name} | `{resource.type}` | {_resource_label(resource.type)} |")
    lines.append("")

    lines.extend(["## Before you start", ""])
    lines.append(f"- Sign in to the console with permission to create these resources in `{region}`.")
    for parameter in template.parameters:
        if "KeyPair" in parameter.type or "KeyName" in parameter.name or "KeyPair" in parameter.name:
            lines.append(
                f"- Make sure the key pair `{values[parameter.name]}` exists in `{region}`; "
                "creation fails if it does not."
            )
    lines.append("")

    lines.extend(["## Steps", ""])
    step = 1

    def add(text: str) -> None:
        nonlocal step
        lines.append(f"{step}. {text}")
        step += 1

    add(f"Open the CloudFormation console: {_console_url(region)}")
    add("Choose **Create stack** > **With new resources (standard)**.")
    add(f"Under **Specify template**, choose **Upload a template file** and select `{template_file}`. Choose **Next**.")
    add(f"Enter `{stack_name}` as the **Stack name**.")
    if template.parameters:
        add("Fill in the parameters:")
        lines.append("")
        lines.extend(["   | Parameter | Value | Description |", "   | --- | --- | --- |"])
        for parameter in template.parameters:
            shown = "****" if parameter.no_echo else values[parameter.name]
            lines.append(f"   | {parameter.name} | `{_cell(shown)}` | {_cell(parameter.description)} |")
        lines.append("")
    add("Choose **Next**. Stack options (tags, permissions, rollback) can stay at their defaults. Choose **Next** again.")
    if capabilities:
        add(
            "On the review page, tick the acknowledgement that the stack may create IAM "
            f"resources ({', '.join(capabilities)})."
        )
    else:
        add("On the review page, check the summary. No capability acknowledgement is required for this template.")
    add("Choose **Submit** to create the stack.")
    add(
        "Watch the **Events** tab until the stack reaches `CREATE_COMPLETE`. "
        "On failure the stack rolls back and the first `CREATE_FAILED` event says why."
    )
    lines.append("")

    if template.outputs:
        lines.extend(["## Outputs", "", "Once complete, the **Outputs** tab shows:", ""])
        lines.extend(["| Output | Description |", "| --- | --- |"])
        for output in template.outputs:
            lines.append(f"| {output.name} | {_cell(output.description)} |")
        lines.append("")

    lines.extend(
        [
            "## Updating and cleaning up",
            "",
            "To change the stack, edit the template and upload it again with **Update**; "
            "an unchanged template produces no changes.",
            "",
            f"To remove everything, select `{stack_name}` and choose **Delete**.",
            "",
        ]
    )

    return "\n".join(lines)
