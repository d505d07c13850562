"""Structural validation of template documents.

Errors are what the orchestration service would reject before creating
anything: syntax, schema, duplicate names, dangling references and
ordering cycles. Warnings flag documents that would deploy but are
probably not what the author meant.
"""
from __future__ import annotations

import ipaddress
from collections import Counter
from typing import Any

import structlog
import yaml

from ..loader import TemplateParseError, load_template_data
from ..models import CfnTemplate, ReferenceKind, collect_references, get_resource_type

logger = structlog.get_logger(__name__)

ADMIN_PORTS = {22: "SSH", 3389: "RDP"}
OPEN_CIDRS = ("0.0.0.0/0", "::/0")


def _port_range(rule: dict[str, Any]) -> tuple[int, int] | None:
    if str(rule.get("IpProtocol")) in ("-1", "all"):
        return 0, 65535
    try:
        return int(rule["FromPort"]), int(rule["ToPort"])
    except (KeyError, TypeError, ValueError):
        return None


def _check_open_admin_ports(template: CfnTemplate) -> list[str]:
    warnings: list[str] = []
    for group in template.resources_of_type("AWS::EC2::SecurityGroup"):
        rules = group.properties.get("SecurityGroupIngress") or []
        if not isinstance(rules, list):
            continue
        for rule in rules:
            if not isinstance(rule, dict):
                continue
            source = rule.get("CidrIp") or rule.get("CidrIpv6")
            if source not in OPEN_CIDRS:
                continue
            ports = _port_range(rule)
            if ports is None:
                continue
            for port, service in ADMIN_PORTS.items():
                if ports[0] <= port <= ports[1]:
                    warnings.append(
                        f"Security group '{group.name}' allows {service} (port {port}) "
                        f"from {source}"
                    )
    return warnings


def _check_unused_parameters(template: CfnTemplate) -> list[str]:
    used = template.referenced_names()
    return [
        f"Parameter '{p.name}' is declared but never referenced"
        for p in template.parameters
        if p.name not in used
    ]


def _check_types_and_attributes(template: CfnTemplate) -> list[str]:
    warnings: list[str] = []
    types = {r.name: r.type for r in template.resources}

    for resource in template.resources:
        if get_resource_type(resource.type) is None:
            warnings.append(
                f"Resource '{resource.name}' type '{resource.type}' is not in the local catalogue"
            )

    references = [r for res in template.resources for r in res.references()]
    for output in template.outputs:
        references.extend(output.references())

    for reference in references:
        if reference.kind != ReferenceKind.GET_ATT or reference.attribute is None:
            continue
        info = get_resource_type(types.get(reference.target, ""))
        if info is not None and reference.attribute not in info.attributes:
            warning = (
                f"Attribute '{reference.attribute}' is not available on "
                f"'{reference.target}' ({info.type_name})"
            )
            if warning not in warnings:
                warnings.append(warning)
    return warnings


def _check_subnet_cidrs(template: CfnTemplate) -> list[str]:
    warnings: list[str] = []
    for subnet in template.resources_of_type("AWS::EC2::Subnet"):
        subnet_cidr = subnet.properties.get("CidrBlock")
        vpc_targets = [r.target for r in collect_references(subnet.properties.get("VpcId"))]
        if not isinstance(subnet_cidr, str) or len(vpc_targets) != 1:
            continue
        vpc = template.get_resource(vpc_targets[0])
        if vpc is None or vpc.type != "AWS::EC2::VPC":
            continue
        vpc_cidr = vpc.properties.get("CidrBlock")
        if not isinstance(vpc_cidr, str):
            continue
        try:
            inside = ipaddress.ip_network(subnet_cidr).subnet_of(ipaddress.ip_network(vpc_cidr))
        except (TypeError, ValueError):
            warnings.append(f"Subnet '{subnet.name}' or VPC '{vpc.name}' has an invalid CIDR")
            continue
        if not inside:
            warnings.append(
                f"Subnet '{subnet.name}' CIDR {subnet_cidr} is outside "
                f"VPC '{vpc.name}' CIDR {vpc_cidr}"
            )
    return warnings


def collect_warnings(template: CfnTemplate) -> list[str]:
    """Collect non-fatal findings for a valid template."""
    warnings: list[str] = []
    warnings.extend(_check_open_admin_ports(template))
    warnings.extend(_check_unused_parameters(template))
    warnings.extend(_check_types_and_attributes(template))
    warnings.extend(_check_subnet_cidrs(template))
    if not template.outputs:
        warnings.append("Template declares no outputs")
    return warnings


def count_resources(template: CfnTemplate) -> dict[str, Any]:
    """Counts of declarations, with resources broken down by type."""
    return {
        "parameters": len(template.parameters),
        "resources": len(template.resources),
        "outputs": len(template.outputs),
        "resource_types": dict(Counter(r.type for r in template.resources)),
    }


def validate_template_text(template_body: str, strict: bool = False) -> dict[str, Any]:
    """Validate template text against the document rules.

    Checks:
    - YAML/JSON syntax and duplicate keys
    - Required sections and field shapes
    - Unique names, resolvable references, acyclic ordering hints
    - Warnings for suspicious but deployable content

    Args:
        template_body: YAML or JSON template text
        strict: If True, treat warnings as errors

    Returns:
        Dict with valid (bool), errors[], warnings[], summary, counts
    """
    errors: list[str] = []
    warnings: list[str] = []

    try:
        data = load_template_data(template_body)
    except yaml.YAMLError as e:
        errors.append(f"YAML syntax error: {e}")
        return {"valid": False, "errors": errors, "warnings": warnings, "summary": "YAML parse failed"}
    except TemplateParseError as e:
        errors.append(str(e))
        return {"valid": False, "errors": errors, "warnings": warnings, "summary": "Template parse failed"}

    try:
        template = CfnTemplate.from_cfn_dict(data)
    except ValueError as e:
        errors.append(f"Schema validation error: {e}")
        return {
            "valid": False,
            "errors": errors,
            "warnings": warnings,
            "summary": "Schema validation failed",
        }

    warnings.extend(collect_warnings(template))
    valid = not errors and (not strict or not warnings)
    counts = count_resources(template)

    logger.info(
        "template_validated",
        valid=valid,
        resources=counts["resources"],
        warnings=len(warnings),
    )

    return {
        "valid": valid,
        "errors": errors,
        "warnings": warnings,
        "summary": (
            f"{counts['parameters']} parameter(s), {counts['resources']} resource(s), "
            f"{counts['outputs']} output(s)"
        ),
        "counts": counts,
    }
