"""CloudFormation template document models.

Provides schema validation for template documents: parameters, resource
declarations, outputs and the document-level invariants the orchestration
service enforces (unique names, resolvable references, acyclic ordering).
Checking them here lets a malformed document be rejected before upload.
"""
from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .dependency_graph import DependencyEdge, build_dependency_edges, dependency_graph, find_cycle
from .intrinsics import PSEUDO_PARAMETERS, Reference, ReferenceKind, collect_references

TEMPLATE_FORMAT_VERSION = "2010-09-09"

LOGICAL_ID_PATTERN = r"^[A-Za-z0-9]+$"
RESOURCE_TYPE_PATTERN = r"^(?:[A-Za-z0-9]+::[A-Za-z0-9]+::[A-Za-z0-9]+|Custom::[A-Za-z0-9_@-]+)$"

BASIC_PARAMETER_TYPES = frozenset({"String", "Number", "List<Number>", "CommaDelimitedList"})

# Valid provider sections this toolkit rejects rather than models
_UNSUPPORTED_SECTIONS = ("Conditions", "Mappings", "Rules", "Transform")


def _scalar_to_str(value: Any) -> Any:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _number(value: float) -> int | float:
    return int(value) if value.is_integer() else value


_PARAMETER_KEYS = frozenset(
    {
        "Type",
        "Default",
        "Description",
        "AllowedValues",
        "AllowedPattern",
        "ConstraintDescription",
        "MinLength",
        "MaxLength",
        "MinValue",
        "MaxValue",
        "NoEcho",
    }
)
_RESOURCE_KEYS = frozenset(
    {
        "Type",
        "Properties",
        "DependsOn",
        "Metadata",
        "CreationPolicy",
        "UpdatePolicy",
        "DeletionPolicy",
        "UpdateReplacePolicy",
    }
)
_OUTPUT_KEYS = frozenset({"Description", "Value", "Export"})


def _reject_unknown_keys(owner: str, body: dict[str, Any], known: frozenset[str]) -> None:
    # Condition needs a Conditions section, which is rejected
    if "Condition" in body:
        raise ValueError(f"{owner} attribute 'Condition' is not supported")
    unknown = sorted(str(key) for key in body if key not in known)
    if unknown:
        raise ValueError(f"{owner} has unknown attribute '{unknown[0]}'")


class TemplateParameter(BaseModel):
    """Deployment-time input value. Frozen once declared."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=LOGICAL_ID_PATTERN)
    type: str = "String"
    default: Optional[str] = None
    description: str = ""
    allowed_values: list[str] = Field(default_factory=list)
    allowed_pattern: str = ""
    constraint_description: str = ""
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    no_echo: bool = False

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v in BASIC_PARAMETER_TYPES or v.startswith(("AWS::", "List<AWS::")):
            return v
        raise ValueError(f"Unsupported parameter type '{v}'")

    @field_validator("default", mode="before")
    @classmethod
    def coerce_default(cls, v: Any) -> Any:
        if isinstance(v, list):
            return ",".join(str(_scalar_to_str(item)) for item in v)
        return _scalar_to_str(v)

    @field_validator("allowed_values", mode="before")
    @classmethod
    def coerce_allowed_values(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_scalar_to_str(item) for item in v]
        return v

    @field_validator("allowed_pattern")
    @classmethod
    def validate_allowed_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid AllowedPattern '{v}': {e}") from None
        return v

    @model_validator(mode="after")
    def validate_default(self) -> "TemplateParameter":
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(f"Parameter '{self.name}' MinLength is greater than MaxLength")
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError(f"Parameter '{self.name}' MinValue is greater than MaxValue")
        if self.default is not None:
            self.check_value(self.default)
        return self

    def check_value(self, value: str) -> None:
        """Raise ValueError if ``value`` violates this parameter's constraints."""
        shown = "****" if self.no_echo else value

        if self.allowed_values and value not in self.allowed_values:
            raise ValueError(
                f"Parameter '{self.name}' value '{shown}' is not one of {self.allowed_values}"
            )

        if self.allowed_pattern and not re.fullmatch(self.allowed_pattern, value):
            reason = self.constraint_description or f"must match {self.allowed_pattern}"
            raise ValueError(f"Parameter '{self.name}' value '{shown}': {reason}")

        if self.min_length is not None and len(value) < self.min_length:
            raise ValueError(
                f"Parameter '{self.name}' value '{shown}' is shorter than {self.min_length} characters"
            )
        if self.max_length is not None and len(value) > self.max_length:
            raise ValueError(
                f"Parameter '{self.name}' value '{shown}' is longer than {self.max_length} characters"
            )

        if self.type in ("Number", "List<Number>"):
            items = value.split(",") if self.type == "List<Number>" else [value]
            for item in items:
                try:
                    number = float(item)
                except ValueError:
                    raise ValueError(
                        f"Parameter '{self.name}' value '{shown}' is not a number"
                    ) from None
                if self.min_value is not None and number < self.min_value:
                    raise ValueError(
                        f"Parameter '{self.name}' value '{shown}' is below {_number(self.min_value)}"
                    )
                if self.max_value is not None and number > self.max_value:
                    raise ValueError(
                        f"Parameter '{self.name}' value '{shown}' is above {_number(self.max_value)}"
                    )

    def to_cfn(self) -> dict[str, Any]:
        body: dict[str, Any] = {"Type": self.type}
        if self.default is not None:
            body["Default"] = self.default
        if self.description:
            body["Description"] = self.description
        if self.allowed_values:
            body["AllowedValues"] = list(self.allowed_values)
        if self.allowed_pattern:
            body["AllowedPattern"] = self.allowed_pattern
        if self.min_length is not None:
            body["MinLength"] = self.min_length
        if self.max_length is not None:
            body["MaxLength"] = self.max_length
        if self.min_value is not None:
            body["MinValue"] = _number(self.min_value)
        if self.max_value is not None:
            body["MaxValue"] = _number(self.max_value)
        if self.constraint_description:
            body["ConstraintDescription"] = self.constraint_description
        if self.no_echo:
            body["NoEcho"] = True
        return body

    @classmethod
    def from_cfn(cls, name: str, body: Any) -> "TemplateParameter":
        if not isinstance(body, dict):
            raise ValueError(f"Parameter '{name}' must be a mapping")
        _reject_unknown_keys(f"Parameter '{name}'", body, _PARAMETER_KEYS)
        return cls(
            name=name,
            type=body.get("Type", "String"),
            default=body.get("Default"),
            description=body.get("Description", ""),
            allowed_values=body.get("AllowedValues") or [],
            allowed_pattern=body.get("AllowedPattern", ""),
            constraint_description=body.get("ConstraintDescription", ""),
            min_length=body.get("MinLength"),
            max_length=body.get("MaxLength"),
            min_value=body.get("MinValue"),
            max_value=body.get("MaxValue"),
            no_echo=str(body.get("NoEcho", False)).lower() == "true",
        )


class ResourceTag(BaseModel):
    """Name/value metadata pair attached to a resource."""

    key: str = Field(min_length=1, max_length=128)
    value: Any = ""

    def to_cfn(self) -> dict[str, Any]:
        return {"Key": self.key, "Value": self.value}


def _is_key_value_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(item, dict) and set(item) == {"Key", "Value"} for item in value
    )


class ResourceDeclaration(BaseModel):
    """One named piece of infrastructure for the orchestration service to create."""

    name: str = Field(pattern=LOGICAL_ID_PATTERN)
    type: str = Field(pattern=RESOURCE_TYPE_PATTERN)
    properties: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)
    tags: list[ResourceTag] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    creation_policy: Optional[dict[str, Any]] = None
    update_policy: Optional[dict[str, Any]] = None
    deletion_policy: Optional[Literal["Delete", "Retain", "Snapshot"]] = None
    update_replace_policy: Optional[Literal["Delete", "Retain", "Snapshot"]] = None

    @field_validator("depends_on", mode="before")
    @classmethod
    def normalize_depends_on(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    def references(self) -> list[Reference]:
        """References made from properties, tag values and metadata."""
        refs = collect_references(self.properties)
        for tag in self.tags:
            refs.extend(collect_references(tag.value))
        refs.extend(collect_references(self.metadata))
        return refs

    def to_cfn(self) -> dict[str, Any]:
        body: dict[str, Any] = {"Type": self.type}
        if self.depends_on:
            body["DependsOn"] = self.depends_on[0] if len(self.depends_on) == 1 else list(self.depends_on)
        if self.metadata:
            body["Metadata"] = self.metadata
        if self.creation_policy is not None:
            body["CreationPolicy"] = self.creation_policy
        if self.update_policy is not None:
            body["UpdatePolicy"] = self.update_policy
        if self.deletion_policy:
            body["DeletionPolicy"] = self.deletion_policy
        if self.update_replace_policy:
            body["UpdateReplacePolicy"] = self.update_replace_policy
        properties = dict(self.properties)
        if self.tags:
            properties["Tags"] = [tag.to_cfn() for tag in self.tags]
        if properties:
            body["Properties"] = properties
        return body

    @classmethod
    def from_cfn(cls, name: str, body: Any) -> "ResourceDeclaration":
        if not isinstance(body, dict):
            raise ValueError(f"Resource '{name}' must be a mapping")
        _reject_unknown_keys(f"Resource '{name}'", body, _RESOURCE_KEYS)
        properties = body.get("Properties") or {}
        if not isinstance(properties, dict):
            raise ValueError(f"Resource '{name}' Properties must be a mapping")

        properties = dict(properties)
        tags: list[ResourceTag] = []
        if _is_key_value_list(properties.get("Tags")):
            tags = [ResourceTag(key=t["Key"], value=t["Value"]) for t in properties.pop("Tags")]

        return cls(
            name=name,
            type=body.get("Type"),
            properties=properties,
            depends_on=body.get("DependsOn") or [],
            tags=tags,
            metadata=body.get("Metadata") or {},
            creation_policy=body.get("CreationPolicy"),
            update_policy=body.get("UpdatePolicy"),
            deletion_policy=body.get("DeletionPolicy"),
            update_replace_policy=body.get("UpdateReplacePolicy"),
        )


class OutputDeclaration(BaseModel):
    """Value surfaced by the orchestration service after provisioning."""

    name: str = Field(pattern=LOGICAL_ID_PATTERN)
    description: str = ""
    value: Any
    export_name: Any = None

    @field_validator("value")
    @classmethod
    def value_not_empty(cls, v: Any) -> Any:
        if v is None or v == "":
            raise ValueError("Output value must not be empty")
        return v

    def references(self) -> list[Reference]:
        return collect_references(self.value) + collect_references(self.export_name)

    def to_cfn(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.description:
            body["Description"] = self.description
        body["Value"] = self.value
        if self.export_name is not None:
            body["Export"] = {"Name": self.export_name}
        return body

    @classmethod
    def from_cfn(cls, name: str, body: Any) -> "OutputDeclaration":
        if not isinstance(body, dict):
            raise ValueError(f"Output '{name}' must be a mapping")
        _reject_unknown_keys(f"Output '{name}'", body, _OUTPUT_KEYS)
        export = body.get("Export")
        if export is not None and not (isinstance(export, dict) and set(export) == {"Name"}):
            raise ValueError(f"Output '{name}' Export must be a mapping with only Name")
        return cls(
            name=name,
            description=body.get("Description", ""),
            value=body.get("Value"),
            export_name=export["Name"] if export is not None else None,
        )


def _check_unique(kind: str, names: list[str]) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ValueError(f"Duplicate {kind} name '{name}'")
        seen.add(name)


class CfnTemplate(BaseModel):
    """Complete template document, handed to the orchestration service as a unit."""

    format_version: str = TEMPLATE_FORMAT_VERSION
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    parameters: list[TemplateParameter] = Field(default_factory=list)
    resources: list[ResourceDeclaration] = Field(default_factory=list)
    outputs: list[OutputDeclaration] = Field(default_factory=list)

    @field_validator("format_version")
    @classmethod
    def validate_format_version(cls, v: str) -> str:
        if v != TEMPLATE_FORMAT_VERSION:
            raise ValueError(
                f"Unsupported template format version '{v}' (expected {TEMPLATE_FORMAT_VERSION})"
            )
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if len(v) > 1024:
            raise ValueError("Template description must be at most 1024 characters")
        return v

    @model_validator(mode="after")
    def validate_references(self) -> "CfnTemplate":
        """Validate names, references and ordering hints."""
        if not self.resources:
            raise ValueError("Template must declare at least one resource")

        _check_unique("parameter", [p.name for p in self.parameters])
        _check_unique("resource", [r.name for r in self.resources])
        _check_unique("output", [o.name for o in self.outputs])

        parameter_names = {p.name for p in self.parameters}
        resource_names = {r.name for r in self.resources}

        clash = sorted(parameter_names & resource_names)
        if clash:
            raise ValueError(f"Name '{clash[0]}' is declared as both parameter and resource")

        for resource in self.resources:
            for target in resource.depends_on:
                if target == resource.name:
                    raise ValueError(f"Resource '{resource.name}' cannot depend on itself")
                if target not in resource_names:
                    raise ValueError(
                        f"Resource '{resource.name}' DependsOn unknown resource '{target}'"
                    )
            for reference in resource.references():
                _check_reference(
                    f"Resource '{resource.name}'", reference, parameter_names, resource_names
                )

        for output in self.outputs:
            for reference in output.references():
                _check_reference(
                    f"Output '{output.name}'", reference, parameter_names, resource_names
                )

        graph = dependency_graph(build_dependency_edges(self.resources), sorted(resource_names))
        cycle = find_cycle(graph)
        if cycle:
            raise ValueError(f"Dependency cycle detected: {' -> '.join(cycle)}")

        return self

    def get_parameter(self, name: str) -> Optional[TemplateParameter]:
        """Get parameter by name."""
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    def get_resource(self, name: str) -> Optional[ResourceDeclaration]:
        """Get resource declaration by name."""
        for r in self.resources:
            if r.name == name:
                return r
        return None

    def get_output(self, name: str) -> Optional[OutputDeclaration]:
        """Get output declaration by name."""
        for o in self.outputs:
            if o.name == name:
                return o
        return None

    def resources_of_type(self, type_name: str) -> list[ResourceDeclaration]:
        """Get all resources declared with a type tag."""
        return [r for r in self.resources if r.type == type_name]

    def dependency_edges(self) -> list[DependencyEdge]:
        """Explicit and implicit ordering edges between resources."""
        return build_dependency_edges(self.resources)

    def dependencies_of(self, name: str) -> list[DependencyEdge]:
        """Edges from ``name`` to the resources it needs first."""
        return [edge for edge in self.dependency_edges() if edge.source == name]

    def referenced_names(self) -> set[str]:
        """Every name referenced from resources or outputs."""
        names: set[str] = set()
        for resource in self.resources:
            names.update(r.target for r in resource.references())
        for output in self.outputs:
            names.update(r.target for r in output.references())
        return names

    def add_resource(self, resource: ResourceDeclaration) -> None:
        """Add a resource declaration to the template.

        The document is re-validated; on failure the resource is not added.
        """
        if self.get_resource(resource.name) or self.get_parameter(resource.name):
            raise ValueError(f"Name '{resource.name}' is already declared")
        self.resources.append(resource)
        try:
            self.validate_references()
        except ValueError:
            self.resources.pop()
            raise

    def resolve_parameters(self, values: Mapping[str, Any] | None = None) -> Mapping[str, str]:
        """Resolve the parameter values a deployment run would start with.

        Args:
            values: Operator-supplied values by parameter name

        Returns:
            Read-only mapping of every declared parameter to its value

        Raises:
            ValueError: Unknown name, missing value, or constraint violation
        """
        values = dict(values or {})
        declared = {p.name for p in self.parameters}

        unknown = sorted(set(values) - declared)
        if unknown:
            raise ValueError(f"Unknown parameter(s): {', '.join(unknown)}")

        resolved: dict[str, str] = {}
        missing: list[str] = []
        for parameter in self.parameters:
            if parameter.name in values:
                value = _scalar_to_str(values[parameter.name])
                if isinstance(value, list):
                    value = ",".join(str(_scalar_to_str(item)) for item in value)
                value = str(value)
            elif parameter.default is not None:
                value = parameter.default
            else:
                missing.append(parameter.name)
                continue
            parameter.check_value(value)
            resolved[parameter.name] = value

        if missing:
            raise ValueError(f"No value supplied for parameter(s): {', '.join(missing)}")

        return MappingProxyType(resolved)

    def to_cfn_dict(self) -> dict[str, Any]:
        """Convert to the provider's document shape for serialization."""
        data: dict[str, Any] = {"AWSTemplateFormatVersion": self.format_version}
        if self.description:
            data["Description"] = self.description
        if self.metadata:
            data["Metadata"] = self.metadata
        if self.parameters:
            data["Parameters"] = {p.name: p.to_cfn() for p in self.parameters}
        data["Resources"] = {r.name: r.to_cfn() for r in self.resources}
        if self.outputs:
            data["Outputs"] = {o.name: o.to_cfn() for o in self.outputs}
        return data

    @classmethod
    def from_cfn_dict(cls, data: Any) -> "CfnTemplate":
        """Create template from the provider's document shape."""
        if not isinstance(data, dict):
            raise ValueError("Template document must be a mapping")

        for section in _UNSUPPORTED_SECTIONS:
            if section in data:
                raise ValueError(f"Template section '{section}' is not supported")

        known = {
            "AWSTemplateFormatVersion",
            "Description",
            "Metadata",
            "Parameters",
            "Resources",
            "Outputs",
        }
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            raise ValueError(f"Unknown template section '{unknown[0]}'")

        sections: dict[str, dict[str, Any]] = {}
        for section in ("Parameters", "Resources", "Outputs"):
            body = data.get(section) or {}
            if not isinstance(body, dict):
                raise ValueError(f"Template section '{section}' must be a mapping")
            sections[section] = body

        return cls(
            format_version=data.get("AWSTemplateFormatVersion", TEMPLATE_FORMAT_VERSION),
            description=data.get("Description", ""),
            metadata=data.get("Metadata") or {},
            parameters=[
                TemplateParameter.from_cfn(name, body)
                for name, body in sections["Parameters"].items()
            ],
            resources=[
                ResourceDeclaration.from_cfn(name, body)
                for name, body in sections["Resources"].items()
            ],
            outputs=[
                OutputDeclaration.from_cfn(name, body)
                for name, body in sections["Outputs"].items()
            ],
        )


def _check_reference(
    owner: str,
    reference: Reference,
    parameter_names: set[str],
    resource_names: set[str],
) -> None:
    if reference.kind == ReferenceKind.GET_ATT:
        if reference.target not in resource_names:
            raise ValueError(
                f"{owner} reads attribute '{reference.attribute}' of unknown resource "
                f"'{reference.target}'"
            )
        return

    if (
        reference.target not in parameter_names
        and reference.target not in resource_names
        and reference.target not in PSEUDO_PARAMETERS
    ):
        raise ValueError(f"{owner} references unknown name '{reference.target}'")
