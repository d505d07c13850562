"""Reference expressions for CloudFormation template documents.

Reference expressions are kept in the provider's long-form mapping shape
(``{"Ref": "VPC"}``, ``{"Fn::GetAtt": ["EC2Instance", "PublicIp"]}``) so a
template can be serialized without conversion. They are never resolved
here; the orchestration service does that once the target exists. This
module only builds them and collects the names they point at.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Any, NamedTuple

PSEUDO_PARAMETERS = frozenset(
    {
        "AWS::AccountId",
        "AWS::NotificationARNs",
        "AWS::NoValue",
        "AWS::Partition",
        "AWS::Region",
        "AWS::StackId",
        "AWS::StackName",
        "AWS::URLSuffix",
    }
)

# ${Name} or ${Name.Attribute}; ${!Literal} is an escaped literal
_SUB_VARIABLE = re.compile(r"\$\{([^!}][^}]*)\}")


class ReferenceKind(str, Enum):
    """How a reference expression points at its target."""

    REF = "Ref"
    GET_ATT = "GetAtt"


class Reference(NamedTuple):
    """A name referenced from somewhere inside a template value."""

    target: str
    kind: ReferenceKind
    attribute: str | None = None

    @property
    def is_pseudo(self) -> bool:
        return self.target in PSEUDO_PARAMETERS


def ref(name: str) -> dict[str, str]:
    """Identifier of a resource, or the value of a parameter."""
    return {"Ref": name}


def get_att(name: str, attribute: str) -> dict[str, list[str]]:
    """Attribute of a resource once it exists."""
    return {"Fn::GetAtt": [name, attribute]}


def sub(text: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
    """String with ``${...}`` substitutions."""
    if variables:
        return {"Fn::Sub": [text, variables]}
    return {"Fn::Sub": text}


def select(index: int, values: Any) -> dict[str, list[Any]]:
    return {"Fn::Select": [index, values]}


def get_azs(region: str = "") -> dict[str, str]:
    return {"Fn::GetAZs": region}


def _sub_references(text: str, local_names: set[str]) -> list[Reference]:
    refs: list[Reference] = []
    for match in _SUB_VARIABLE.finditer(text):
        name = match.group(1).strip()
        if name in local_names:
            continue
        if "." in name and not name.startswith("AWS::"):
            target, attribute = name.split(".", 1)
            refs.append(Reference(target, ReferenceKind.GET_ATT, attribute))
        else:
            refs.append(Reference(name, ReferenceKind.REF))
    return refs


def collect_references(value: Any) -> list[Reference]:
    """Collect every reference expression nested inside a template value.

    Walks dicts and lists recursively. Order follows the document, and
    duplicates are kept so callers can count occurrences.

    Args:
        value: Literal, list, or mapping taken from a template

    Returns:
        References in document order
    """
    refs: list[Reference] = []

    if isinstance(value, list):
        for item in value:
            refs.extend(collect_references(item))
        return refs

    if not isinstance(value, dict):
        return refs

    if len(value) == 1:
        key, arg = next(iter(value.items()))

        if key == "Ref" and isinstance(arg, str):
            return [Reference(arg, ReferenceKind.REF)]

        if key == "Fn::GetAtt":
            if isinstance(arg, str) and "." in arg:
                target, attribute = arg.split(".", 1)
                return [Reference(target, ReferenceKind.GET_ATT, attribute)]
            if isinstance(arg, list) and arg and isinstance(arg[0], str):
                attribute = arg[1] if len(arg) > 1 and isinstance(arg[1], str) else None
                refs.append(Reference(arg[0], ReferenceKind.GET_ATT, attribute))
                refs.extend(collect_references(arg[1:]))
                return refs

        if key == "Fn::Sub":
            if isinstance(arg, str):
                return _sub_references(arg, set())
            if isinstance(arg, list) and arg and isinstance(arg[0], str):
                variables = arg[1] if len(arg) > 1 and isinstance(arg[1], dict) else {}
                refs.extend(_sub_references(arg[0], set(variables)))
                refs.extend(collect_references(list(variables.values())))
                return refs

    for item in value.values():
        refs.extend(collect_references(item))
    return refs
