"""CloudFormation template Pydantic models."""

from .cfn_template import (
    TEMPLATE_FORMAT_VERSION,
    CfnTemplate,
    OutputDeclaration,
    ResourceDeclaration,
    ResourceTag,
    TemplateParameter,
)
from .dependency_graph import DependencyEdge, find_cycle
from .intrinsics import (
    PSEUDO_PARAMETERS,
    Reference,
    ReferenceKind,
    collect_references,
    get_att,
    get_azs,
    ref,
    select,
    sub,
)
from .resource_types import (
    RESOURCE_TYPES,
    ResourceCategory,
    ResourceTypeInfo,
    get_category,
    get_resource_type,
    list_resource_types,
)

__all__ = [
    "TEMPLATE_FORMAT_VERSION",
    "CfnTemplate",
    "DependencyEdge",
    "OutputDeclaration",
    "PSEUDO_PARAMETERS",
    "RESOURCE_TYPES",
    "Reference",
    "ReferenceKind",
    "ResourceCategory",
    "ResourceDeclaration",
    "ResourceTag",
    "ResourceTypeInfo",
    "TemplateParameter",
    "collect_references",
    "find_cycle",
    "get_att",
    "get_azs",
    "get_category",
    "get_resource_type",
    "list_resource_types",
    "ref",
    "select",
    "sub",
]
