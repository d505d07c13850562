"""Local catalogue of the resource types used by the bundled templates.

Only what the tooling needs: a label, a category for grouping, what ``Ref``
returns, and the attributes ``Fn::GetAtt`` may read. Types missing from the
catalogue are still accepted in documents; validation reports them as
warnings.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ResourceCategory(str, Enum):
    """Grouping used by diagrams and summaries."""

    NETWORK = "Network"
    SECURITY = "Security"
    COMPUTE = "Compute"
    OTHER = "Other"


class ResourceTypeInfo(BaseModel):
    """Catalogue entry for one resource type."""

    type_name: str
    label: str
    category: ResourceCategory
    ref_returns: str = ""
    attributes: list[str] = Field(default_factory=list)


RESOURCE_TYPES: dict[str, ResourceTypeInfo] = {
    "AWS::EC2::VPC": ResourceTypeInfo(
        type_name="AWS::EC2::VPC",
        label="VPC",
        category=ResourceCategory.NETWORK,
        ref_returns="VPC ID",
        attributes=[
            "CidrBlock",
            "CidrBlockAssociations",
            "DefaultNetworkAcl",
            "DefaultSecurityGroup",
            "Ipv6CidrBlocks",
            "VpcId",
        ],
    ),
    "AWS::EC2::Subnet": ResourceTypeInfo(
        type_name="AWS::EC2::Subnet",
        label="Subnet",
        category=ResourceCategory.NETWORK,
        ref_returns="Subnet ID",
        attributes=[
            "AvailabilityZone",
            "AvailabilityZoneId",
            "CidrBlock",
            "Ipv6CidrBlocks",
            "NetworkAclAssociationId",
            "OutpostArn",
            "SubnetId",
            "VpcId",
        ],
    ),
    "AWS::EC2::InternetGateway": ResourceTypeInfo(
        type_name="AWS::EC2::InternetGateway",
        label="Internet Gateway",
        category=ResourceCategory.NETWORK,
        ref_returns="Internet gateway ID",
        attributes=["InternetGatewayId"],
    ),
    "AWS::EC2::VPCGatewayAttachment": ResourceTypeInfo(
        type_name="AWS::EC2::VPCGatewayAttachment",
        label="Gateway Attachment",
        category=ResourceCategory.NETWORK,
        ref_returns="Attachment ID",
    ),
    "AWS::EC2::RouteTable": ResourceTypeInfo(
        type_name="AWS::EC2::RouteTable",
        label="Route Table",
        category=ResourceCategory.NETWORK,
        ref_returns="Route table ID",
        attributes=["RouteTableId"],
    ),
    "AWS::EC2::Route": ResourceTypeInfo(
        type_name="AWS::EC2::Route",
        label="Route",
        category=ResourceCategory.NETWORK,
        ref_returns="Route ID",
        attributes=["CidrBlock"],
    ),
    "AWS::EC2::SubnetRouteTableAssociation": ResourceTypeInfo(
        type_name="AWS::EC2::SubnetRouteTableAssociation",
        label="Route Table Association",
        category=ResourceCategory.NETWORK,
        ref_returns="Association ID",
        attributes=["Id"],
    ),
    "AWS::EC2::SecurityGroup": ResourceTypeInfo(
        type_name="AWS::EC2::SecurityGroup",
        label="Security Group",
        category=ResourceCategory.SECURITY,
        ref_returns="Security group ID (name in a default VPC)",
        attributes=["GroupId", "VpcId"],
    ),
    "AWS::EC2::Instance": ResourceTypeInfo(
        type_name="AWS::EC2::Instance",
        label="EC2 Instance",
        category=ResourceCategory.COMPUTE,
        ref_returns="Instance ID",
        attributes=[
            "AvailabilityZone",
            "InstanceId",
            "PrivateDnsName",
            "PrivateIp",
            "PublicDnsName",
            "PublicIp",
        ],
    ),
}

# Types whose creation requires the operator to acknowledge IAM capabilities
IAM_RESOURCE_TYPES = frozenset(
    {
        "AWS::IAM::AccessKey",
        "AWS::IAM::Group",
        "AWS::IAM::InstanceProfile",
        "AWS::IAM::ManagedPolicy",
        "AWS::IAM::Policy",
        "AWS::IAM::Role",
        "AWS::IAM::User",
        "AWS::IAM::UserToGroupAddition",
    }
)

# Properties that give an IAM resource a custom name
IAM_NAME_PROPERTIES = frozenset(
    {"GroupName", "InstanceProfileName", "ManagedPolicyName", "RoleName", "UserName"}
)


def get_resource_type(type_name: str) -> ResourceTypeInfo | None:
    """Get catalogue entry by type name."""
    return RESOURCE_TYPES.get(type_name)


def get_category(type_name: str) -> ResourceCategory:
    """Category of a type, ``OTHER`` when not catalogued."""
    info = RESOURCE_TYPES.get(type_name)
    if info is None:
        if type_name.startswith("AWS::IAM::"):
            return ResourceCategory.SECURITY
        return ResourceCategory.OTHER
    return info.category


def list_resource_types(category: ResourceCategory | None = None) -> list[dict[str, Any]]:
    """List catalogued types, optionally filtered by category."""
    return [
        {
            "type": info.type_name,
            "label": info.label,
            "category": info.category.value,
            "ref_returns": info.ref_returns,
            "attributes": list(info.attributes),
        }
        for info in RESOURCE_TYPES.values()
        if category is None or info.category == category
    ]
