"""Stack templates bundled with the toolkit.

Provides builders for the bundled template documents:
- vpc_ec2_instance: VPC + public subnet + internet gateway + route table +
  security group + EC2 instance (the document shipped in cloudformation/)
- public_vpc: the same network without security group or instance
"""
from __future__ import annotations

import ipaddress
from typing import Any, Callable

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models import (
    CfnTemplate,
    OutputDeclaration,
    ResourceDeclaration,
    ResourceTag,
    TemplateParameter,
    get_att,
    get_azs,
    ref,
    select,
    sub,
)


class TemplateOverrides(BaseModel):
    """Literal values that may be changed when building a template."""

    key_pair_name: str = Field(default="MyKeyPair", min_length=1, max_length=255)
    vpc_cidr: str = "10.0.0.0/16"
    subnet_cidr: str = "10.0.1.0/24"
    instance_type: str = "t2.micro"
    image_id: str = Field(default="ami-0c55b159cbfafe1f0", pattern=r"^ami-[0-9a-f]{8,17}$")
    ingress_ports: list[int] = Field(default_factory=lambda: [22, 80], min_length=1)
    ingress_cidr: str = "0.0.0.0/0"

    @field_validator("vpc_cidr", "subnet_cidr", "ingress_cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        try:
            ipaddress.IPv4Network(v)
        except ValueError as e:
            raise ValueError(f"Invalid IPv4 CIDR '{v}': {e}") from e
        return v

    @field_validator("ingress_ports")
    @classmethod
    def validate_ports(cls, v: list[int]) -> list[int]:
        for port in v:
            if not 0 < port < 65536:
                raise ValueError(f"Port {port} is out of range")
        if len(set(v)) != len(v):
            raise ValueError("Ingress ports must be unique")
        return v

    @model_validator(mode="after")
    def subnet_inside_vpc(self) -> "TemplateOverrides":
        vpc = ipaddress.IPv4Network(self.vpc_cidr)
        subnet = ipaddress.IPv4Network(self.subnet_cidr)
        if not subnet.subnet_of(vpc):
            raise ValueError(
                f"Subnet CIDR {self.subnet_cidr} is not inside VPC CIDR {self.vpc_cidr}"
            )
        return self


class StackTemplate(BaseModel):
    """Bundled stack template definition."""

    name: str
    version: str = "1.0"
    description: str
    use_case: str
    file_name: str = ""


def _name_tag(suffix: str) -> list[ResourceTag]:
    return [ResourceTag(key="Name", value=sub(f"${{AWS::StackName}}-{suffix}"))]


def _network_resources(overrides: TemplateOverrides) -> list[ResourceDeclaration]:
    """VPC with one public subnet routed through an internet gateway."""
    return [
        ResourceDeclaration(
            name="VPC",
            type="AWS::EC2::VPC",
            properties={
                "CidrBlock": overrides.vpc_cidr,
                "EnableDnsSupport": True,
                "EnableDnsHostnames": True,
            },
            tags=_name_tag("vpc"),
        ),
        ResourceDeclaration(
            name="InternetGateway",
            type="AWS::EC2::InternetGateway",
            tags=_name_tag("igw"),
        ),
        ResourceDeclaration(
            name="AttachGateway",
            type="AWS::EC2::VPCGatewayAttachment",
            properties={
                "VpcId": ref("VPC"),
                "InternetGatewayId": ref("InternetGateway"),
            },
        ),
        ResourceDeclaration(
            name="PublicSubnet",
            type="AWS::EC2::Subnet",
            properties={
                "VpcId": ref("VPC"),
                "CidrBlock": overrides.subnet_cidr,
                "MapPublicIpOnLaunch": True,
                "AvailabilityZone": select(0, get_azs()),
            },
            tags=_name_tag("public-subnet"),
        ),
        ResourceDeclaration(
            name="PublicRouteTable",
            type="AWS::EC2::RouteTable",
            properties={"VpcId": ref("VPC")},
            tags=_name_tag("public-rt"),
        ),
        # The route needs the gateway attached, which no reference expresses
        ResourceDeclaration(
            name="PublicRoute",
            type="AWS::EC2::Route",
            depends_on=["AttachGateway"],
            properties={
                "RouteTableId": ref("PublicRouteTable"),
                "DestinationCidrBlock": "0.0.0.0/0",
                "GatewayId": ref("InternetGateway"),
            },
        ),
        ResourceDeclaration(
            name="PublicSubnetRouteTableAssociation",
            type="AWS::EC2::SubnetRouteTableAssociation",
            properties={
                "SubnetId": ref("PublicSubnet"),
                "RouteTableId": ref("PublicRouteTable"),
            },
        ),
    ]


def _build_vpc_ec2_instance(overrides: TemplateOverrides) -> CfnTemplate:
    ports = " and ".join(str(p) for p in overrides.ingress_ports)
    resources = _network_resources(overrides)
    resources.extend(
        [
            ResourceDeclaration(
                name="WebSecurityGroup",
                type="AWS::EC2::SecurityGroup",
                properties={
                    "GroupDescription": f"Allow inbound TCP {ports}",
                    "VpcId": ref("VPC"),
                    "SecurityGroupIngress": [
                        {
                            "IpProtocol": "tcp",
                            "FromPort": port,
                            "ToPort": port,
                            "CidrIp": overrides.ingress_cidr,
                        }
                        for port in overrides.ingress_ports
                    ],
                },
                tags=_name_tag("web-sg"),
            ),
            ResourceDeclaration(
                name="EC2Instance",
                type="AWS::EC2::Instance",
                properties={
                    "InstanceType": overrides.instance_type,
                    "ImageId": overrides.image_id,
                    "KeyName": ref("KeyPairName"),
                    "SubnetId": ref("PublicSubnet"),
                    "SecurityGroupIds": [ref("WebSecurityGroup")],
                },
                tags=_name_tag("instance"),
            ),
        ]
    )

    return CfnTemplate(
        description=(
            "VPC with a public subnet, internet gateway, route table, "
            "security group and one EC2 instance"
        ),
        parameters=[
            TemplateParameter(
                name="KeyPairName",
                type="String",
                default=overrides.key_pair_name,
                description="Name of an existing EC2 key pair for SSH access to the instance",
            )
        ],
        resources=resources,
        outputs=[
            OutputDeclaration(
                name="VPCId",
                description="ID of the created VPC",
                value=ref("VPC"),
            ),
            OutputDeclaration(
                name="InstanceId",
                description="ID of the created EC2 instance",
                value=ref("EC2Instance"),
            ),
            OutputDeclaration(
                name="InstancePublicIP",
                description="Public IP address of the EC2 instance",
                value=get_att("EC2Instance", "PublicIp"),
            ),
        ],
    )


def _build_public_vpc(overrides: TemplateOverrides) -> CfnTemplate:
    return CfnTemplate(
        description="VPC with one public subnet routed through an internet gateway",
        resources=_network_resources(overrides),
        outputs=[
            OutputDeclaration(
                name="VPCId",
                description="ID of the created VPC",
                value=ref("VPC"),
            ),
            OutputDeclaration(
                name="PublicSubnetId",
                description="ID of the public subnet",
                value=ref("PublicSubnet"),
            ),
        ],
    )


STACK_TEMPLATES: dict[str, StackTemplate] = {
    "vpc_ec2_instance": StackTemplate(
        name="vpc_ec2_instance",
        version="1.0",
        description="VPC, public subnet, internet gateway, route table, security group and EC2 instance",
        use_case="Single web/SSH host in its own network, uploaded through the console",
        file_name="vpc-ec2-instance.yaml",
    ),
    "public_vpc": StackTemplate(
        name="public_vpc",
        version="1.0",
        description="VPC with one public subnet routed through an internet gateway",
        use_case="Network foundation to launch instances into later",
    ),
}

_BUILDERS: dict[str, Callable[[TemplateOverrides], CfnTemplate]] = {
    "vpc_ec2_instance": _build_vpc_ec2_instance,
    "public_vpc": _build_public_vpc,
}


def get_template(name: str) -> StackTemplate | None:
    """Get stack template definition by name.

    Args:
        name: Template name

    Returns:
        StackTemplate or None if not found
    """
    return STACK_TEMPLATES.get(name)


def list_templates() -> list[dict[str, Any]]:
    """List all bundled stack templates.

    Returns:
        List of template summaries with name, version, description, use_case
    """
    return [
        {
            "name": t.name,
            "version": t.version,
            "description": t.description,
            "use_case": t.use_case,
            "file_name": t.file_name,
        }
        for t in STACK_TEMPLATES.values()
    ]


def build_template(
    name: str = "vpc_ec2_instance",
    overrides: TemplateOverrides | dict[str, Any] | None = None,
) -> CfnTemplate:
    """Build a bundled template document.

    Args:
        name: Template name
        overrides: Literal values to change (model or plain dict)

    Returns:
        Validated template document

    Raises:
        ValueError: Unknown template name or invalid overrides
    """
    builder = _BUILDERS.get(name)
    if builder is None:
        raise ValueError(
            f"Unknown template '{name}'. Available: {', '.join(sorted(STACK_TEMPLATES))}"
        )
    if overrides is None:
        overrides = TemplateOverrides()
    elif isinstance(overrides, dict):
        overrides = TemplateOverrides.model_validate(overrides)
    return builder(overrides)
