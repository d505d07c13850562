"""Tests for bundled stack templates."""
from pathlib import Path

import pytest

from src.loader import load_template_file
from src.models import CfnTemplate
from src.templates import (
    STACK_TEMPLATES,
    TemplateOverrides,
    build_template,
    get_template,
    list_templates,
)

SHIPPED_TEMPLATE = Path(__file__).parent.parent / "cloudformation" / "vpc-ec2-instance.yaml"


@pytest.fixture
def template() -> CfnTemplate:
    return build_template("vpc_ec2_instance")


class TestTemplateRegistry:
    """Tests for the template registry."""

    def test_list_templates(self):
        """Templates are listed in registry order."""
        names = [t["name"] for t in list_templates()]

        assert names == ["vpc_ec2_instance", "public_vpc"]

    def test_get_template(self):
        """Lookup returns the entry or None."""
        entry = get_template("vpc_ec2_instance")

        assert entry is not None
        assert entry.file_name == "vpc-ec2-instance.yaml"
        assert get_template("missing") is None

    def test_unknown_template_fails(self):
        """Building an unknown template raises error."""
        with pytest.raises(ValueError, match="Unknown template 'missing'"):
            build_template("missing")

    def test_every_registered_template_builds(self):
        """Every registered template builds."""
        for name in STACK_TEMPLATES:
            assert build_template(name).resources


class TestVpcEc2InstanceScenario:
    """Default deployment produces one of each principal resource."""

    @pytest.mark.parametrize(
        "type_name",
        [
            "AWS::EC2::VPC",
            "AWS::EC2::Subnet",
            "AWS::EC2::InternetGateway",
            "AWS::EC2::RouteTable",
            "AWS::EC2::SecurityGroup",
            "AWS::EC2::Instance",
        ],
    )
    def test_exactly_one_of_each(self, template: CfnTemplate, type_name: str):
        """Each principal resource type appears once."""
        assert len(template.resources_of_type(type_name)) == 1

    def test_default_key_pair(self, template: CfnTemplate):
        """KeyPairName resolves to its default with no operator input."""
        assert dict(template.resolve_parameters()) == {"KeyPairName": "MyKeyPair"}

    def test_security_group_ingress(self, template: CfnTemplate):
        """Ingress allows ports 22 and 80 from any source."""
        group = template.get_resource("WebSecurityGroup")
        rules = group.properties["SecurityGroupIngress"]

        assert [(r["FromPort"], r["ToPort"], r["CidrIp"]) for r in rules] == [
            (22, 22, "0.0.0.0/0"),
            (80, 80, "0.0.0.0/0"),
        ]

    def test_three_non_empty_outputs(self, template: CfnTemplate):
        """VPC id, instance id and public IP are output."""
        assert [o.name for o in template.outputs] == ["VPCId", "InstanceId", "InstancePublicIP"]
        assert all(o.value for o in template.outputs)
        assert template.get_output("InstancePublicIP").value == {
            "Fn::GetAtt": ["EC2Instance", "PublicIp"]
        }

    def test_route_waits_for_gateway_attachment(self, template: CfnTemplate):
        """The route declares its ordering hint on the attachment."""
        assert template.get_resource("PublicRoute").depends_on == ["AttachGateway"]

    def test_instance_wiring(self, template: CfnTemplate):
        """Instance uses the key pair, subnet and security group."""
        instance = template.get_resource("EC2Instance")

        assert instance.properties["KeyName"] == {"Ref": "KeyPairName"}
        assert instance.properties["SubnetId"] == {"Ref": "PublicSubnet"}
        assert instance.properties["SecurityGroupIds"] == [{"Ref": "WebSecurityGroup"}]

    def test_shipped_file_matches_builder(self, template: CfnTemplate):
        """cloudformation/vpc-ec2-instance.yaml is the built document."""
        shipped = load_template_file(SHIPPED_TEMPLATE)

        assert shipped.to_cfn_dict() == template.to_cfn_dict()


class TestTemplateOverrides:
    """Tests for literal overrides."""

    def test_overrides_applied(self):
        """Overrides change the built literals."""
        template = build_template(
            "vpc_ec2_instance",
            {"key_pair_name": "ops", "instance_type": "t3.small", "ingress_ports": [443]},
        )

        assert template.get_parameter("KeyPairName").default == "ops"
        assert template.get_resource("EC2Instance").properties["InstanceType"] == "t3.small"
        rules = template.get_resource("WebSecurityGroup").properties["SecurityGroupIngress"]
        assert [r["FromPort"] for r in rules] == [443]

    def test_subnet_outside_vpc_fails(self):
        """Subnet range must lie inside the VPC range."""
        with pytest.raises(ValueError, match="not inside VPC CIDR"):
            TemplateOverrides(vpc_cidr="10.0.0.0/16", subnet_cidr="10.1.0.0/24")

    def test_invalid_cidr_fails(self):
        """Malformed CIDRs raise error."""
        with pytest.raises(ValueError, match="Invalid IPv4 CIDR"):
            TemplateOverrides(vpc_cidr="10.0.0.0/33")

    def test_invalid_port_fails(self):
        """Ports above 65535 raise error."""
        with pytest.raises(ValueError, match="out of range"):
            TemplateOverrides(ingress_ports=[70000])

    def test_invalid_image_id_fails(self):
        """Image ids must look like ami-..."""
        with pytest.raises(ValueError):
            TemplateOverrides(image_id="ubuntu")


class TestPublicVpc:
    """Tests for the network-only template."""

    def test_no_instance_or_parameters(self):
        """Network-only template has no instance or parameters."""
        template = build_template("public_vpc")

        assert template.parameters == []
        assert template.resources_of_type("AWS::EC2::Instance") == []
        assert [o.name for o in template.outputs] == ["VPCId", "PublicSubnetId"]
