"""Tests for template validation reports."""
from pathlib import Path

import pytest

from src.loader import dump_template
from src.templates import build_template
from src.validation import validate_template_text

FIXTURES = Path(__file__).parent / "fixtures"
SHIPPED_TEMPLATE = Path(__file__).parent.parent / "cloudformation" / "vpc-ec2-instance.yaml"


def _template(resources: str, extra: str = "") -> str:
    return "AWSTemplateFormatVersion: '2010-09-09'\n" + extra + "Resources:\n" + resources


class TestValidateTemplateText:
    """Tests for validate_template_text."""

    def test_shipped_template_valid(self):
        """The shipped template is valid with an SSH warning."""
        result = validate_template_text(SHIPPED_TEMPLATE.read_text())

        assert result["valid"] is True
        assert result["errors"] == []
        assert result["warnings"] == [
            "Security group 'WebSecurityGroup' allows SSH (port 22) from 0.0.0.0/0"
        ]
        assert result["summary"] == "1 parameter(s), 9 resource(s), 3 output(s)"

    def test_shipped_template_strict_fails(self):
        """Strict mode turns the SSH warning into a failure."""
        result = validate_template_text(SHIPPED_TEMPLATE.read_text(), strict=True)

        assert result["valid"] is False

    def test_restricted_ssh_has_no_warnings(self):
        """Without port 22 the default template has no warnings."""
        template = build_template("vpc_ec2_instance", {"ingress_ports": [80, 443]})
        result = validate_template_text(dump_template(template), strict=True)

        assert result["valid"] is True
        assert result["warnings"] == []

    def test_counts(self):
        """Counts break resources down by type."""
        result = validate_template_text(SHIPPED_TEMPLATE.read_text())
        counts = result["counts"]

        assert counts["parameters"] == 1
        assert counts["outputs"] == 3
        assert counts["resource_types"]["AWS::EC2::Instance"] == 1
        assert sum(counts["resource_types"].values()) == counts["resources"]

    def test_duplicate_resource_is_error(self):
        """Duplicate resource names are errors."""
        result = validate_template_text((FIXTURES / "duplicate_resource.yaml").read_text())

        assert result["valid"] is False
        assert "Duplicate key 'VPC'" in result["errors"][0]

    def test_cycle_is_error(self):
        """Dependency cycles fail schema validation."""
        result = validate_template_text((FIXTURES / "cyclic_template.yaml").read_text())

        assert result["valid"] is False
        assert "Dependency cycle detected" in result["errors"][0]
        assert result["summary"] == "Schema validation failed"

    def test_dangling_reference_is_error(self):
        """References to undeclared names are errors."""
        text = _template(
            "  Subnet:\n"
            "    Type: AWS::EC2::Subnet\n"
            "    Properties:\n"
            "      VpcId: !Ref MissingVPC\n"
        )
        result = validate_template_text(text)

        assert result["valid"] is False
        assert "unknown name 'MissingVPC'" in result["errors"][0]

    def test_yaml_syntax_error(self):
        """YAML syntax errors are reported."""
        result = validate_template_text("Resources: [unclosed\n")

        assert result["valid"] is False
        assert result["summary"] == "YAML parse failed"

    def test_non_mapping_is_error(self):
        """Non-mapping documents are reported."""
        result = validate_template_text("just text")

        assert result["valid"] is False
        assert result["errors"] == ["Template document must be a mapping"]

    def test_invalid_allowed_pattern_is_error(self):
        """A malformed AllowedPattern is reported, not raised."""
        text = _template(
            "  VPC:\n    Type: AWS::EC2::VPC\n",
            extra="Parameters:\n  Env:\n    Type: String\n    AllowedPattern: '[a-z'\n",
        )
        result = validate_template_text(text)

        assert result["valid"] is False
        assert result["summary"] == "Schema validation failed"
        assert "Invalid AllowedPattern" in result["errors"][0]

    def test_unknown_resource_attribute_is_error(self):
        """Misspelled resource attributes are reported."""
        result = validate_template_text(_template("  VPC:\n    Type: AWS::EC2::VPC\n    Propreties: {}\n"))

        assert result["valid"] is False
        assert "unknown attribute 'Propreties'" in result["errors"][0]


class TestWarnings:
    """Tests for non-fatal findings."""

    def test_unused_parameter(self):
        """Unreferenced parameters are flagged."""
        text = _template(
            "  VPC:\n    Type: AWS::EC2::VPC\n    Properties:\n      CidrBlock: 10.0.0.0/16\n",
            extra="Parameters:\n  Unused:\n    Type: String\n    Default: x\n",
        )
        warnings = validate_template_text(text)["warnings"]

        assert "Parameter 'Unused' is declared but never referenced" in warnings

    def test_unknown_attribute(self):
        """Unknown GetAtt attributes are flagged."""
        text = _template(
            "  Instance:\n    Type: AWS::EC2::Instance\n",
            extra="",
        ) + "Outputs:\n  Ip:\n    Value: !GetAtt Instance.PublicAddress\n"
        warnings = validate_template_text(text)["warnings"]

        assert (
            "Attribute 'PublicAddress' is not available on 'Instance' (AWS::EC2::Instance)"
            in warnings
        )

    def test_uncatalogued_type(self):
        """Uncatalogued types and missing outputs are flagged."""
        text = _template("  Bucket:\n    Type: AWS::S3::Bucket\n")
        warnings = validate_template_text(text)["warnings"]

        assert "Resource 'Bucket' type 'AWS::S3::Bucket' is not in the local catalogue" in warnings
        assert "Template declares no outputs" in warnings

    def test_subnet_outside_vpc(self):
        """Subnet ranges outside their VPC are flagged."""
        text = _template(
            "  VPC:\n"
            "    Type: AWS::EC2::VPC\n"
            "    Properties:\n"
            "      CidrBlock: 10.0.0.0/16\n"
            "  Subnet:\n"
            "    Type: AWS::EC2::Subnet\n"
            "    Properties:\n"
            "      VpcId: !Ref VPC\n"
            "      CidrBlock: 10.9.1.0/24\n"
        )
        warnings = validate_template_text(text)["warnings"]

        assert "Subnet 'Subnet' CIDR 10.9.1.0/24 is outside VPC 'VPC' CIDR 10.0.0.0/16" in warnings

    @pytest.mark.parametrize(
        "rule, expected",
        [
            ("IpProtocol: tcp, FromPort: 3389, ToPort: 3389, CidrIp: 0.0.0.0/0", "RDP (port 3389)"),
            ("IpProtocol: '-1', CidrIpv6: '::/0'", "SSH (port 22) from ::/0"),
            ("IpProtocol: tcp, FromPort: 0, ToPort: 1024, CidrIp: 0.0.0.0/0", "SSH (port 22)"),
        ],
    )
    def test_open_admin_ports(self, rule: str, expected: str):
        """Admin ports open to the world are flagged."""
        text = _template(
            "  Group:\n"
            "    Type: AWS::EC2::SecurityGroup\n"
            "    Properties:\n"
            "      GroupDescription: test\n"
            f"      SecurityGroupIngress:\n        - {{{rule}}}\n"
        )
        warnings = validate_template_text(text)["warnings"]

        assert any(expected in w for w in warnings)

    def test_restricted_source_not_flagged(self):
        """SSH from a private range is not flagged."""
        text = _template(
            "  Group:\n"
            "    Type: AWS::EC2::SecurityGroup\n"
            "    Properties:\n"
            "      GroupDescription: test\n"
            "      SecurityGroupIngress:\n"
            "        - {IpProtocol: tcp, FromPort: 22, ToPort: 22, CidrIp: 10.0.0.0/8}\n"
        )
        warnings = validate_template_text(text)["warnings"]

        assert not any("allows SSH" in w for w in warnings)
