"""Tests for the console upload guide."""
import pytest

from src.guide import render_console_guide, required_capabilities, validate_stack_name
from src.models import (
    CfnTemplate,
    OutputDeclaration,
    ResourceDeclaration,
    TemplateParameter,
    ref,
)
from src.templates import build_template


@pytest.fixture
def template() -> CfnTemplate:
    return build_template("vpc_ec2_instance")


def _with_resource(template: CfnTemplate, resource: ResourceDeclaration) -> CfnTemplate:
    template.add_resource(resource)
    return template


class TestRenderConsoleGuide:
    """Tests for render_console_guide."""

    def test_sections_in_order(self, template: CfnTemplate):
        """Guide sections appear in upload order."""
        guide = render_console_guide(template)
        headings = [line for line in guide.splitlines() if line.startswith("#")]

        assert headings == [
            "# Deploying `vpc-ec2-instance.yaml` from the console",
            "## What gets created",
            "## Before you start",
            "## Steps",
            "## Outputs",
            "## Updating and cleaning up",
        ]

    def test_lists_every_resource(self, template: CfnTemplate):
        """Every resource appears in the summary table."""
        guide = render_console_guide(template)

        for resource in template.resources:
            assert f"| {resource.name} | `{resource.type}` |" in guide

    def test_upload_steps(self, template: CfnTemplate):
        """Steps cover opening the console through watching events."""
        guide = render_console_guide(template, stack_name="demo", region="eu-west-1")

        assert "1. Open the CloudFormation console: https://eu-west-1.console.aws.amazon.com/" in guide
        assert "**Upload a template file**" in guide
        assert "Enter `demo` as the **Stack name**." in guide
        assert "`CREATE_COMPLETE`" in guide
        assert "No capability acknowledgement is required" in guide

    def test_key_pair_default_shown(self, template: CfnTemplate):
        """Default key pair is listed and flagged as a prerequisite."""
        guide = render_console_guide(template)

        assert "| KeyPairName | `MyKeyPair` |" in guide
        assert "Make sure the key pair `MyKeyPair` exists in `us-east-1`" in guide

    def test_parameter_value_override(self, template: CfnTemplate):
        """Supplied values replace defaults in the parameter table."""
        guide = render_console_guide(template, parameter_values={"KeyPairName": "ops-key"})

        assert "| KeyPairName | `ops-key` |" in guide

    def test_outputs_listed(self, template: CfnTemplate):
        """Outputs are listed with their descriptions."""
        guide = render_console_guide(template)

        assert "| InstancePublicIP | Public IP address of the EC2 instance |" in guide

    def test_no_echo_masked(self, template: CfnTemplate):
        """NoEcho values are masked in the parameter table."""
        template.parameters.append(
            TemplateParameter(name="DbPassword", default="hunter22", no_echo=True)
        )
        guide = render_console_guide(template)

        assert "| DbPassword | `****` |" in guide
        assert "hunter22" not in guide

    def test_descriptions_fit_table_cells(self, template: CfnTemplate):
        """Pipes and line breaks in descriptions do not break the tables."""
        template.parameters.append(
            TemplateParameter(name="Motd", default="hi", description="one | two\nthree")
        )
        template.outputs.append(
            OutputDeclaration(name="Note", description="left|right\n", value=ref("VPC"))
        )
        guide = render_console_guide(template)

        assert "   | Motd | `hi` | one \\| two three |" in guide
        assert "| Note | left\\|right |" in guide

    def test_unknown_parameter_rejected(self, template: CfnTemplate):
        """Values for undeclared parameters raise error."""
        with pytest.raises(ValueError, match="Unknown parameter"):
            render_console_guide(template, parameter_values={"Nope": "x"})

    def test_capability_step(self, template: CfnTemplate):
        """IAM resources add a capability acknowledgement step."""
        role = ResourceDeclaration(name="Role", type="AWS::IAM::Role")
        guide = render_console_guide(_with_resource(template, role))

        assert "(CAPABILITY_IAM)" in guide


class TestStackName:
    """Tests for stack name rules."""

    @pytest.mark.parametrize("name", ["vpc-ec2-stack", "A", "stack1"])
    def test_valid(self, name: str):
        """Console-accepted stack names pass through."""
        assert validate_stack_name(name) == name

    @pytest.mark.parametrize("name", ["", "1stack", "my_stack", "a" * 129])
    def test_invalid(self, name: str):
        """Names the console rejects raise error."""
        with pytest.raises(ValueError, match="Stack name"):
            validate_stack_name(name)


class TestRequiredCapabilities:
    """Tests for capability detection."""

    def test_none_for_network_and_instance(self, template: CfnTemplate):
        """Network and instance resources need no acknowledgement."""
        assert required_capabilities(template) == []

    def test_iam(self, template: CfnTemplate):
        """Unnamed IAM resources need CAPABILITY_IAM."""
        role = ResourceDeclaration(name="Role", type="AWS::IAM::Role")

        assert required_capabilities(_with_resource(template, role)) == ["CAPABILITY_IAM"]

    def test_named_iam(self, template: CfnTemplate):
        """Custom-named IAM resources need CAPABILITY_NAMED_IAM."""
        role = ResourceDeclaration(
            name="Role", type="AWS::IAM::Role", properties={"RoleName": "web-role"}
        )

        assert required_capabilities(_with_resource(template, role)) == ["CAPABILITY_NAMED_IAM"]
