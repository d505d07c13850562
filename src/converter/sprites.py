"""Style definitions for PlantUML template diagrams.

Maps resource types, categories and reference edges to PlantUML shapes,
stereotypes and colors.
"""
from ..models import ResourceCategory, get_category

# Resource type to stereotype/shape mapping
RESOURCE_SPRITES: dict[str, dict[str, str]] = {
    "AWS::EC2::VPC": {
        "stereotype": "<<VPC>>",
        "color": "#8C4FFF",
        "shape": "rectangle",
    },
    "AWS::EC2::Subnet": {
        "stereotype": "<<Subnet>>",
        "color": "#A166FF",
        "shape": "rectangle",
    },
    "AWS::EC2::InternetGateway": {
        "stereotype": "<<Internet Gateway>>",
        "color": "#7B3FE4",
        "shape": "hexagon",
    },
    "AWS::EC2::VPCGatewayAttachment": {
        "stereotype": "<<Attachment>>",
        "color": "#C8B3F5",
        "shape": "card",
    },
    "AWS::EC2::RouteTable": {
        "stereotype": "<<Route Table>>",
        "color": "#9F7AEA",
        "shape": "rectangle",
    },
    "AWS::EC2::Route": {
        "stereotype": "<<Route>>",
        "color": "#C8B3F5",
        "shape": "card",
    },
    "AWS::EC2::SubnetRouteTableAssociation": {
        "stereotype": "<<Association>>",
        "color": "#C8B3F5",
        "shape": "card",
    },
    "AWS::EC2::SecurityGroup": {
        "stereotype": "<<Security Group>>",
        "color": "#DD344C",
        "shape": "hexagon",
    },
    "AWS::EC2::Instance": {
        "stereotype": "<<EC2 Instance>>",
        "color": "#ED7100",
        "shape": "node",
    },
}

# Category package colors
CATEGORY_COLORS: dict[ResourceCategory, dict[str, str]] = {
    ResourceCategory.NETWORK: {
        "background": "#F3E8FF",
        "border": "#8C4FFF",
    },
    ResourceCategory.SECURITY: {
        "background": "#FDECEE",
        "border": "#DD344C",
    },
    ResourceCategory.COMPUTE: {
        "background": "#FFF4E5",
        "border": "#ED7100",
    },
    ResourceCategory.OTHER: {
        "background": "#FAFAFA",
        "border": "#BDBDBD",
    },
}

# Edge styles by dependency kind
EDGE_STYLES: dict[str, dict[str, str]] = {
    "Ref": {"color": "#546E7A", "style": "solid", "label": "Ref"},
    "GetAtt": {"color": "#0066CC", "style": "solid", "label": "GetAtt"},
    "DependsOn": {"color": "#E67E22", "style": "dashed", "label": "DependsOn"},
}


def get_resource_style(type_name: str) -> dict[str, str]:
    """Get stereotype/shape info for a resource type."""
    style = RESOURCE_SPRITES.get(type_name)
    if style is not None:
        return style
    return {
        "stereotype": f"<<{type_name.split('::')[-1]}>>",
        "color": "#BDC3C7",
        "shape": "rectangle",
    }


def get_category_style(type_name: str) -> dict[str, str]:
    """Get package colors for the category a type belongs to."""
    return CATEGORY_COLORS[get_category(type_name)]


def get_edge_style(kind: str) -> dict[str, str]:
    """Get line style for a dependency kind."""
    return EDGE_STYLES.get(kind, {"color": "#7F8C8D", "style": "solid", "label": kind})
