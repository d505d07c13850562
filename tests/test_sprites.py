"""Tests for diagram style definitions and the resource type catalogue."""
from src.converter.sprites import (
    CATEGORY_COLORS,
    EDGE_STYLES,
    RESOURCE_SPRITES,
    get_category_style,
    get_edge_style,
    get_resource_style,
)
from src.models import (
    RESOURCE_TYPES,
    ResourceCategory,
    get_category,
    get_resource_type,
    list_resource_types,
)


class TestResourceSprites:
    """Tests for resource style definitions."""

    def test_all_catalogued_types_have_sprites(self):
        """Every catalogued type has a style."""
        assert set(RESOURCE_SPRITES) == set(RESOURCE_TYPES)

    def test_colors_are_valid_hex(self):
        """Sprite colors are 6-digit hex values."""
        for style in RESOURCE_SPRITES.values():
            color = style["color"]
            assert color.startswith("#")
            assert len(color) == 7
            int(color[1:], 16)

    def test_uncatalogued_type_fallback(self):
        """Uncatalogued types get a generic rectangle."""
        style = get_resource_style("AWS::S3::Bucket")

        assert style["stereotype"] == "<<Bucket>>"
        assert style["shape"] == "rectangle"

    def test_security_group_is_hexagon(self):
        """Security groups are drawn as hexagons."""
        assert get_resource_style("AWS::EC2::SecurityGroup")["shape"] == "hexagon"


class TestCategoryAndEdgeStyles:
    """Tests for package and edge styles."""

    def test_every_category_has_colors(self):
        """Every category has package colors."""
        for category in ResourceCategory:
            assert category in CATEGORY_COLORS

    def test_category_style_for_type(self):
        """Type lookups resolve to their category colors."""
        assert get_category_style("AWS::EC2::Instance") == CATEGORY_COLORS[ResourceCategory.COMPUTE]
        assert get_category_style("AWS::S3::Bucket") == CATEGORY_COLORS[ResourceCategory.OTHER]

    def test_depends_on_is_dashed(self):
        """Ordering hints are dashed, references solid."""
        assert EDGE_STYLES["DependsOn"]["style"] == "dashed"
        assert get_edge_style("Ref")["style"] == "solid"

    def test_unknown_edge_kind_fallback(self):
        """Unknown edge kinds keep their name as label."""
        assert get_edge_style("Other")["label"] == "Other"


class TestResourceCatalogue:
    """Tests for the resource type catalogue."""

    def test_instance_attributes(self):
        """Instance entry lists PublicIp and compute category."""
        info = get_resource_type("AWS::EC2::Instance")

        assert info is not None
        assert "PublicIp" in info.attributes
        assert info.category == ResourceCategory.COMPUTE

    def test_iam_types_count_as_security(self):
        """Uncatalogued IAM types fall under Security."""
        assert get_category("AWS::IAM::Role") == ResourceCategory.SECURITY
        assert get_category("AWS::S3::Bucket") == ResourceCategory.OTHER

    def test_list_filtered_by_category(self):
        """Filtering by Security returns the security group."""
        types = list_resource_types(ResourceCategory.SECURITY)

        assert [t["type"] for t in types] == ["AWS::EC2::SecurityGroup"]

    def test_list_all(self):
        """Unfiltered listing returns every type."""
        assert len(list_resource_types()) == len(RESOURCE_TYPES)
