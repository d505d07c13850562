"""Layout hints and directives for PlantUML template diagrams."""
from typing import Literal

LayoutDirection = Literal["top_to_bottom", "left_to_right"]
LayoutEngine = Literal["graphviz", "smetana", "elk"]


def get_layout_directive(layout: LayoutDirection) -> str:
    """Get PlantUML layout directive for diagram direction."""
    if layout == "left_to_right":
        return "left to right direction"
    return "top to bottom direction"


def get_skinparam_base(font: str = "Arial") -> str:
    """Get base skinparam styling for template diagrams.

    Args:
        font: Font family name

    Returns:
        PlantUML skinparam block
    """
    return f"""
skinparam defaultFontName {font}
skinparam defaultFontSize 11
skinparam shadowing false
skinparam roundcorner 6

skinparam package {{
    FontStyle bold
    FontSize 12
}}

skinparam rectangle {{
    BackgroundColor #FFFFFF
    BorderColor #232F3E
    FontSize 10
}}

skinparam arrow {{
    Color #546E7A
    FontSize 9
}}
""".strip()


def get_layout_engine_config(engine: LayoutEngine) -> str:
    """Get PlantUML pragma for a layout engine (empty for graphviz)."""
    if engine == "smetana":
        return "!pragma layout smetana"
    elif engine == "elk":
        return "!pragma layout elk"
    return ""


def get_legend_block() -> str:
    """Get legend block explaining edge styles."""
    return """
legend right
  |= Edge |= Meaning |
  | <color:#546E7A>━━━</color> | Ref (identifier) |
  | <color:#0066CC>━━━</color> | GetAtt (attribute) |
  | <color:#E67E22>- - -</color> | DependsOn (ordering hint) |
endlegend
""".strip()
