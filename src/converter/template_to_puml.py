"""Convert a CloudFormation template document to PlantUML source.

Resources are grouped into category packages (Network, Security,
Compute, Other). Parameters and outputs are drawn around them, and every
reference or ordering hint becomes an edge.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from ..models import ReferenceKind, ResourceCategory, get_category
from .layout_hints import (
    LayoutDirection,
    LayoutEngine,
    get_layout_directive,
    get_layout_engine_config,
    get_legend_block,
    get_skinparam_base,
)
from .sprites import CATEGORY_COLORS, get_edge_style, get_resource_style

if TYPE_CHECKING:
    from ..models import CfnTemplate, ResourceDeclaration


def escape_label(text: str) -> str:
    """Make free text safe inside a one-line PlantUML label or title.

    Line breaks become the ``\\n`` escape so no part of the text can start
    a new directive line, and double quotes are replaced with their
    Unicode escape so they cannot close a quoted label.
    """
    lines = str(text).strip().splitlines()
    return "\\n".join(line.rstrip() for line in lines).replace('"', "<U+0022>")


class TemplateToPumlConverter:
    """Converts a template document to PlantUML source code.

    Output is deterministic: packages follow category order and elements
    follow document order.
    """

    def __init__(
        self,
        template: CfnTemplate,
        layout: LayoutDirection = "top_to_bottom",
        layout_engine: LayoutEngine = "graphviz",
        show_parameters: bool = True,
        show_outputs: bool = True,
        show_legend: bool = True,
        font: str = "Arial",
    ):
        """Initialize converter.

        Args:
            template: Template document to convert
            layout: Layout direction (top_to_bottom, left_to_right)
            layout_engine: Layout engine (graphviz, smetana, elk)
            show_parameters: Whether to draw parameters and edges to them
            show_outputs: Whether to draw outputs and edges from them
            show_legend: Whether to include the edge legend
            font: Font family name
        """
        self.template = template
        self.layout = layout
        self.layout_engine = layout_engine
        self.show_parameters = show_parameters
        self.show_outputs = show_outputs
        self.show_legend = show_legend
        self.font = font

        self._parameter_names = {p.name for p in template.parameters}

    def convert(self) -> str:
        """Convert template to PlantUML source."""
        lines: list[str] = ["@startuml", ""]


        engine_config = get_layout_engine_config(self.layout_engine)
        if engine_config:
            lines.append(engine_config)
            lines.append("")

        lines.append(f"title {escape_label(self.template.description or 'CloudFormation template')}")
        lines.append("")
        lines.append(get_layout_directive(self.layout))
        lines.append("")
        lines.append(get_skinparam_base(self.font))
        lines.append("")

        if self.show_parameters and self.template.parameters:
            lines.extend(self._render_parameters())

        lines.extend(self._render_resources())

        if self.show_outputs and self.template.outputs:
            lines.extend(self._render_outputs())

        lines.extend(self._render_edges())
        lines.append("")

        if self.show_legend:
            lines.append(get_legend_block())
            lines.append("")

        lines.append("@enduml")
        return "\n".join(lines)

    def _render_parameters(self) -> list[str]:
        lines = ['package "Parameters" as pkg_parameters #ECEFF1 {']
        for parameter in self.template.parameters:
            label = f"{parameter.name}\\n{parameter.type}"
            if parameter.default is not None and not parameter.no_echo:
                label += f"\\ndefault: {escape_label(parameter.default)}"
            lines.append(f'  rectangle "{label}" as param_{parameter.name} <<Parameter>>')
        lines.append("}")
        lines.append("")
        return lines

    def _render_resources(self) -> list[str]:
        lines: list[str] = []
        for category in ResourceCategory:
            members = [r for r in self.template.resources if get_category(r.type) == category]
            if not members:
                continue
            colors = CATEGORY_COLORS[category]
            lines.append(
                f'package "{category.value}" as pkg_{category.name.lower()} {colors["background"]} {{'
            )
            for resource in members:
                lines.append(self._render_resource(resource))
            lines.append("}")
            lines.append("")
        return lines

    def _render_resource(self, resource: ResourceDeclaration) -> str:
        style = get_resource_style(resource.type)
        label = f"{resource.name}\\n{resource.type}"
        return (
            f'  {style["shape"]} "{label}" as {resource.name} '
            f'{style["stereotype"]} {style["color"]}'
        )

    def _render_outputs(self) -> list[str]:
        lines = ['package "Outputs" as pkg_outputs #ECEFF1 {']
        for output in self.template.outputs:
            lines.append(f'  card "{escape_label(output.name)}" as out_{output.name} <<Output>>')
        lines.append("}")
        lines.append("")
        return lines

    def _render_edges(self) -> list[str]:
        lines = ["' References and ordering hints"]

        for edge in self.template.dependency_edges():
            lines.append(self._edge(edge.source, edge.target, edge.kind))

        if self.show_parameters:
            for resource in self.template.resources:
                seen: set[str] = set()
                for reference in resource.references():
                    if reference.target in self._parameter_names and reference.target not in seen:
                        seen.add(reference.target)
                        lines.append(self._edge(resource.name, f"param_{reference.target}", "Ref"))

        if self.show_outputs:
            resource_names = {r.name for r in self.template.resources}
            for output in self.template.outputs:
                seen = set()
                for reference in output.references():
                    if reference.target in resource_names and reference.target not in seen:
                        seen.add(reference.target)
                        kind = "GetAtt" if reference.kind == ReferenceKind.GET_ATT else "Ref"
                        lines.append(self._edge(f"out_{output.name}", reference.target, kind))

        return lines

    def _edge(self, source: str, target: str, kind: str) -> str:
        style = get_edge_style(kind)
        link_style = f'[{style["color"]}'
        if style["style"] == "dashed":
            link_style += ",dashed"
        link_style += "]"
        return f'{source} -{link_style}-> {target} : "{style["label"]}"'

    def get_element_count(self) -> int:
        """Number of drawn elements (resources, plus parameters/outputs when shown)."""
        count = len(self.template.resources)
        if self.show_parameters:
            count += len(self.template.parameters)
        if self.show_outputs:
            count += len(self.template.outputs)
        return count
