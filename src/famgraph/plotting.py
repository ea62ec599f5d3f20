"""Visualization functions for laid-out family trees."""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
from matplotlib.patches import Circle
import pydot

from famgraph.models import LayoutGraph, PersonNode

SEX_COLORS = {"M": "lightblue", "F": "lightpink"}
DEFAULT_COLOR = "lightgray"
SPOUSE_COLOR = "#b08e51"
LINE_COLOR = "darkgray"
NODE_RADIUS = 40
POINTS_PER_INCH = 72


def node_caption(node: PersonNode) -> str:
    """Name plus birth-death years, e.g. "Ann Smith\\n1920-1990"."""
    birth = str(node.year) if node.year is not None else ""
    death = str(node.death_year) if node.death_year is not None else ""
    years = f"{birth}-{death}" if birth or death else ""
    return f"{node.label}\n{years}" if years else node.label


def plot_layout(layout: LayoutGraph, output_path: Path | None = None):
    """
    Draw a LayoutGraph with the coordinates computed by famgraph.layout.

    Args:
        layout: Result of famgraph.layout.layout
        output_path: Image path (PNG, SVG or PDF by extension). If None, the
            figure is returned without saving.

    Returns:
        The matplotlib Figure
    """
    width = max(layout.width, 1.0)
    height = max(layout.height, 1.0)
    fig, ax = plt.subplots(figsize=(width / POINTS_PER_INCH, height / POINTS_PER_INCH))
    ax.set_xlim(0, width)
    # Screen coordinates grow downwards
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.axis("off")

    # Add edges
    for edge in layout.edges:
        xs = [p.x for p in edge.path]
        ys = [p.y for p in edge.path]
        if edge.type == "spouse":
            ax.plot(xs, ys, color=SPOUSE_COLOR, linewidth=2, zorder=1)
        else:
            ax.plot(xs, ys, color=LINE_COLOR, linewidth=1.5, zorder=1)

    # Add nodes
    for node in layout.nodes:
        if node.x is None or node.y is None:
            continue
        ax.add_patch(
            Circle(
                (node.x, node.y),
                NODE_RADIUS,
                facecolor=SEX_COLORS.get(node.sex, DEFAULT_COLOR),
                edgecolor="dimgray",
                linestyle="--" if node.is_placeholder else "-",
                zorder=2,
            )
        )
        ax.text(node.x, node.y, node_caption(node), ha="center", va="center", fontsize=7, zorder=3)

    if output_path:
        fig.savefig(output_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        print(f"Graph saved to {output_path}")
    return fig


def to_dot(layout: LayoutGraph) -> pydot.Dot:
    """
    Export a LayoutGraph as DOT with pinned node positions.

    Render with Graphviz's neato in no-layout mode (`neato -n2`) so the
    computed coordinates are kept.
    """
    P = pydot.Dot(graph_type="graph")
    P.set("splines", "false")
    P.set("outputorder", "edgesfirst")

    for node in layout.nodes:
        if node.x is None or node.y is None:
            continue
        P.add_node(
            pydot.Node(
                f'"{node.id}"',
                label='"{}"'.format(node_caption(node).replace('"', "'").replace("\n", "\\n")),
                shape="circle",
                style="filled,dashed" if node.is_placeholder else "filled",
                fillcolor=SEX_COLORS.get(node.sex, DEFAULT_COLOR),
                fontsize="10",
                width=str(2 * NODE_RADIUS / POINTS_PER_INCH),
                fixedsize="true",
                # Graphviz y axis points up
                pos=f'"{node.x:.1f},{layout.height - node.y:.1f}!"',
            )
        )

    for edge in layout.edges:
        if edge.type == "spouse":
            P.add_edge(pydot.Edge(f'"{edge.source}"', f'"{edge.target}"', color=f'"{SPOUSE_COLOR}"', penwidth="2"))
        else:
            # One straight line per parent: DOT has no notion of the shared elbow
            child = layout.node(edge.target)
            for parent_id in child.parent_ids if child else []:
                P.add_edge(pydot.Edge(f'"{parent_id}"', f'"{edge.target}"', color=LINE_COLOR))

    return P
