"""Raster / vector figure output through matplotlib.

Draws a Projection onto a matplotlib Figure whose axes span the whole
canvas, one canvas unit per pixel, y growing downward like the SVG
output. pyplot is not used, so no GUI backend is needed.
"""

import logging

from matplotlib.collections import LineCollection
from matplotlib.figure import Figure
from matplotlib.patches import Circle, Polygon

from .projector import DrawCircle, DrawLine, DrawPolygon, DrawText, Projection

log = logging.getLogger(__name__)

DEFAULT_DPI = 100
DEFAULT_BACKGROUND = "#2b2b2b"


def _points_to_pt(pixels: float, dpi: float) -> float:
    """Canvas pixels to matplotlib points (line widths, font sizes)."""
    return pixels * 72.0 / dpi


def _draw_commands(ax, commands, dpi, zorder):
    segments = []
    widths = []
    colors = []
    for cmd in commands:
        if isinstance(cmd, DrawLine):
            segments.append([(cmd.x1, cmd.y1), (cmd.x2, cmd.y2)])
            widths.append(_points_to_pt(cmd.width, dpi))
            colors.append(cmd.color)
        elif isinstance(cmd, DrawCircle):
            ax.add_patch(Circle((cmd.cx, cmd.cy), cmd.r, facecolor=cmd.color,
                                edgecolor="none", zorder=zorder))
        elif isinstance(cmd, DrawPolygon):
            if len(cmd.points) >= 3:
                ax.add_patch(Polygon(cmd.points, closed=True, facecolor=cmd.color,
                                     edgecolor="none", zorder=zorder))
        elif isinstance(cmd, DrawText):
            ax.text(cmd.x, cmd.y, cmd.content, color=cmd.color,
                    fontsize=_points_to_pt(cmd.size, dpi), family="monospace",
                    va="baseline", ha="left", zorder=zorder)
    if segments:
        ax.add_collection(LineCollection(segments, linewidths=widths, colors=colors,
                                         capstyle="round", zorder=zorder))


def render_figure(projection: Projection, dpi: int = DEFAULT_DPI,
                  background: str = DEFAULT_BACKGROUND) -> Figure:
    canvas = projection.canvas
    fig = Figure(figsize=(canvas.width / dpi, canvas.height / dpi), dpi=dpi)
    fig.patch.set_facecolor(background)
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_facecolor(background)
    ax.set_xlim(0, canvas.width)
    ax.set_ylim(canvas.height, 0)
    ax.axis("off")

    for poly in projection.outline:
        if len(poly.points) >= 2:
            ax.add_patch(Polygon(poly.points, closed=True, fill=False,
                                 edgecolor=poly.color, linewidth=_points_to_pt(1, dpi),
                                 zorder=1))

    for i, drawing in enumerate(projection.layers):
        _draw_commands(ax, drawing.commands, dpi, zorder=2 + i)

    return fig


def save_figure(projection: Projection, path, dpi: int = DEFAULT_DPI,
                background: str = DEFAULT_BACKGROUND):
    """Render and save; the format follows the file extension (.png, .pdf, .svg)."""
    fig = render_figure(projection, dpi, background)
    fig.savefig(path, dpi=dpi, facecolor=fig.get_facecolor())
    log.info("Wrote figure: %s", path)
