"""Tests for the geometry projector and the SVG / matplotlib renderers."""

import sys
import tempfile
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import matplotlib
matplotlib.use("Agg")
from matplotlib.figure import Figure

from odbgeom.geometry_model import (
    BoardProfile, Circle, Layer, LayerType, Line, Point, Polygon, Side, TextLabel,
    default_profile,
)
from odbgeom.mpl_render import render_figure, save_figure
from odbgeom.projector import (
    Canvas, DrawCircle, DrawLine, DrawPolygon, compute_bbox, fit_transform,
    order_layers, project,
)
from odbgeom.svg_writer import SVG_NS, render_layer_svgs, render_svg, write_svg

NS = {"svg": SVG_NS}


def _layer(name, kind=LayerType.COPPER, side=Side.TOP, **kwargs):
    return Layer(name=name, kind=kind, side=side, color="#123456", **kwargs)


def _sample_layers():
    copper = _layer("top", lines=[Line(Point(0, 0), Point(10, 0), 0.5)],
                    circles=[Circle(Point(5, 5), 1)])
    silk = _layer("silk", LayerType.SILKSCREEN,
                  texts=[TextLabel(Point(2, 8), "U1", 1)])
    outline = _layer("edge", LayerType.OUTLINE, Side.BOTH,
                     polygons=[Polygon([Point(-1, -1), Point(11, -1), Point(11, 9), Point(-1, -1)])])
    return [silk, copper, outline]


class TestProjector(unittest.TestCase):
    """Test scaling and ordering."""

    def test_layer_order(self):
        layers = [
            _layer("misc", LayerType.OTHER),
            _layer("drill", LayerType.DRILL),
            _layer("silk", LayerType.SILKSCREEN),
            _layer("cu1"),
            _layer("edge", LayerType.OUTLINE),
            _layer("cu2"),
            _layer("mask", LayerType.SOLDER_MASK),
            _layer("paste", LayerType.PASTE),
        ]
        names = [l.name for l in order_layers(layers)]
        self.assertEqual(names, ["edge", "cu1", "cu2", "mask", "silk", "paste", "drill", "misc"])

    def test_invisible_layers_skipped(self):
        hidden = _layer("hidden", circles=[Circle(Point(1000, 1000), 1)])
        hidden.visible = False
        projection = project([hidden] + _sample_layers())
        self.assertNotIn("hidden", [d.name for d in projection.layers])
        self.assertEqual(len(projection.layers), 3)

    def test_bbox_fits_canvas(self):
        canvas = Canvas(400, 300, 10)
        projection = project(_sample_layers(), canvas=canvas)
        for cmd in projection.commands():
            if isinstance(cmd, DrawLine):
                xs, ys = [cmd.x1, cmd.x2], [cmd.y1, cmd.y2]
            elif isinstance(cmd, DrawCircle):
                xs, ys = [cmd.cx - cmd.r, cmd.cx + cmd.r], [cmd.cy - cmd.r, cmd.cy + cmd.r]
            elif isinstance(cmd, DrawPolygon):
                xs, ys = [p[0] for p in cmd.points], [p[1] for p in cmd.points]
            else:
                xs, ys = [cmd.x], [cmd.y]
            for x in xs:
                self.assertTrue(10 - 1e-9 <= x <= 390 + 1e-9, x)
            for y in ys:
                self.assertTrue(10 - 1e-9 <= y <= 290 + 1e-9, y)

    def test_uniform_scale(self):
        projection = project([_layer("top", lines=[Line(Point(0, 0), Point(10, 0), 0.5)],
                                     circles=[Circle(Point(0, 10), 2)])])
        scale = projection.transform.scale
        line, circle = projection.layers[0].commands
        self.assertAlmostEqual(line.width, 0.5 * scale)
        self.assertAlmostEqual(circle.r, 2 * scale)
        self.assertAlmostEqual(line.x2 - line.x1, 10 * scale)

    def test_profile_is_centred(self):
        profile = BoardProfile(outline=[Polygon([Point(0, 0), Point(100, 0), Point(100, 50)])],
                               min=Point(0, 0), max=Point(100, 50))
        projection = project([], profile, Canvas(800, 600, 20))
        t = projection.transform
        self.assertAlmostEqual(t.scale, 7.6)
        self.assertAlmostEqual(t.offset_x, 20)
        self.assertAlmostEqual(t.offset_y, 110)
        self.assertEqual(len(projection.outline), 1)
        x, y = projection.outline[0].points[1]
        self.assertAlmostEqual(x, 780)
        self.assertAlmostEqual(y, 110)

    def test_empty_input(self):
        lo, hi = compute_bbox([])
        self.assertEqual((lo, hi), (Point(0, 0), Point(100, 100)))
        projection = project([])
        self.assertAlmostEqual(projection.transform.scale, 5.6)
        self.assertEqual(projection.layers, [])

    def test_degenerate_profile_falls_back(self):
        flat = BoardProfile(min=Point(0, 0), max=Point(50, 0))
        layers = [_layer("top", lines=[Line(Point(0, 0), Point(10, 10), 1)])]
        projection = project(layers, flat, Canvas(100, 100, 0))
        self.assertAlmostEqual(projection.transform.scale, 10)

    def test_single_point(self):
        t = fit_transform(Point(5, 5), Point(5, 5), Canvas(100, 100, 10))
        self.assertEqual(t.scale, 1.0)
        self.assertEqual(t.apply(Point(5, 5)), (10, 10))

    def test_text_bbox(self):
        lo, hi = compute_bbox([_layer("silk", texts=[TextLabel(Point(0, 10), "AB", 5)])])
        self.assertEqual(lo, Point(0, 5))
        self.assertAlmostEqual(hi.x, 6)
        self.assertEqual(hi.y, 10)


class TestSvgWriter(unittest.TestCase):
    """Test SVG output."""

    def test_svg_is_well_formed(self):
        projection = project(_sample_layers(), default_profile())
        root = ET.fromstring(render_svg(projection))
        self.assertEqual(root.tag, f"{{{SVG_NS}}}svg")
        groups = root.findall("svg:g", NS)
        self.assertEqual([g.get("id") for g in groups],
                         ["layer-edge", "layer-top", "layer-silk"])
        self.assertEqual(len(root.findall("svg:polygon[@data-type='board-outline']", NS)), 1)
        top = groups[1]
        self.assertEqual(len(top.findall("svg:line", NS)), 1)
        self.assertEqual(len(top.findall("svg:circle", NS)), 1)
        self.assertEqual(groups[2].find("svg:text", NS).text, "U1")

    def test_no_background(self):
        root = ET.fromstring(render_svg(project([]), background=None))
        self.assertIsNone(root.find("svg:rect", NS))

    def test_layer_svgs_and_file(self):
        svgs = render_layer_svgs(_sample_layers(), default_profile())
        self.assertEqual(sorted(svgs), ["edge", "silk", "top"])
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "board.svg"
            write_svg(project(_sample_layers()), out)
            ET.parse(out)


class TestMatplotlibRender(unittest.TestCase):
    """Test figure output."""

    def test_render_figure(self):
        projection = project(_sample_layers(), default_profile(), Canvas(400, 300, 10))
        fig = render_figure(projection, dpi=100)
        self.assertIsInstance(fig, Figure)
        width, height = fig.get_size_inches()
        self.assertAlmostEqual(width, 4)
        self.assertAlmostEqual(height, 3)
        ax = fig.axes[0]
        self.assertEqual(ax.get_ylim(), (300, 0))
        # outline polygon, pad circle, board edge polygon
        self.assertEqual(len(ax.patches), 3)
        self.assertEqual(len(ax.collections), 1)
        self.assertEqual(len(ax.texts), 1)

    def test_save_figure(self):
        projection = project(_sample_layers())
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "board.png"
            save_figure(projection, out)
            self.assertTrue(out.exists())
            self.assertGreater(out.stat().st_size, 0)


if __name__ == "__main__":
    unittest.main()
