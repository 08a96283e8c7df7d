"""Tests for board profile extraction and edge stitching."""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from odbgeom.errors import DiagnosticKind
from odbgeom.geometry_model import DEFAULT_PROFILE_SIZE, Line, Point
from odbgeom.profile import ProfileExtractor, parse_profile, stitch_segments


class TestStitching(unittest.TestCase):
    """Test chaining loose outline edges into a loop."""

    def test_square_any_order(self):
        edges = [
            Line(Point(0, 0), Point(10, 0)),
            Line(Point(10, 10), Point(0, 10)),
            Line(Point(10, 0), Point(10, 10)),
            Line(Point(0, 10), Point(0, 0)),
        ]
        polygon = stitch_segments(edges)
        self.assertEqual(polygon.points,
                         [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)])

    def test_reversed_edges(self):
        edges = [
            Line(Point(0, 0), Point(10, 0)),
            Line(Point(0, 10), Point(10, 10)),
            Line(Point(0, 0), Point(0, 10)),
            Line(Point(10, 10), Point(10, 0)),
        ]
        polygon = stitch_segments(edges)
        self.assertEqual(len(polygon.points), 4)
        self.assertEqual(polygon.points[2], Point(10, 10))

    def test_tolerance(self):
        edges = [
            Line(Point(0, 0), Point(10, 0)),
            Line(Point(10.0005, 0), Point(10, 10)),
            Line(Point(10, 10), Point(0, 0.0004)),
        ]
        self.assertEqual(len(stitch_segments(edges).points), 3)
        self.assertIsNone(stitch_segments(edges, tolerance=1e-6))

    def test_too_few_edges(self):
        self.assertIsNone(stitch_segments([]))
        self.assertIsNone(stitch_segments([Line(Point(0, 0), Point(1, 0))]))


class TestProfileExtractor(unittest.TestCase):
    """Test the three outline encodings and the default board."""

    def test_stitched_lines(self):
        text = "L 0 0 10 0\nL 10 10 0 10\nL 10 0 10 10\nL 0 10 0 0\n"
        profile = parse_profile(text)
        self.assertEqual(len(profile.outline), 1)
        self.assertEqual(len(profile.outline[0].points), 4)
        self.assertEqual(profile.width, 10)
        self.assertEqual(profile.height, 10)
        self.assertFalse(profile.is_default)

    def test_semicolon_polygon(self):
        profile = parse_profile("P 0 0 100 0 100 50 0 50;\n")
        self.assertEqual(len(profile.outline), 1)
        self.assertEqual(profile.outline[0].points[0], profile.outline[0].points[-1])
        self.assertEqual((profile.width, profile.height), (100, 50))

    def test_polygon_over_several_lines(self):
        profile = parse_profile("P 0 0 20 0\n20 30\n0 30;\n")
        self.assertEqual(len(profile.outline[0].points), 5)
        self.assertEqual((profile.width, profile.height), (20, 30))

    def test_unterminated_polygon_dropped(self):
        extractor = ProfileExtractor()
        profile = extractor.parse("P 0 0 100 0 100 50 0 50\n")
        self.assertTrue(profile.is_default)
        self.assertEqual([d.kind for d in extractor.diagnostics],
                         [DiagnosticKind.MALFORMED_RECORD, DiagnosticKind.EMPTY_RESULT])

    def test_stray_pad_does_not_swallow_edges(self):
        text = ("P 1 1 $1 0\n"
                "L 0 0 10 0\nL 10 0 10 10\nL 10 10 0 10\nL 0 10 0 0\n")
        extractor = ProfileExtractor()
        profile = extractor.parse(text)
        self.assertEqual(len(profile.outline), 1)
        self.assertEqual(len(profile.outline[0].points), 4)
        self.assertEqual((profile.width, profile.height), (10, 10))
        self.assertEqual([d.kind for d in extractor.diagnostics],
                         [DiagnosticKind.MALFORMED_RECORD])

    def test_contour_outside_surface(self):
        profile = parse_profile("OB 0 0\nOS 100 0\nOS 100 80\nOS 0 80\nOE\n")
        self.assertEqual(len(profile.outline), 1)
        self.assertEqual((profile.width, profile.height), (100, 80))

    def test_surface_contour(self):
        text = "# profile\nS P 0\nOB 5 5\nOS 55 5\nOS 55 35\nOS 5 35\nOE\nSE\n"
        profile = parse_profile(text)
        self.assertEqual(len(profile.outline), 1)
        self.assertEqual(profile.min, Point(5, 5))
        self.assertEqual(profile.max, Point(55, 35))
        self.assertEqual((profile.width, profile.height), (50, 30))

    def test_arc_edges(self):
        text = "L -10 0 10 0\nA 10 0 -10 0 0 0\n"
        profile = parse_profile(text)
        self.assertEqual(len(profile.outline), 1)
        self.assertAlmostEqual(profile.width, 20)
        self.assertAlmostEqual(profile.height, 10)

    def test_empty_profile_uses_default(self):
        extractor = ProfileExtractor(source="steps/pcb/profile")
        profile = extractor.parse("")
        self.assertTrue(profile.is_default)
        self.assertEqual((profile.width, profile.height), DEFAULT_PROFILE_SIZE)
        self.assertEqual(len(profile.outline), 1)
        self.assertEqual([d.kind for d in extractor.diagnostics], [DiagnosticKind.EMPTY_RESULT])
        self.assertEqual(extractor.diagnostics[0].source, "steps/pcb/profile")

    def test_unconnected_edges_reported(self):
        text = ("L 0 0 10 0\nL 10 0 10 10\nL 10 10 0 10\nL 0 10 0 0\n"
                "L 100 100 200 200\n")
        extractor = ProfileExtractor()
        profile = extractor.parse(text)
        self.assertEqual(len(profile.outline[0].points), 4)
        self.assertEqual([d.kind for d in extractor.diagnostics],
                         [DiagnosticKind.MALFORMED_RECORD])
        # Stray edges still count towards the bounds
        self.assertEqual(profile.max, Point(200, 200))

    def test_bounds_cover_every_outline_point(self):
        profile = parse_profile("P 0 0 40 0 40 20 0 20;\nS P 0\nOB -5 -5\nOS 5 -5\nOS 5 5\nOE\nSE\n")
        self.assertEqual(len(profile.outline), 2)
        for polygon in profile.outline:
            for p in polygon.points:
                self.assertTrue(profile.min.x <= p.x <= profile.max.x)
                self.assertTrue(profile.min.y <= p.y <= profile.max.y)
        self.assertEqual(profile.min, Point(-5, -5))


if __name__ == "__main__":
    unittest.main()
