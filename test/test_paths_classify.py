"""Tests for archive views, path resolution and layer classification."""

import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from odbgeom.archive import DirectoryArchive, MemoryArchive, normalize_path, open_archive
from odbgeom.classify import classify, layer_color
from odbgeom.errors import NotFound
from odbgeom.geometry_model import LayerType, Side
from odbgeom.paths import PathResolver, basename


def _resolver(files, directories=()):
    return PathResolver(MemoryArchive(files, directories))


class TestArchive(unittest.TestCase):
    """Test the archive views."""

    def test_normalize_path(self):
        self.assertEqual(normalize_path("./a\\b/c"), "a/b/c")
        self.assertEqual(normalize_path("/steps/"), "steps/")

    def test_memory_archive(self):
        archive = MemoryArchive({"a/b.txt": "hello", "a/c/": b""})
        self.assertEqual(archive.read_bytes("a/b.txt"), b"hello")
        self.assertTrue(archive.is_directory("a/c"))
        self.assertTrue(archive.is_directory("a/c/"))
        self.assertFalse(archive.is_directory("a/b.txt"))
        with self.assertRaises(NotFound):
            archive.read_bytes("a/missing")
        with self.assertRaises(NotFound):
            archive.read_bytes("a/c/")

    def test_directory_archive(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "steps" / "pcb").mkdir(parents=True)
            (root / "steps" / "pcb" / "profile").write_text("OB 0 0\n")
            archive = DirectoryArchive(root)
            self.assertIn("steps/pcb/profile", archive.list_paths())
            self.assertIn("steps/", archive.list_paths())
            self.assertTrue(archive.is_directory("steps/pcb"))
            self.assertEqual(archive.read_bytes("steps/pcb/profile"), b"OB 0 0\n")
            with self.assertRaises(NotFound):
                archive.read_bytes("steps/pcb/missing")

    def test_open_archive_errors(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(NotFound):
                open_archive(Path(tmpdir) / "nope.tgz")
            other = Path(tmpdir) / "board.rar"
            other.write_bytes(b"")
            with self.assertRaises(ValueError):
                open_archive(other)

    def test_open_corrupt_archives(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            for name in ("board.zip", "board.tgz", "board.tar.gz"):
                broken = Path(tmpdir) / name
                broken.write_bytes(b"this is not an archive")
                with self.assertRaises(ValueError, msg=name):
                    open_archive(broken)


class TestPathResolver(unittest.TestCase):
    """Test directory discovery inside archives."""

    FILES = {
        "job/steps/pcb/layers/top/features": "C 0 0 1",
        "job/steps/pcb/layers/bot/features": "C 0 0 1",
        "job/steps/pcb/profile": "OB 0 0",
        "job/misc/info": "UNITS=MM",
    }

    def test_directories_synthesized(self):
        dirs = _resolver(self.FILES).directories()
        for d in ("job/", "job/steps/", "job/steps/pcb/", "job/steps/pcb/layers/",
                  "job/steps/pcb/layers/top/", "job/misc/"):
            self.assertIn(d, dirs)

    def test_find_directory(self):
        resolver = _resolver(self.FILES)
        self.assertEqual(resolver.find_directory("job/steps"), "job/steps/")
        self.assertEqual(resolver.find_directory("steps"), "job/steps/")
        self.assertIsNone(resolver.find_directory("steps", partial=False))
        self.assertEqual(resolver.find_directory("x/misc"), "job/misc/")
        self.assertIsNone(resolver.find_directory("nothing"))
        self.assertIsNone(resolver.find_directory(""))

    def test_step_and_layers(self):
        resolver = _resolver(self.FILES)
        steps = resolver.find_steps_directory()
        self.assertEqual(steps, "job/steps/")
        step = resolver.find_step_directory(steps)
        self.assertEqual(step, "job/steps/pcb/")
        layers = resolver.find_layers_directory(step)
        self.assertEqual(layers, "job/steps/pcb/layers/")
        self.assertEqual(resolver.list_subdirectories(layers),
                         ["job/steps/pcb/layers/top/", "job/steps/pcb/layers/bot/"])

    def test_step_prefers_pcb(self):
        resolver = _resolver({
            "steps/panel/layers/top/features": "",
            "steps/pcb1/layers/top/features": "",
        })
        self.assertEqual(resolver.find_step_directory("steps/"), "steps/pcb1/")

    def test_step_defaults_to_first(self):
        resolver = _resolver({
            "steps/alpha/layers/top/features": "",
            "steps/beta/layers/top/features": "",
        })
        self.assertEqual(resolver.find_step_directory("steps/"), "steps/alpha/")

    def test_subdirectories_take_every_first_segment(self):
        resolver = _resolver({"a/readme": "", "a/b/c": ""}, directories=["a/empty/"])
        self.assertEqual(sorted(resolver.list_subdirectories("a")),
                         ["a/b/", "a/empty/", "a/readme/"])

    def test_layer_file_found_by_name(self):
        resolver = _resolver({"layers/top_copper.txt": "C 0 0 1"})
        self.assertEqual(resolver.list_subdirectories("layers"), ["layers/top_copper.txt/"])
        self.assertEqual(resolver.find_files("layers/top_copper.txt/"), ["layers/top_copper.txt"])

    def test_find_files(self):
        resolver = _resolver({
            "layers/top/features": "",
            "layers/top/attrlist": "",
            "layers/bot/blob.bin": "",
        })
        self.assertEqual(resolver.find_files("layers/top/"), ["layers/top/features"])
        self.assertEqual(resolver.find_files("layers/bot/"), ["layers/bot/blob.bin"])

    def test_find_files_by_name_elsewhere(self):
        resolver = _resolver({"export/silk_top.txt": "", "layers/silk_top/": b""})
        self.assertEqual(resolver.find_files("layers/silk_top/"), ["export/silk_top.txt"])

    def test_any_layers_directory(self):
        resolver = _resolver({"export/layers/top_copper/features": ""})
        self.assertIsNone(resolver.find_steps_directory())
        self.assertEqual(resolver.find_any_layers_directory(), "export/layers/")

    def test_find_profile_file(self):
        self.assertEqual(_resolver(self.FILES).find_profile_file(), "job/steps/pcb/profile")

    def test_profile_directory(self):
        resolver = _resolver({
            "steps/pcb/profile/attrlist": "",
            "steps/pcb/profile/features": "",
        })
        self.assertEqual(resolver.find_profile_file(), "steps/pcb/profile/features")

    def test_profile_anywhere(self):
        resolver = _resolver({"data/board_outline.txt": "", "layers/top/features": ""})
        self.assertEqual(resolver.find_profile_file(), "data/board_outline.txt")
        self.assertIsNone(_resolver({"layers/top/features": ""}).find_profile_file())

    def test_basename(self):
        self.assertEqual(basename("a/b/c/"), "c")
        self.assertEqual(basename("a/b/c"), "c")
        self.assertEqual(basename(""), "")


class TestClassify(unittest.TestCase):
    """Test layer name classification."""

    def test_exact_overrides(self):
        self.assertEqual(classify("l1"), (LayerType.COPPER, Side.TOP))
        self.assertEqual(classify("l4"), (LayerType.COPPER, Side.BOTTOM))
        self.assertEqual(classify("sig2"), (LayerType.COPPER, Side.INTERNAL))
        self.assertEqual(classify("TOPSILK"), (LayerType.SILKSCREEN, Side.TOP))
        self.assertEqual(classify("soldermask_bottom"), (LayerType.SOLDER_MASK, Side.BOTTOM))
        self.assertEqual(classify("drill"), (LayerType.DRILL, Side.BOTH))

    def test_keyword_rules(self):
        cases = {
            "signal_top": (LayerType.COPPER, Side.TOP),
            "signal_bot": (LayerType.COPPER, Side.BOTTOM),
            "l2_inner": (LayerType.COPPER, Side.INTERNAL),
            "mask.top": (LayerType.SOLDER_MASK, Side.TOP),
            "silk_bot": (LayerType.SILKSCREEN, Side.BOTTOM),
            "paste_top": (LayerType.PASTE, Side.TOP),
            "keepout": (LayerType.KEEPOUT, Side.BOTH),
            "comp_+_bot": (LayerType.OTHER, Side.BOTTOM),
            "xyz": (LayerType.OTHER, Side.BOTH),
        }
        for name, expected in cases.items():
            self.assertEqual(classify(name), expected, name)

    def test_colors(self):
        self.assertEqual(layer_color(LayerType.COPPER, Side.TOP), "#c87137")
        self.assertEqual(layer_color(LayerType.COPPER, Side.BOTTOM), "#b36530")
        self.assertEqual(layer_color(LayerType.DRILL, Side.BOTH), "#000000")
        self.assertEqual(layer_color(LayerType.OTHER, Side.BOTH), "#888888")


if __name__ == "__main__":
    unittest.main()
