"""ODB++ archive geometry parser.

Reads an ODB++ archive (.tgz, .zip, extracted directory, or any
ArchiveView) and produces a ParseResult: one Layer per layer directory
plus the board profile.

ODB++ structure used:
  misc/info                           - Job metadata (units, job name)
  steps/<step>/profile                - Board outline
  steps/<step>/layers/<layer>/features - Per-layer feature stream
Layer files may also be .xml or .json exports. Exported trees do not
always follow that layout, so every lookup goes through PathResolver and
falls back to wider searches.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from .alt_formats import parse_json_features, parse_xml_features
from .archive import ArchiveView, open_archive
from .classify import classify, layer_color
from .errors import Diagnostic, DiagnosticKind, NotFound
from .features import parse_features
from .geometry_model import Layer, ParseResult, default_profile
from .paths import PathResolver, basename
from .profile import ProfileExtractor

log = logging.getLogger(__name__)


def parse_odb(source, symbol_scale: float = 1.0) -> ParseResult:
    """Parse an ODB++ archive, directory or ArchiveView.

    Args:
        source: Path to .tgz/.tar.gz/.tar, .zip, extracted directory,
            or an object implementing ArchiveView
        symbol_scale: factor applied to symbol dimensions, for archives
            whose symbol table uses a different unit than coordinates

    Returns:
        ParseResult; never raises for content problems, which are
        reported as diagnostics instead
    """
    if isinstance(source, (str, os.PathLike)):
        source = open_archive(Path(source))
    return OdbParser(source, symbol_scale).parse()


class OdbParser:
    def __init__(self, archive: ArchiveView, symbol_scale: float = 1.0):
        self.archive = archive
        self.resolver = PathResolver(archive)
        self.symbol_scale = symbol_scale
        self.result = ParseResult()

    def parse(self) -> ParseResult:
        self._parse_misc_info()
        self._parse_layers()
        self._parse_profile()

        if self.result.is_empty:
            log.warning("No layers found in archive")
            self.result.diagnostics.append(
                Diagnostic(DiagnosticKind.EMPTY_RESULT, "no layers found"))
        return self.result

    # ── Archive reads ─────────────────────────────────────────────────

    def _read_text(self, path: str) -> str:
        return self.archive.read_bytes(path).decode("utf-8", errors="replace")

    def _find_file(self, suffix: str) -> Optional[str]:
        """First file whose path ends with `suffix`, case-insensitively."""
        suffix = suffix.lower()
        for f in self.resolver.files():
            lower = f.lower()
            if lower == suffix or lower.endswith("/" + suffix):
                return f
        return None

    # ── misc/info ─────────────────────────────────────────────────────

    def _parse_misc_info(self):
        path = self._find_file("misc/info")
        if not path:
            log.info("misc/info not found, units unknown")
            return
        try:
            content = self._read_text(path)
        except NotFound:
            return

        for line in content.splitlines():
            line = line.strip()
            if line.upper().startswith("UNITS"):
                parts = line.split("=")
                if len(parts) >= 2:
                    self.result.units = parts[1].strip().upper()
            elif line.upper().startswith("JOB_NAME"):
                parts = line.split("=")
                if len(parts) >= 2:
                    self.result.job_name = parts[1].strip()

        log.info("Units: %s, Job: %s", self.result.units or "?", self.result.job_name)

    # ── Layers ────────────────────────────────────────────────────────

    def _layer_directories(self) -> List[str]:
        layers_dir = None
        steps_dir = self.resolver.find_steps_directory()
        if steps_dir:
            step_dir = self.resolver.find_step_directory(steps_dir)
            if step_dir:
                log.info("Step: %s", step_dir)
                layers_dir = self.resolver.find_layers_directory(step_dir)

        if layers_dir is None:
            log.warning("No steps/<step>/layers directory, searching for any layers/ directory")
            layers_dir = self.resolver.find_any_layers_directory()
        if layers_dir is None:
            log.warning("No layers directory found")
            return []
        return self.resolver.list_subdirectories(layers_dir)

    def _parse_layers(self):
        for layer_dir in self._layer_directories():
            name = basename(layer_dir)
            try:
                layer = self._parse_layer(layer_dir)
            except Exception as e:
                log.warning("Layer %s failed: %s", name, e)
                kind, side = classify(name)
                layer = Layer(name=name, kind=kind, side=side, color=layer_color(kind, side))
                layer.diagnostics.append(
                    Diagnostic(DiagnosticKind.PARSE_FAILURE, str(e), layer_dir))
            self.result.layers.append(layer)

        log.info("Parsed %d layers", len(self.result.layers))

    def _parse_layer(self, layer_dir: str) -> Layer:
        name = basename(layer_dir)
        kind, side = classify(name)
        layer = Layer(name=name, kind=kind, side=side, color=layer_color(kind, side))
        log.info("Layer %s: %s/%s", name, kind.name, side.name)

        files = self.resolver.find_files(layer_dir)
        if not files:
            log.warning("No data files in layer directory %s", layer_dir)
            layer.diagnostics.append(
                Diagnostic(DiagnosticKind.NOT_FOUND, "no data files", layer_dir))
            return layer

        for path in files:
            try:
                self._parse_file(path, layer)
            except Exception as e:
                log.warning("Failed to parse %s: %s", path, e)
                layer.diagnostics.append(Diagnostic(DiagnosticKind.PARSE_FAILURE, str(e), path))

        if layer.is_empty():
            log.warning("Layer %s has no primitives", name)
        return layer

    def _parse_file(self, path: str, layer: Layer):
        try:
            text = self._read_text(path)
        except NotFound:
            layer.diagnostics.append(Diagnostic(DiagnosticKind.NOT_FOUND, "unreadable", path))
            return
        layer.source_files.append(path)

        lower = path.lower()
        if lower.endswith(".xml"):
            parse_xml_features(text, layer, source=path)
        elif lower.endswith(".json"):
            parse_json_features(text, layer, source=path)
        else:
            parse_features(text, layer, symbol_scale=self.symbol_scale, source=path)

    # ── Profile ───────────────────────────────────────────────────────

    def _parse_profile(self):
        path = self.resolver.find_profile_file()
        if not path:
            log.warning("Profile not found, using default board outline")
            self.result.diagnostics.append(
                Diagnostic(DiagnosticKind.NOT_FOUND, "no profile file"))
            self.result.profile = default_profile()
            return

        extractor = ProfileExtractor(source=path)
        try:
            self.result.profile = extractor.parse(self._read_text(path))
        except Exception as e:
            log.warning("Failed to parse profile %s: %s", path, e)
            extractor.diagnostics.append(Diagnostic(DiagnosticKind.PARSE_FAILURE, str(e), path))
            self.result.profile = default_profile()
        self.result.diagnostics.extend(extractor.diagnostics)
