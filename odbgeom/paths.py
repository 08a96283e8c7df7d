"""Locate steps, layer directories and the board profile in an archive.

Archives do not reliably list directory entries, so the directory set is
rebuilt from every prefix of every path. All lookups return None or an
empty list instead of raising; callers fall back to wider searches.
"""

import logging
from typing import List, Optional

from .archive import ArchiveView, normalize_path

log = logging.getLogger(__name__)

STEPS_HINTS = ("steps", "odb/steps", "data/steps")

# Feature-file name keywords, in the order they are tried
FEATURE_FILE_KEYWORDS = ("features", "feat", "geometry", "data", "xml", "json", "txt")


def _with_slash(path: str) -> str:
    p = normalize_path(path)
    return p if p.endswith("/") or not p else p + "/"


def _segments(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def basename(path: str) -> str:
    parts = _segments(path)
    return parts[-1] if parts else ""


class PathResolver:
    def __init__(self, archive: ArchiveView):
        self.archive = archive
        self._paths = None
        self._dirs = None

    def paths(self) -> List[str]:
        if self._paths is None:
            self._paths = [normalize_path(p) for p in self.archive.list_paths()]
        return self._paths

    def files(self) -> List[str]:
        return [p for p in self.paths()
                if not p.endswith("/") and not self.archive.is_directory(p)]

    def directories(self) -> List[str]:
        """Explicit directory entries plus every implied parent, in discovery order."""
        if self._dirs is None:
            seen = {}
            for path in self.paths():
                if path.endswith("/") or self.archive.is_directory(path):
                    seen.setdefault(_with_slash(path), None)
                parts = path.split("/")
                current = ""
                for part in parts[:-1]:
                    if not part:
                        continue
                    current += part + "/"
                    seen.setdefault(current, None)
            self._dirs = list(seen)
        return self._dirs

    def find_directory(self, hint: str, partial: bool = True) -> Optional[str]:
        """Best directory for `hint`; exact, then suffix, substring, last segment."""
        search = _with_slash(hint)
        if not search:
            return None
        dirs = self.directories()

        for d in dirs:
            if d == search:
                return d
        if not partial:
            return None

        lower = search.lower()
        for d in dirs:
            if d.lower().endswith(lower):
                return d
        for d in dirs:
            if lower in d.lower():
                return d

        last = basename(search).lower()
        for d in dirs:
            if basename(d).lower() == last:
                return d
        return None

    def list_subdirectories(self, directory: str) -> List[str]:
        prefix = _with_slash(directory)
        subdirs = {}
        for path in self.paths():
            if not path.startswith(prefix) or path == prefix:
                continue
            rest = path[len(prefix):]
            first = rest.split("/", 1)[0]
            if not first:
                continue
            subdirs.setdefault(prefix + first + "/", None)
        return list(subdirs)

    def find_files(self, directory: str,
                   keywords=FEATURE_FILE_KEYWORDS) -> List[str]:
        """Data files for one layer directory.

        Files under the directory whose name contains a keyword; failing
        that every file under it; failing that any file in the archive
        whose path mentions the directory's own name.
        """
        prefix = _with_slash(directory)
        under = [f for f in self.files() if f.startswith(prefix)]

        matched = [f for f in under
                   if any(k.lower() in basename(f).lower() for k in keywords)]
        if matched:
            return matched
        if under:
            return under

        last = basename(prefix).lower()
        if not last:
            return []
        return [f for f in self.files() if last in f.lower()]

    # ── Steps / layers ────────────────────────────────────────────────

    def find_steps_directory(self) -> Optional[str]:
        for hint in STEPS_HINTS:
            found = self.find_directory(hint, partial=True)
            if found:
                return found
        return None

    def find_step_directory(self, steps_dir: str) -> Optional[str]:
        """Pick the step to read: one whose name mentions 'pcb', else the first."""
        steps = self.list_subdirectories(steps_dir)
        if not steps:
            return None
        for step in steps:
            if "pcb" in basename(step).lower():
                return step
        return steps[0]

    def find_layers_directory(self, step_dir: str) -> Optional[str]:
        found = self.find_directory(step_dir + "layers", partial=False)
        if found:
            return found
        found = self.find_directory(step_dir.rstrip("/") + "_layers", partial=False)
        if found:
            return found
        for d in self.directories():
            if d.startswith(step_dir) and d != step_dir and "layer" in basename(d).lower():
                return d
        return None

    def find_any_layers_directory(self) -> Optional[str]:
        """Fallback when there is no steps/ tree: first directory under a 'layers/' segment."""
        for d in self.directories():
            lower = d.lower()
            idx = lower.find("layers/")
            if idx >= 0:
                return d[:idx + len("layers/")]
        return None

    # ── Profile ───────────────────────────────────────────────────────

    def find_profile_file(self) -> Optional[str]:
        """Locate the board-outline stream.

        Tries <step>/profile (file, or a profile/ directory holding a
        features or outline file), then any file in a steps tree named like
        a profile, then the same search over the whole archive.
        """
        files = self.files()
        steps_dir = self.find_steps_directory()
        step_dir = self.find_step_directory(steps_dir) if steps_dir else None

        if step_dir:
            for f in files:
                if f.lower() == (step_dir + "profile").lower():
                    return f
            profile_dir = self.find_directory(step_dir + "profile", partial=False)
            if profile_dir:
                inner = [f for f in files if f.startswith(profile_dir)]
                for f in inner:
                    name = basename(f).lower()
                    if "features" in name or name.endswith("feat") or "outline" in name:
                        return f
                if inner:
                    return inner[0]

        for scope in (step_dir, steps_dir, ""):
            if scope is None:
                continue
            for f in files:
                if not f.startswith(scope):
                    continue
                name = basename(f).lower()
                if name == "profile" or name.startswith("profile.") or "outline" in name:
                    return f
        return None
