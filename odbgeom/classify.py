"""Layer type / side classification from layer directory names.

Export tools name layers inconsistently ("top", "l1", "soldermask_top",
"comp_+_bot", ...), so classification is a set of ordered rule tables:
each rule is a (predicate, result) pair and the first match wins. New
naming variants are added as new rows.
"""

import re
from typing import Callable, List, Tuple

from .geometry_model import LayerType, Side

Predicate = Callable[[str], bool]


def _contains(*words: str) -> Predicate:
    return lambda name: any(w in name for w in words)


def _ends_with(*suffixes: str) -> Predicate:
    return lambda name: name.endswith(suffixes)


def _matches(pattern: str) -> Predicate:
    rx = re.compile(pattern)
    return lambda name: rx.search(name) is not None


def _any(*preds: Predicate) -> Predicate:
    return lambda name: any(p(name) for p in preds)


# Exact names that the keyword rules would get wrong or leave ambiguous
EXACT_OVERRIDES = {
    "l1": (LayerType.COPPER, Side.TOP),
    "layer1": (LayerType.COPPER, Side.TOP),
    "signal1": (LayerType.COPPER, Side.TOP),
    "sig1": (LayerType.COPPER, Side.TOP),
    "l2": (LayerType.COPPER, Side.INTERNAL),
    "layer2": (LayerType.COPPER, Side.INTERNAL),
    "signal2": (LayerType.COPPER, Side.INTERNAL),
    "sig2": (LayerType.COPPER, Side.INTERNAL),
    "l3": (LayerType.COPPER, Side.INTERNAL),
    "layer3": (LayerType.COPPER, Side.INTERNAL),
    "signal3": (LayerType.COPPER, Side.INTERNAL),
    "sig3": (LayerType.COPPER, Side.INTERNAL),
    "l4": (LayerType.COPPER, Side.BOTTOM),
    "layer4": (LayerType.COPPER, Side.BOTTOM),
    "signal4": (LayerType.COPPER, Side.BOTTOM),
    "sig4": (LayerType.COPPER, Side.BOTTOM),
    "topmask": (LayerType.SOLDER_MASK, Side.TOP),
    "topsolder": (LayerType.SOLDER_MASK, Side.TOP),
    "soldermask_top": (LayerType.SOLDER_MASK, Side.TOP),
    "botmask": (LayerType.SOLDER_MASK, Side.BOTTOM),
    "bottomsolder": (LayerType.SOLDER_MASK, Side.BOTTOM),
    "soldermask_bottom": (LayerType.SOLDER_MASK, Side.BOTTOM),
    "topsilk": (LayerType.SILKSCREEN, Side.TOP),
    "silkscreen_top": (LayerType.SILKSCREEN, Side.TOP),
    "botsilk": (LayerType.SILKSCREEN, Side.BOTTOM),
    "silkscreen_bottom": (LayerType.SILKSCREEN, Side.BOTTOM),
    "outline": (LayerType.OUTLINE, Side.BOTH),
    "board": (LayerType.OUTLINE, Side.BOTH),
    "contour": (LayerType.OUTLINE, Side.BOTH),
    "drill": (LayerType.DRILL, Side.BOTH),
    "drills": (LayerType.DRILL, Side.BOTH),
    "holes": (LayerType.DRILL, Side.BOTH),
}

TYPE_RULES: List[Tuple[Predicate, LayerType]] = [
    (_any(_contains("copper", "signal", "conductor", "cu"),
          _matches(r"l\d+"), _matches(r"layer\d+")), LayerType.COPPER),
    (_contains("mask", "solder", "sm"), LayerType.SOLDER_MASK),
    (_contains("silk", "legend", "overlay", "ss"), LayerType.SILKSCREEN),
    (_contains("outline", "contour", "profile", "board", "pcb", "edge"), LayerType.OUTLINE),
    (_contains("drill", "hole", "via", "pth", "npth"), LayerType.DRILL),
    (_contains("paste", "sp"), LayerType.PASTE),
    (_contains("keepout", "restrict"), LayerType.KEEPOUT),
    (_contains("route", "routing"), LayerType.ROUTE),
]

SIDE_RULES: List[Tuple[Predicate, Side]] = [
    (_any(_contains("top", "t$", "_t", ".top", "-top"), _ends_with(".t")), Side.TOP),
    (_any(_contains("bot", "bottom", "b$", "_b", ".bot", "-bot"), _ends_with(".b")), Side.BOTTOM),
    (_any(_contains("inner", "internal"),
          _matches(r"l[2-9]"), _matches(r"layer[2-9]")), Side.INTERNAL),
]


def _first_match(rules, name, default):
    for predicate, result in rules:
        if predicate(name):
            return result
    return default


def classify(layer_name: str) -> Tuple[LayerType, Side]:
    """Return (LayerType, Side) for a layer directory name."""
    name = layer_name.strip().strip("/").lower()
    if name in EXACT_OVERRIDES:
        return EXACT_OVERRIDES[name]
    kind = _first_match(TYPE_RULES, name, LayerType.OTHER)
    side = _first_match(SIDE_RULES, name, Side.BOTH)
    return kind, side


# LayerType -> Side -> hex color
LAYER_COLORS = {
    LayerType.COPPER: {
        Side.TOP: "#c87137", Side.BOTTOM: "#b36530",
        Side.INTERNAL: "#a35a2a", Side.BOTH: "#c87137",
    },
    LayerType.SOLDER_MASK: {
        Side.TOP: "#0f766e", Side.BOTTOM: "#0e7490",
        Side.INTERNAL: "#0c4a6e", Side.BOTH: "#0f766e",
    },
    LayerType.SILKSCREEN: {
        Side.TOP: "#ffffff", Side.BOTTOM: "#e5e5e5",
        Side.INTERNAL: "#d4d4d4", Side.BOTH: "#ffffff",
    },
    LayerType.DRILL: {
        Side.TOP: "#000000", Side.BOTTOM: "#1a1a1a",
        Side.INTERNAL: "#333333", Side.BOTH: "#000000",
    },
    LayerType.OUTLINE: {
        Side.TOP: "#0c4a6e", Side.BOTTOM: "#0c4a6e",
        Side.INTERNAL: "#0c4a6e", Side.BOTH: "#0c4a6e",
    },
    LayerType.PASTE: {
        Side.TOP: "#c0c0c0", Side.BOTTOM: "#a0a0a0",
        Side.INTERNAL: "#808080", Side.BOTH: "#c0c0c0",
    },
    LayerType.KEEPOUT: {
        Side.TOP: "#ff69b4", Side.BOTTOM: "#ff1493",
        Side.INTERNAL: "#c71585", Side.BOTH: "#ff69b4",
    },
    LayerType.ROUTE: {
        Side.TOP: "#9932cc", Side.BOTTOM: "#8a2be2",
        Side.INTERNAL: "#9400d3", Side.BOTH: "#9932cc",
    },
    LayerType.OTHER: {
        Side.TOP: "#888888", Side.BOTTOM: "#666666",
        Side.INTERNAL: "#444444", Side.BOTH: "#888888",
    },
}


def layer_color(kind: LayerType, side: Side) -> str:
    """Return a hex color for the given layer type and side."""
    colors = LAYER_COLORS.get(kind, LAYER_COLORS[LayerType.OTHER])
    return colors.get(side, colors[Side.BOTH])
