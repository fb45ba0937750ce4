"""
Font registry and shaper.

Bundled TrueType faces are parsed once with fontTools into read-only metric
tables (cmap, advances, pair kerning). The registry is built explicitly at
startup and handed to every request; nothing here is mutated afterwards.

Layout helpers:
- measure():        shaped advance width of one line, in points
- wrap():           greedy word-wrap against a maximum width
- fit_font_size():  binary search for the largest size that fits a box
- hard_wrap_by_chars(): character-count pre-wrap used before word-wrap
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Dict, List, NamedTuple, Optional, Tuple

from fontTools.ttLib import TTFont

from pdfsnap.core.errors import FontLoadError

logger = logging.getLogger(__name__)

# Shared with the text renderers: baseline-to-baseline distance is size * 1.2
LINE_HEIGHT_MULTIPLIER = 1.2
# Binary search stops once the size interval is narrower than this (points)
FIT_PRECISION = 0.1
MIN_FONT_SIZE = 1.0


class FontFamily(Enum):
    SERIF = "serif"
    SANS_SERIF = "sans_serif"
    MONO = "mono"
    CURSIVE = "cursive"


class FontWeight(Enum):
    LIGHT = "light"
    REGULAR = "regular"
    BOLD = "bold"


class FontKey(NamedTuple):
    family: FontFamily
    weight: FontWeight
    italic: bool


# Symbolic resource names used in content streams
FONT_TAGS: Dict[FontFamily, str] = {
    FontFamily.SERIF: "pdf-Serif",
    FontFamily.SANS_SERIF: "pdf-SansSerif",
    FontFamily.MONO: "pdf-Mono",
    FontFamily.CURSIVE: "pdf-Cursive",
}

# (relative path, required)
FONT_FILES: Dict[FontKey, Tuple[str, bool]] = {
    FontKey(FontFamily.SANS_SERIF, FontWeight.REGULAR, False): ("sans-serif/OpenSans-Regular.ttf", True),
    FontKey(FontFamily.SANS_SERIF, FontWeight.REGULAR, True): ("sans-serif/OpenSans-Italic.ttf", False),
    FontKey(FontFamily.SANS_SERIF, FontWeight.BOLD, False): ("sans-serif/OpenSans-Bold.ttf", False),
    FontKey(FontFamily.SANS_SERIF, FontWeight.BOLD, True): ("sans-serif/OpenSans-BoldItalic.ttf", False),
    FontKey(FontFamily.SANS_SERIF, FontWeight.LIGHT, False): ("sans-serif/OpenSans-Light.ttf", False),
    FontKey(FontFamily.SANS_SERIF, FontWeight.LIGHT, True): ("sans-serif/OpenSans-LightItalic.ttf", False),
    FontKey(FontFamily.SERIF, FontWeight.REGULAR, False): ("serif/DejaVuSerif.ttf", True),
    FontKey(FontFamily.SERIF, FontWeight.REGULAR, True): ("serif/DejaVuSerif-Italic.ttf", False),
    FontKey(FontFamily.SERIF, FontWeight.BOLD, False): ("serif/DejaVuSerif-Bold.ttf", False),
    FontKey(FontFamily.SERIF, FontWeight.BOLD, True): ("serif/DejaVuSerif-BoldItalic.ttf", False),
    FontKey(FontFamily.MONO, FontWeight.REGULAR, False): ("mono/JetBrainsMonoNL-Regular.ttf", True),
    FontKey(FontFamily.MONO, FontWeight.REGULAR, True): ("mono/JetBrainsMonoNL-Italic.ttf", False),
    FontKey(FontFamily.MONO, FontWeight.BOLD, False): ("mono/JetBrainsMonoNL-Bold.ttf", False),
    FontKey(FontFamily.MONO, FontWeight.BOLD, True): ("mono/JetBrainsMonoNL-BoldItalic.ttf", False),
    FontKey(FontFamily.MONO, FontWeight.LIGHT, False): ("mono/JetBrainsMonoNL-Thin.ttf", False),
    FontKey(FontFamily.MONO, FontWeight.LIGHT, True): ("mono/JetBrainsMonoNL-ThinItalic.ttf", False),
    FontKey(FontFamily.CURSIVE, FontWeight.REGULAR, False): ("cursive/Italianno-Regular.ttf", True),
}


# ─── Kerning ────────────────────────────────────────────────────────────────

class _PairSubtable:
    """One GPOS PairPos subtable, flattened to plain dicts.

    Format 1 keeps explicit (left → {right: x_advance}) pairs.
    Format 2 keeps the two class definitions and the class-pair matrix.
    """

    def __init__(self, coverage, pairs=None, class1=None, class2=None, matrix=None):
        self.coverage = frozenset(coverage)
        self.pairs: Optional[Dict[str, Dict[str, int]]] = pairs
        self.class1: Dict[str, int] = class1 or {}
        self.class2: Dict[str, int] = class2 or {}
        self.matrix: List[List[int]] = matrix or []

    def lookup(self, left: str, right: str) -> Optional[int]:
        if self.pairs is not None:
            return self.pairs.get(left, {}).get(right)
        c1 = self.class1.get(left, 0)
        c2 = self.class2.get(right, 0)
        if c1 < len(self.matrix) and c2 < len(self.matrix[c1]):
            return self.matrix[c1][c2]
        return 0


def _x_advance(value_record) -> int:
    if value_record is None:
        return 0
    return int(getattr(value_record, "XAdvance", 0) or 0)


class KerningTable:
    """Pair kerning from GPOS 'kern' lookups, else the legacy 'kern' table."""

    def __init__(self, lookups: List[List[_PairSubtable]], legacy: Dict[Tuple[str, str], int]):
        self._lookups = lookups
        self._legacy = legacy

    @classmethod
    def from_font(cls, font: TTFont) -> "KerningTable":
        lookups: List[List[_PairSubtable]] = []
        if "GPOS" in font:
            gpos = font["GPOS"].table
            indices = set()
            if gpos.FeatureList is not None:
                for record in gpos.FeatureList.FeatureRecord:
                    if record.FeatureTag == "kern":
                        indices.update(record.Feature.LookupListIndex)
            for index in sorted(indices):
                lookup = gpos.LookupList.Lookup[index]
                subtables = []
                for sub in lookup.SubTable:
                    lookup_type = lookup.LookupType
                    if lookup_type == 9:
                        lookup_type = sub.ExtensionLookupType
                        sub = sub.ExtSubTable
                    if lookup_type != 2:
                        continue
                    subtables.append(cls._flatten_pair_pos(sub))
                if subtables:
                    lookups.append(subtables)

        legacy: Dict[Tuple[str, str], int] = {}
        if not lookups and "kern" in font:
            for table in font["kern"].kernTables:
                legacy.update(getattr(table, "kernTable", {}) or {})

        return cls(lookups, legacy)

    @staticmethod
    def _flatten_pair_pos(sub) -> _PairSubtable:
        coverage = list(sub.Coverage.glyphs)
        if sub.Format == 1:
            pairs: Dict[str, Dict[str, int]] = {}
            for left, pair_set in zip(coverage, sub.PairSet):
                pairs[left] = {
                    rec.SecondGlyph: _x_advance(rec.Value1)
                    for rec in pair_set.PairValueRecord
                }
            return _PairSubtable(coverage, pairs=pairs)

        matrix = [
            [_x_advance(c2.Value1) for c2 in c1.Class2Record]
            for c1 in sub.Class1Record
        ]
        return _PairSubtable(
            coverage,
            class1=dict(sub.ClassDef1.classDefs) if sub.ClassDef1 else {},
            class2=dict(sub.ClassDef2.classDefs) if sub.ClassDef2 else {},
            matrix=matrix,
        )

    def value(self, left: str, right: str) -> int:
        """Advance adjustment (font units) to apply to ``left`` when followed by ``right``."""
        if not self._lookups:
            return int(self._legacy.get((left, right), 0))
        total = 0
        for subtables in self._lookups:
            for sub in subtables:
                if left not in sub.coverage:
                    continue
                adjust = sub.lookup(left, right)
                if adjust is not None:
                    total += adjust
                    break
        return total

    def __bool__(self) -> bool:
        return bool(self._lookups or self._legacy)


# ─── Faces ──────────────────────────────────────────────────────────────────

class ShapedGlyph(NamedTuple):
    char: str
    glyph: str
    x_advance: int  # font units, kerning applied


class FontFace:
    """An immutable parsed TrueType face."""

    def __init__(self, key: FontKey, data: bytes, path: str = ""):
        self.key = key
        self.data = data
        self.path = path
        try:
            font = TTFont(BytesIO(data))
            self.units_per_em: int = font["head"].unitsPerEm
            self._cmap: Dict[int, str] = dict(font.getBestCmap() or {})
            self._advances: Dict[str, int] = {
                name: advance for name, (advance, _lsb) in font["hmtx"].metrics.items()
            }
            self._kerning = KerningTable.from_font(font)
        except Exception as e:
            raise FontLoadError(f"Failed to parse font {path or key}: {e}") from e

        logger.info(
            f"[FONT] Loaded {key.family.value}/{key.weight.value}"
            f"{' italic' if key.italic else ''}: upem={self.units_per_em}, "
            f"{len(self._cmap)} cmap entries, kerning={'yes' if self._kerning else 'no'}"
        )

    @classmethod
    def from_file(cls, key: FontKey, path: str) -> "FontFace":
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as e:
            raise FontLoadError(f"Cannot read font file {path}: {e}") from e
        return cls(key, data, path)

    def shape(self, text: str) -> List[ShapedGlyph]:
        """Map characters to glyphs with advances; pair kerning adjusts the left glyph."""
        glyphs = [self._cmap.get(ord(ch), ".notdef") for ch in text]
        advances = [self._advances.get(g, 0) for g in glyphs]
        if self._kerning:
            for i in range(len(glyphs) - 1):
                advances[i] += self._kerning.value(glyphs[i], glyphs[i + 1])
        return [ShapedGlyph(ch, g, adv) for ch, g, adv in zip(text, glyphs, advances)]

    def scale(self, font_size: float) -> float:
        return font_size / self.units_per_em


class FontRegistry:
    """Process-wide, read-only table of loaded faces keyed by (family, weight, italic)."""

    def __init__(self, faces: Dict[FontKey, FontFace]):
        self._faces = dict(faces)
        for family in FontFamily:
            if FontKey(family, FontWeight.REGULAR, False) not in self._faces:
                raise FontLoadError(f"Missing required {family.value} regular face")

    @classmethod
    def from_directory(cls, font_dir: str) -> "FontRegistry":
        faces: Dict[FontKey, FontFace] = {}
        for key, (relative, required) in FONT_FILES.items():
            path = os.path.join(font_dir, relative)
            if not os.path.isfile(path):
                if required:
                    raise FontLoadError(f"Required font file not found: {path}")
                logger.debug(f"[FONT] Optional face not bundled: {relative}")
                continue
            faces[key] = FontFace.from_file(key, path)
        logger.info(f"[FONT] Registry ready with {len(faces)} face(s) from {font_dir}")
        return cls(faces)

    def get(
        self,
        family: FontFamily,
        weight: FontWeight = FontWeight.REGULAR,
        italic: bool = False,
    ) -> FontFace:
        """Resolve a face, falling back to the family's regular weight."""
        if family == FontFamily.CURSIVE:
            return self._faces[FontKey(family, FontWeight.REGULAR, False)]
        if family == FontFamily.SERIF and weight == FontWeight.LIGHT:
            weight = FontWeight.REGULAR
        for key in (
            FontKey(family, weight, italic),
            FontKey(family, FontWeight.REGULAR, italic),
            FontKey(family, FontWeight.REGULAR, False),
        ):
            face = self._faces.get(key)
            if face is not None:
                return face
        raise FontLoadError(f"No face registered for {family.value}")

    @property
    def cursive(self) -> FontFace:
        return self.get(FontFamily.CURSIVE)

    def __len__(self) -> int:
        return len(self._faces)


# ─── Measuring and fitting ─────────────────────────────────────────────────

def measure(face: FontFace, text: str, font_size: float) -> float:
    """Shaped advance width of ``text`` in points."""
    scale = face.scale(font_size)
    return sum(g.x_advance for g in face.shape(text)) * scale


def wrap(face: FontFace, text: str, font_size: float, max_width: float) -> Tuple[str, int, float]:
    """Greedy word-wrap.

    Words (split on any whitespace) are added to the current line while the
    measured line stays within ``max_width``; the overflowing word starts the
    next line. Words are never split, so a single long word may exceed the width.

    Returns (newline-joined text, line count, widest line width).
    """
    lines: List[str] = []
    widths: List[float] = []
    current = ""
    current_width = 0.0

    for word in text.split():
        candidate = f"{current} {word}" if current else word
        width = measure(face, candidate, font_size)
        if width <= max_width or not current:
            current = candidate
            current_width = width
        else:
            lines.append(current)
            widths.append(current_width)
            current = word
            current_width = measure(face, word, font_size)

    if current:
        lines.append(current)
        widths.append(current_width)

    return "\n".join(lines), len(lines), max(widths, default=0.0)


@dataclass(frozen=True)
class FittedLayout:
    text: str
    font_size: float

    @property
    def lines(self) -> List[str]:
        return self.text.split("\n") if self.text else []


def fit_font_size(face: FontFace, text: str, box_width: float, box_height: float) -> Optional[FittedLayout]:
    """Largest size in [1, box_height] (to FIT_PRECISION) whose wrap fits the box.

    A size fits when the widest wrapped line is <= box_width and
    line_count * size * LINE_HEIGHT_MULTIPLIER <= box_height.
    Returns None when even the smallest tested size does not fit.
    """
    min_size = MIN_FONT_SIZE
    max_size = box_height
    best: Optional[FittedLayout] = None

    while (max_size - min_size) > FIT_PRECISION:
        test_size = (min_size + max_size) / 2.0
        wrapped, line_count, widest = wrap(face, text, test_size, box_width)
        total_height = line_count * test_size * LINE_HEIGHT_MULTIPLIER
        if widest <= box_width and total_height <= box_height:
            best = FittedLayout(wrapped, test_size)
            min_size = test_size
        else:
            max_size = test_size

    if best is None:
        logger.debug(f"[FIT] No size fits {box_width:.1f}x{box_height:.1f} for {text[:40]!r}")
    return best


def hard_wrap_by_chars(text: str, max_chars: int) -> str:
    """Insert a newline every ``max_chars`` characters, restarting the count at existing newlines."""
    max_chars = max(max_chars, 1)
    out: List[str] = []
    count = 0
    for ch in text:
        if ch == "\n":
            count = 0
            out.append(ch)
            continue
        if count >= max_chars:
            out.append("\n")
            count = 0
        out.append(ch)
        count += 1
    return "".join(out)
