# File: pdfsnap/utils/color.py
import re
from dataclasses import dataclass
from typing import Tuple

_HEX_RE = re.compile(r"^[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class Color:
    """An 8-bit RGB colour."""
    r: int
    g: int
    b: int

    def __post_init__(self):
        for component in (self.r, self.g, self.b):
            if not 0 <= component <= 255:
                raise ValueError(f"colour component out of range: {component}")

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        """Parse ``#RRGGBB`` (the leading ``#`` is optional)."""
        digits = value.strip().lstrip("#")
        if not _HEX_RE.match(digits):
            raise ValueError(f"hex color must be 6 hex digits, got {value!r}")
        return cls(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def to_pdf(self) -> Tuple[float, float, float]:
        """Components in the 0-1 range used by the ``rg`` operator."""
        return (self.r / 255.0, self.g / 255.0, self.b / 255.0)


BLACK = Color(0, 0, 0)
GRAY = Color(0x80, 0x80, 0x80)
