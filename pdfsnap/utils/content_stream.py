"""
Content stream codec: tokenize page content into operations and serialize
operations back to bytes.

Only what the overlay engine needs: numbers, names, literal/hex strings,
arrays, inline dictionaries and operators. Inline image data (BI/ID/EI) is
skipped without being decoded.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Union

_WHITESPACE = b" \t\r\n\x00\x0c"
_DELIMITERS = b"()<>[]{}/%"

_ESCAPES = {
    0x6E: 0x0A,  # \n
    0x72: 0x0D,  # \r
    0x74: 0x09,  # \t
    0x62: 0x08,  # \b
    0x66: 0x0C,  # \f
    0x28: 0x28,  # \(
    0x29: 0x29,  # \)
    0x5C: 0x5C,  # \\
}


class Name(str):
    """A PDF name operand (serialized with a leading slash)."""


Operand = Union[int, float, bool, None, bytes, Name, list, dict]


@dataclass
class Operation:
    """One content stream operator with its operands, in stream order."""
    operator: str
    operands: List[Any] = field(default_factory=list)


class _Tokenizer:
    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0
        self.length = len(data)

    def _skip_whitespace(self):
        while self.pos < self.length:
            ch = self.data[self.pos]
            if ch in _WHITESPACE:
                self.pos += 1
            elif ch == 0x25:  # % comment runs to end of line
                while self.pos < self.length and self.data[self.pos] not in b"\r\n":
                    self.pos += 1
            else:
                break

    def _read_regular(self) -> bytes:
        start = self.pos
        while (
            self.pos < self.length
            and self.data[self.pos] not in _WHITESPACE
            and self.data[self.pos] not in _DELIMITERS
        ):
            self.pos += 1
        return self.data[start:self.pos]

    def _read_literal(self) -> bytes:
        # pos is on the opening parenthesis
        self.pos += 1
        depth = 1
        out = bytearray()
        while self.pos < self.length:
            b = self.data[self.pos]
            if b == 0x5C:
                self.pos += 1
                if self.pos >= self.length:
                    break
                esc = self.data[self.pos]
                if esc in _ESCAPES:
                    out.append(_ESCAPES[esc])
                elif 0x30 <= esc <= 0x37:
                    octal = chr(esc)
                    for _ in range(2):
                        if self.pos + 1 < self.length and 0x30 <= self.data[self.pos + 1] <= 0x37:
                            self.pos += 1
                            octal += chr(self.data[self.pos])
                        else:
                            break
                    out.append(int(octal, 8) & 0xFF)
                elif esc == 0x0D:
                    if self.pos + 1 < self.length and self.data[self.pos + 1] == 0x0A:
                        self.pos += 1
                elif esc != 0x0A:
                    out.append(esc)
                self.pos += 1
                continue
            if b == 0x28:
                depth += 1
            elif b == 0x29:
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    break
            out.append(b)
            self.pos += 1
        return bytes(out)

    def _read_hex(self) -> bytes:
        end = self.data.find(b">", self.pos + 1)
        if end == -1:
            end = self.length
        digits = bytes(c for c in self.data[self.pos + 1:end] if c not in _WHITESPACE)
        self.pos = end + 1
        if len(digits) % 2:
            digits += b"0"
        try:
            return bytes.fromhex(digits.decode("ascii"))
        except ValueError:
            return b""

    def _skip_inline_image(self):
        # Binary data runs from after "ID " to a whitespace-delimited "EI"
        self.pos += 1
        while self.pos < self.length - 1:
            if (
                self.data[self.pos:self.pos + 2] == b"EI"
                and self.data[self.pos - 1] in _WHITESPACE
                and (self.pos + 2 >= self.length or self.data[self.pos + 2] in _WHITESPACE)
            ):
                self.pos += 2
                return
            self.pos += 1
        self.pos = self.length

    def next_object(self):
        """Return the next (kind, value) token or None at end of stream."""
        self._skip_whitespace()
        if self.pos >= self.length:
            return None
        ch = self.data[self.pos]

        if ch == 0x28:  # (
            return "operand", self._read_literal()
        if ch == 0x3C:  # <
            if self.data[self.pos:self.pos + 2] == b"<<":
                self.pos += 2
                return "operand", self._read_dict()
            return "operand", self._read_hex()
        if ch == 0x5B:  # [
            self.pos += 1
            return "operand", self._read_array()
        if ch in b"]>":
            self.pos += 1
            return "close", chr(ch)
        if ch == 0x2F:  # /
            self.pos += 1
            return "operand", Name(self._read_regular().decode("latin-1"))
        if ch in b"{}":
            self.pos += 1
            return "close", chr(ch)

        token = self._read_regular()
        if not token:
            self.pos += 1
            return "close", ""
        number = _parse_number(token)
        if number is not None:
            return "operand", number
        word = token.decode("latin-1")
        if word == "true":
            return "operand", True
        if word == "false":
            return "operand", False
        if word == "null":
            return "operand", None
        return "operator", word

    def _read_array(self) -> list:
        items = []
        while True:
            tok = self.next_object()
            if tok is None:
                return items
            kind, value = tok
            if kind == "close" and value == "]":
                return items
            if kind == "operand":
                items.append(value)

    def _read_dict(self) -> dict:
        items = []
        while True:
            self._skip_whitespace()
            if self.data[self.pos:self.pos + 2] == b">>":
                self.pos += 2
                break
            tok = self.next_object()
            if tok is None:
                break
            kind, value = tok
            if kind == "operand":
                items.append(value)
        return {str(items[i]): items[i + 1] for i in range(0, len(items) - 1, 2)}


def _parse_number(token: bytes):
    try:
        text = token.decode("ascii")
    except UnicodeDecodeError:
        return None
    if not text or text[0] not in "+-.0123456789":
        return None
    try:
        if "." in text:
            return float(text)
        return int(text)
    except ValueError:
        return None


def parse_content_stream(data: bytes) -> List[Operation]:
    """Tokenize a (decompressed) content stream into operations."""
    tokenizer = _Tokenizer(data or b"")
    operations: List[Operation] = []
    operands: List[Any] = []
    while True:
        tok = tokenizer.next_object()
        if tok is None:
            break
        kind, value = tok
        if kind == "operand":
            operands.append(value)
        elif kind == "operator":
            operations.append(Operation(value, operands))
            operands = []
            if value == "ID":
                tokenizer._skip_inline_image()
    return operations


# ─── Serialization ─────────────────────────────────────────────────────────

def format_number(value: float) -> str:
    """Compact decimal form: integers without a fraction, at most 4 decimals."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def escape_literal(raw: bytes) -> bytes:
    """Bytes that go between ( and ) of a PDF literal string."""
    out = bytearray()
    for b in raw:
        if b in (0x28, 0x29, 0x5C):
            out.append(0x5C)
            out.append(b)
        elif b < 0x20 or b > 0x7E:
            out.extend(f"\\{b:03o}".encode("ascii"))
        else:
            out.append(b)
    return bytes(out)


def encode_text(text: str) -> bytes:
    """Encode text for a simple font with WinAnsiEncoding."""
    return text.encode("cp1252", errors="replace")


def _serialize_operand(value: Any) -> bytes:
    if isinstance(value, Name):
        return b"/" + value.encode("latin-1")
    if value is None:
        return b"null"
    if isinstance(value, (bool, int, float)):
        return format_number(value).encode("ascii")
    if isinstance(value, bytes):
        return b"(" + escape_literal(value) + b")"
    if isinstance(value, str):
        return b"(" + escape_literal(encode_text(value)) + b")"
    if isinstance(value, (list, tuple)):
        return b"[" + b" ".join(_serialize_operand(v) for v in value) + b"]"
    if isinstance(value, dict):
        parts = []
        for key, item in value.items():
            parts.append(b"/" + str(key).encode("latin-1") + b" " + _serialize_operand(item))
        return b"<<" + b" ".join(parts) + b">>"
    raise TypeError(f"Cannot serialize operand of type {type(value).__name__}")


def encode_operations(operations: Iterable[Operation]) -> bytes:
    """Serialize operations, one per line."""
    lines = []
    for op in operations:
        parts = [_serialize_operand(v) for v in op.operands]
        parts.append(op.operator.encode("latin-1"))
        lines.append(b" ".join(parts))
    return b"\n".join(lines) + b"\n"
