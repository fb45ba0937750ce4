import pytest

from pdfsnap.utils.content_stream import (
    Name,
    Operation,
    encode_operations,
    encode_text,
    escape_literal,
    format_number,
    parse_content_stream,
)


class TestParse:
    """Tokenizing page content into operations."""

    def test_text_block(self):
        ops = parse_content_stream(b"BT /F1 12 Tf 1 0 0 1 72 720.5 Tm (Hello) Tj ET")
        assert [op.operator for op in ops] == ["BT", "Tf", "Tm", "Tj", "ET"]
        assert ops[1].operands == [Name("F1"), 12]
        assert isinstance(ops[1].operands[0], Name)
        assert ops[2].operands == [1, 0, 0, 1, 72, 720.5]
        assert ops[3].operands == [b"Hello"]

    def test_tj_array(self):
        ops = parse_content_stream(b"[(Hel) -20 (lo)] TJ")
        assert ops[0].operator == "TJ"
        assert ops[0].operands == [[b"Hel", -20, b"lo"]]

    def test_literal_escapes(self):
        ops = parse_content_stream(rb"(a\(b\)c\\) Tj (\101\102) Tj (x\ny) Tj (p(q)r) Tj")
        assert [op.operands[0] for op in ops] == [b"a(b)c\\", b"AB", b"x\ny", b"p(q)r"]

    def test_hex_string(self):
        ops = parse_content_stream(b"<48 65 6c6c 6f> Tj <414> Tj")
        assert ops[0].operands == [b"Hello"]
        assert ops[1].operands == [b"A@"]

    def test_comments_skipped(self):
        ops = parse_content_stream(b"% leading comment\nq % trailing\n0.5 g\nQ")
        assert [op.operator for op in ops] == ["q", "g", "Q"]

    def test_inline_dict_operand(self):
        ops = parse_content_stream(b"/Span <</MCID 0 /Lang (en)>> BDC EMC")
        assert ops[0].operator == "BDC"
        assert ops[0].operands == [Name("Span"), {"MCID": 0, "Lang": b"en"}]

    def test_inline_image_data_skipped(self):
        data = b"q BI /W 1 /H 1 /CS /G /BPC 8 ID \x00(\xff EI Q"
        ops = parse_content_stream(data)
        assert [op.operator for op in ops] == ["q", "BI", "ID", "Q"]

    def test_quote_operators(self):
        ops = parse_content_stream(b"(one) ' 1 2 (two) \"")
        assert [op.operator for op in ops] == ["'", '"']
        assert ops[1].operands == [1, 2, b"two"]

    def test_empty(self):
        assert parse_content_stream(b"") == []
        assert parse_content_stream(None) == []


class TestSerialize:

    @pytest.mark.parametrize("value,expected", [
        (12, "12"),
        (12.0, "12"),
        (12.5, "12.5"),
        (1 / 3, "0.3333"),
        (-0.00001, "0"),
        (-3.25, "-3.25"),
        (True, "true"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    def test_escape_literal(self):
        assert escape_literal(b"a(b)\\") == b"a\\(b\\)\\\\"
        assert escape_literal(b"\n\xe9") == b"\\012\\351"

    def test_encode_text_uses_winansi(self):
        assert encode_text("café") == b"caf\xe9"
        assert encode_text("€") == b"\x80"
        assert encode_text("中") == b"?"

    def test_encode_operations(self):
        ops = [
            Operation("rg", [1.0, 0, 0.5]),
            Operation("BT"),
            Operation("Tf", [Name("pdf-SansSerif"), 12]),
            Operation("Tj", [b"a(b)"]),
            Operation("ET"),
        ]
        assert encode_operations(ops) == (
            b"1 0 0.5 rg\nBT\n/pdf-SansSerif 12 Tf\n(a\\(b\\)) Tj\nET\n"
        )

    def test_encoded_operations_parse_back(self):
        ops = [
            Operation("Tf", [Name("F1"), 9]),
            Operation("Tm", [1, 0, 0, 1, 100.25, 689.6]),
            Operation("TJ", [[b"A", -120, b"V"]]),
        ]
        parsed = parse_content_stream(encode_operations(ops))
        assert parsed == ops

    def test_unsupported_operand(self):
        with pytest.raises(TypeError):
            encode_operations([Operation("x", [object()])])
