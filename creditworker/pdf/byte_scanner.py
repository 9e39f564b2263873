"""Text recovery from raw PDF bytes without a PDF parser.

Used when the file cannot be opened by a PDF engine or carries no text
layer the engine can read. Content streams are inflated when Flate encoded
(ASCII85 wrapped or not), then text showing operators inside ``BT``/``ET``
text objects are decoded. If no text object yields anything, readable
literal strings anywhere in the content are collected instead.
"""

import base64
import re
import zlib

MIN_FRAGMENT_LENGTH = 3
READABLE_RATIO = 0.7

# TJ arrays use negative kerning offsets this large (in thousandths of a text
# space unit) to separate words
WORD_GAP = -200

_STREAM_RE = re.compile(rb"stream\r?\n(.*?)\r?\n?endstream", re.S)
_TEXT_OBJECT_RE = re.compile(rb"(?<![A-Za-z])BT(?![A-Za-z])(.*?)(?<![A-Za-z])ET(?![A-Za-z])", re.S)
_LITERAL = rb"\((?:\\.|[^\\()]|\((?:\\.|[^\\()])*\))*\)"
_HEX = rb"<[0-9A-Fa-f\s]*>"
_TEXT_OP_RE = re.compile(
    rb"(?P<show>" + _LITERAL + rb"|" + _HEX + rb")\s*(?P<op>Tj|'|\")"
    rb"|\[(?P<array>(?:" + _LITERAL + rb"|" + _HEX + rb"|[^\]()<])*)\]\s*TJ"
    rb"|(?P<move>T\*|\bT[dDm]\b)",
    re.S,
)
_ARRAY_ITEM_RE = re.compile(rb"(?P<lit>" + _LITERAL + rb")|(?P<hex>" + _HEX + rb")|(?P<num>-?\d+(?:\.\d+)?)")
_LOOSE_LITERAL_RE = re.compile(_LITERAL)
_OCTAL_RE = re.compile(rb"\\([0-7]{1,3})")

_ESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}


def decode_literal(raw: bytes) -> str:
    """Decode the body of a PDF literal string, without the outer parentheses."""
    out = bytearray()
    i = 0
    while i < len(raw):
        byte = raw[i]
        if byte != ord("\\") or i + 1 >= len(raw):
            out.append(byte)
            i += 1
            continue
        nxt = raw[i + 1]
        if nxt in _ESCAPES:
            out += _ESCAPES[nxt]
            i += 2
        elif nxt in b"\r\n":
            # line continuation
            i += 2
            if nxt == ord("\r") and i < len(raw) and raw[i] == ord("\n"):
                i += 1
        else:
            octal = _OCTAL_RE.match(raw, i)
            if octal:
                out.append(int(octal.group(1), 8) & 0xFF)
                i = octal.end()
            else:
                out.append(nxt)
                i += 2
    return out.decode("latin-1")


def decode_hex(raw: bytes) -> str:
    """Decode a PDF hex string body. Two-byte encodings are read as UTF-16BE."""
    digits = re.sub(rb"\s", b"", raw)
    if len(digits) % 2:
        digits += b"0"
    data = bytes.fromhex(digits.decode("ascii"))
    if data.startswith(b"\xfe\xff") or (len(data) >= 4 and data[0] == 0 and data[2] == 0):
        return data.decode("utf-16-be", errors="ignore").lstrip("\ufeff")
    return data.decode("latin-1")


def is_readable(text: str) -> bool:
    """True when most characters are printable ASCII or whitespace."""
    if len(text.strip()) < MIN_FRAGMENT_LENGTH:
        return False
    printable = sum(1 for char in text if 32 <= ord(char) < 127 or char in "\n\t")
    return printable / len(text) >= READABLE_RATIO


def content_segments(pdf_bytes: bytes) -> list[bytes]:
    """Stream bodies, inflated when Flate encoded, otherwise as stored."""
    segments = []
    for match in _STREAM_RE.finditer(pdf_bytes):
        segments.append(_decode_stream(match.group(1)))
    return segments


def _decode_stream(body: bytes) -> bytes:
    data = body.strip()
    if data.endswith(b"~>"):
        try:
            data = base64.a85decode(data[:-2].removeprefix(b"<~"))
        except ValueError:
            return body
    try:
        return zlib.decompress(data)
    except zlib.error:
        return _inflate_partial(data) or data


def _inflate_partial(body: bytes) -> bytes:
    try:
        return zlib.decompressobj().decompress(body)
    except zlib.error:
        return b""


def _show_text(token: bytes) -> str:
    if token.startswith(b"("):
        return decode_literal(token[1:-1])
    return decode_hex(token[1:-1])


def _array_text(array: bytes) -> str:
    parts = []
    for item in _ARRAY_ITEM_RE.finditer(array):
        if item.group("lit"):
            parts.append(decode_literal(item.group("lit")[1:-1]))
        elif item.group("hex"):
            parts.append(decode_hex(item.group("hex")[1:-1]))
        elif float(item.group("num")) <= WORD_GAP:
            parts.append(" ")
    return "".join(parts)


def text_object_lines(segment: bytes) -> list[str]:
    """Lines of text shown by the text objects of one content stream."""
    lines: list[str] = []
    for text_object in _TEXT_OBJECT_RE.finditer(segment):
        current: list[str] = []
        for op in _TEXT_OP_RE.finditer(text_object.group(1)):
            if op.group("move"):
                if current:
                    lines.append("".join(current))
                    current = []
            elif op.group("array") is not None:
                current.append(_array_text(op.group("array")))
            else:
                if op.group("op") in (b"'", b'"') and current:
                    lines.append("".join(current))
                    current = []
                current.append(_show_text(op.group("show")))
        if current:
            lines.append("".join(current))
    return lines


def loose_strings(segment: bytes) -> list[str]:
    """Readable literal strings found anywhere in a segment."""
    found = []
    for match in _LOOSE_LITERAL_RE.finditer(segment):
        text = decode_literal(match.group(0)[1:-1])
        if is_readable(text):
            found.append(text)
    return found


def _clean(lines: list[str]) -> str:
    cleaned = []
    for line in lines:
        line = "".join(char for char in line if char.isprintable() or char == "\t")
        line = re.sub(r"[ \t]+", " ", line).strip()
        if line:
            cleaned.append(line)
    return "\n".join(cleaned)


def scan_text(pdf_bytes: bytes) -> str:
    """Recover text from raw PDF bytes. Returns an empty string when nothing is found."""
    segments = content_segments(pdf_bytes) or [pdf_bytes]

    lines = [line for segment in segments for line in text_object_lines(segment)]
    text = _clean(lines)
    if text:
        return text

    return _clean([text for segment in segments for text in loose_strings(segment)])
