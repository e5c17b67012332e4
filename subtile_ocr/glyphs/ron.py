# subtile_ocr/glyphs/ron.py
"""
Minimal RON (Rusty Object Notation) reader and writer.

Covers the subset used by glyph library files:
    - sequences ``[a, b]`` <-> list
    - tuples ``(a, b)`` <-> tuple
    - anonymous or named structs ``(key: value)`` <-> dict
    - ``Some(x)`` / ``None`` <-> Some(x) / None
    - strings, integers, floats, booleans
    - ``//`` and ``/* */`` comments, trailing commas, ``#![...]`` headers

Pretty output follows the default layout of the reference serializer:
four space indentation, one sequence element or struct field per line,
trailing commas, tuples kept on one line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Deepest nesting loads() accepts
MAX_DEPTH = 128


@dataclass(frozen=True)
class Some:
    """Present value of an optional field."""

    value: Any


class RonSyntaxError(ValueError):
    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        super().__init__(f"{message} at {line}:{column}")


class RonTypeError(TypeError):
    """A Python value has no RON representation."""


# =============================================================================
# Writer
# =============================================================================

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def _quote(text: str) -> str:
    out = ['"']
    for char in text:
        if char in _ESCAPES:
            out.append(_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{{{ord(char):x}}}")
        else:
            out.append(char)
    out.append('"')
    return "".join(out)


def dumps(value: Any, pretty: bool = True, indent: str = "    ") -> str:
    """Serialize ``value`` to RON text."""
    if pretty:
        return _write_pretty(value, 0, indent)
    return _write_compact(value)


def _write_scalar(value: Any) -> str | None:
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        text = repr(value)
        return text if any(c in text for c in ".einf") else f"{text}.0"
    if isinstance(value, str):
        return _quote(value)
    return None


def _write_compact(value: Any) -> str:
    scalar = _write_scalar(value)
    if scalar is not None:
        return scalar
    if isinstance(value, Some):
        return f"Some({_write_compact(value.value)})"
    if isinstance(value, list):
        return "[" + ",".join(_write_compact(item) for item in value) + "]"
    if isinstance(value, tuple):
        return "(" + ",".join(_write_compact(item) for item in value) + ")"
    if isinstance(value, dict):
        fields = ",".join(f"{_field_name(k)}:{_write_compact(v)}" for k, v in value.items())
        return f"({fields})"
    raise RonTypeError(f"Cannot serialize {type(value).__name__} to ron")


def _write_pretty(value: Any, depth: int, indent: str) -> str:
    scalar = _write_scalar(value)
    if scalar is not None:
        return scalar
    if isinstance(value, Some):
        return f"Some({_write_pretty(value.value, depth, indent)})"

    inner = indent * (depth + 1)
    outer = indent * depth
    if isinstance(value, list):
        if not value:
            return "[]"
        items = "".join(
            f"{inner}{_write_pretty(item, depth + 1, indent)},\n" for item in value
        )
        return f"[\n{items}{outer}]"
    if isinstance(value, tuple):
        return "(" + ", ".join(_write_pretty(item, depth, indent) for item in value) + ")"
    if isinstance(value, dict):
        if not value:
            return "()"
        fields = "".join(
            f"{inner}{_field_name(k)}: {_write_pretty(v, depth + 1, indent)},\n"
            for k, v in value.items()
        )
        return f"(\n{fields}{outer})"
    raise RonTypeError(f"Cannot serialize {type(value).__name__} to ron")


def _field_name(name: Any) -> str:
    if not isinstance(name, str) or not name.isidentifier():
        raise RonTypeError(f"Invalid struct field name {name!r}")
    return name


# =============================================================================
# Reader
# =============================================================================


def loads(text: str) -> Any:
    """Parse RON text into Python values."""
    parser = _Parser(text)
    parser.skip_header()
    value = parser.parse_value()
    parser.skip_blank()
    if not parser.at_end():
        parser.fail("Trailing characters")
    return value


class _Parser:
    def __init__(self, text: str, max_depth: int = MAX_DEPTH):
        self.text = text
        self.pos = 0
        self.depth = 0
        self.max_depth = max_depth

    # ---------------------------------------------------------------- helpers
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def fail(self, message: str):
        line = self.text.count("\n", 0, self.pos) + 1
        column = self.pos - (self.text.rfind("\n", 0, self.pos) + 1) + 1
        raise RonSyntaxError(message, line, column)

    def expect(self, char: str):
        self.skip_blank()
        if self.peek() != char:
            found = self.peek() or "end of input"
            self.fail(f"Expected '{char}', found '{found}'")
        self.pos += 1

    def skip_blank(self):
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end < 0 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end < 0:
                    self.fail("Unterminated block comment")
                self.pos = end + 2
            else:
                break

    def skip_header(self):
        self.skip_blank()
        while self.text.startswith("#!", self.pos):
            end = self.text.find("]", self.pos)
            if end < 0:
                self.fail("Unterminated attribute")
            self.pos = end + 1
            self.skip_blank()

    def read_identifier(self) -> str:
        start = self.pos
        text = self.text
        while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] == "_"):
            self.pos += 1
        return text[start : self.pos]

    # ----------------------------------------------------------------- values
    def parse_value(self) -> Any:
        if self.depth >= self.max_depth:
            self.fail(f"Nesting deeper than {self.max_depth} levels")
        self.depth += 1
        try:
            return self._parse_value()
        finally:
            self.depth -= 1

    def _parse_value(self) -> Any:
        self.skip_blank()
        char = self.peek()
        if not char:
            self.fail("Unexpected end of input")
        if char == "[":
            return self.parse_list()
        if char == "(":
            return self.parse_parens()
        if char == '"':
            return self.parse_string()
        if char == "r" and self.text.startswith(('r"', "r#"), self.pos):
            return self.parse_raw_string()
        if char in "+-." or char.isdigit():
            return self.parse_number()
        if char.isalpha() or char == "_":
            return self.parse_identifier_value()
        self.fail(f"Unexpected character '{char}'")

    def parse_list(self) -> list:
        self.expect("[")
        items = []
        while True:
            self.skip_blank()
            if self.peek() == "]":
                self.pos += 1
                return items
            items.append(self.parse_value())
            self.skip_blank()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "]":
                self.fail("Expected ',' or ']'")

    def _struct_ahead(self) -> bool:
        start = self.pos
        self.skip_blank()
        is_struct = False
        if self.peek().isalpha() or self.peek() == "_":
            self.read_identifier()
            self.skip_blank()
            # "::" never appears in field syntax
            is_struct = self.peek() == ":"
        self.pos = start
        return is_struct

    def parse_parens(self) -> tuple | dict:
        self.expect("(")
        if self._struct_ahead():
            return self._parse_struct_body()

        items = []
        while True:
            self.skip_blank()
            if self.peek() == ")":
                self.pos += 1
                return tuple(items)
            items.append(self.parse_value())
            self.skip_blank()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != ")":
                self.fail("Expected ',' or ')'")

    def _parse_struct_body(self) -> dict:
        fields: dict[str, Any] = {}
        while True:
            self.skip_blank()
            if self.peek() == ")":
                self.pos += 1
                return fields
            name = self.read_identifier()
            if not name:
                self.fail("Expected a field name")
            if name in fields:
                self.fail(f"Duplicate field '{name}'")
            self.expect(":")
            fields[name] = self.parse_value()
            self.skip_blank()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != ")":
                self.fail("Expected ',' or ')'")

    def parse_identifier_value(self) -> Any:
        name = self.read_identifier()
        if name == "true":
            return True
        if name == "false":
            return False
        if name == "None":
            return None
        if name == "Some":
            self.expect("(")
            value = self.parse_value()
            self.skip_blank()
            if self.peek() == ",":
                self.pos += 1
            self.expect(")")
            return Some(value)
        self.skip_blank()
        if self.peek() == "(":
            # named struct or tuple struct, the name carries no data
            return self.parse_parens()
        self.fail(f"Unknown identifier '{name}'")

    def parse_number(self) -> int | float:
        start = self.pos
        text = self.text
        if self.peek() in "+-":
            self.pos += 1
        if text.startswith(("0x", "0o", "0b"), self.pos):
            base = {"x": 16, "o": 8, "b": 2}[text[self.pos + 1]]
            self.pos += 2
            digits_start = self.pos
            while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] == "_"):
                self.pos += 1
            digits = text[digits_start : self.pos].replace("_", "")
            sign = -1 if text[start] == "-" else 1
            try:
                return sign * int(digits, base)
            except ValueError:
                self.fail(f"Invalid number '{text[start:self.pos]}'")

        is_float = False
        while self.pos < len(text):
            char = text[self.pos]
            if char.isdigit() or char == "_":
                self.pos += 1
            elif char in ".eE" or (char in "+-" and text[self.pos - 1] in "eE"):
                is_float = True
                self.pos += 1
            else:
                break
        literal = text[start : self.pos].replace("_", "")
        try:
            return float(literal) if is_float else int(literal)
        except ValueError:
            self.fail(f"Invalid number '{literal}'")

    def parse_string(self) -> str:
        self.expect('"')
        text = self.text
        out = []
        while True:
            if self.pos >= len(text):
                self.fail("Unterminated string")
            char = text[self.pos]
            self.pos += 1
            if char == '"':
                return "".join(out)
            if char != "\\":
                out.append(char)
                continue
            escape = self.peek()
            self.pos += 1
            simple = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", "\\": "\\", '"': '"', "'": "'"}
            if escape in simple:
                out.append(simple[escape])
            elif escape == "u":
                out.append(self._parse_unicode_escape())
            elif escape == "x":
                hex_digits = text[self.pos : self.pos + 2]
                self.pos += 2
                out.append(self._char_from_hex(hex_digits))
            else:
                self.fail(f"Invalid escape '\\{escape}'")

    def _parse_unicode_escape(self) -> str:
        text = self.text
        if self.peek() == "{":
            end = text.find("}", self.pos)
            if end < 0:
                self.fail("Unterminated unicode escape")
            hex_digits = text[self.pos + 1 : end]
            self.pos = end + 1
        else:
            hex_digits = text[self.pos : self.pos + 4]
            self.pos += 4
        return self._char_from_hex(hex_digits)

    def _char_from_hex(self, hex_digits: str) -> str:
        try:
            return chr(int(hex_digits, 16))
        except ValueError:
            self.fail(f"Invalid escape value '{hex_digits}'")

    def parse_raw_string(self) -> str:
        self.pos += 1  # r
        hashes = 0
        while self.peek() == "#":
            hashes += 1
            self.pos += 1
        self.expect('"')
        terminator = '"' + "#" * hashes
        end = self.text.find(terminator, self.pos)
        if end < 0:
            self.fail("Unterminated raw string")
        value = self.text[self.pos : end]
        self.pos = end + len(terminator)
        return value
