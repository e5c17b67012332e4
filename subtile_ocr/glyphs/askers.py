# subtile_ocr/glyphs/askers.py
"""Concrete GlyphCharAsker implementations."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import IO

from .glyph import image_to_rows
from .pieces import Piece
from .recognizer import GlyphCharAsker, GlyphResult


class TerminalAsker(GlyphCharAsker):
    """
    Interactive asker: draws the piece in the terminal and reads a line.

    An empty answer asks again. End of input or Ctrl+C aborts.
    """

    def __init__(self, stdin: IO[str] | None = None, stdout: IO[str] | None = None):
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout

    def render(self, piece: Piece) -> str:
        rows = image_to_rows(piece.image)
        width = piece.area.width
        border = "+" + "-" * width + "+"
        framed = [border] + [f"|{row}|" for row in rows] + [border]
        area = piece.area
        framed.append(f"({area.left}, {area.top}) -> ({area.right}, {area.bottom})")
        return "\n".join(framed)

    def ask_char_for_glyph(self, piece: Piece) -> GlyphResult:
        out = self.stdout
        out.write(self.render(piece) + "\n")
        while True:
            out.write("Characters for this glyph (Ctrl+D to stop): ")
            out.flush()
            try:
                line = self.stdin.readline()
            except KeyboardInterrupt:
                out.write("\n")
                return GlyphResult.abort()
            if not line:
                out.write("\n")
                return GlyphResult.abort()
            answer = line.rstrip("\r\n")
            if answer:
                return GlyphResult.chars(answer)


class RejectAsker(GlyphCharAsker):
    """Headless asker: any unknown glyph stops the recognition."""

    def ask_char_for_glyph(self, piece: Piece) -> GlyphResult:
        return GlyphResult.abort()


class MappingAsker(GlyphCharAsker):
    """Scripted asker answering from a list, then aborting."""

    def __init__(self, answers: Iterable[str]):
        self._answers = list(answers)
        self.asked: list[Piece] = []

    def ask_char_for_glyph(self, piece: Piece) -> GlyphResult:
        self.asked.append(piece)
        if len(self.asked) > len(self._answers):
            return GlyphResult.abort()
        return GlyphResult.chars(self._answers[len(self.asked) - 1])
