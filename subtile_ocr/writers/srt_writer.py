# subtile_ocr/writers/srt_writer.py
# -*- coding: utf-8 -*-
"""
SRT subtitle file writer.

Builds a pysubs2 document from (TimeSpan, text) pairs and saves it as SRT,
to a file or to stdout.
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable, Optional, Tuple

import pysubs2

from ..errors import WriteSrtError
from ..models.results import TimeSpan


def build_srt(subtitles: Iterable[Tuple[TimeSpan, str]]) -> pysubs2.SSAFile:
    """
    Build the subtitle document.

    Recognized text ends every line with a newline; surrounding whitespace
    is dropped and inner line breaks kept.
    """
    subs = pysubs2.SSAFile()
    for span, text in subtitles:
        lines = [line.rstrip() for line in text.strip().splitlines()]
        subs.append(
            pysubs2.SSAEvent(start=span.start_ms, end=span.end_ms, text='\\N'.join(lines))
        )
    return subs


def write_srt(subtitles: Iterable[Tuple[TimeSpan, str]], path: Optional[Path] = None) -> None:
    """
    Write subtitles as SRT to ``path``, or to stdout when ``path`` is None.

    Raises:
        WriteSrtError: the file or stdout could not be written
    """
    subs = build_srt(subtitles)
    try:
        if path is None:
            subs.to_file(sys.stdout, format_='srt')
            sys.stdout.flush()
        else:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            subs.save(str(path), encoding='utf-8', format_='srt')
    except OSError as e:
        raise WriteSrtError(path) from e
