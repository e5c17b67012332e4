# subtile_ocr/models/enums.py
# -*- coding: utf-8 -*-
from enum import Enum

class OcrEngine(Enum):
    GLYPH = 'glyph'
    TESSERACT = 'tesseract'

class SubtitleFormat(Enum):
    VOBSUB = 'vobsub'
    PGS = 'pgs'
