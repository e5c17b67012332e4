# subtile_ocr/writers/__init__.py
from .srt_writer import build_srt, write_srt

__all__ = ['build_srt', 'write_srt']
