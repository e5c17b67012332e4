# subtile_ocr/models/settings.py
"""Application settings dataclass.

Single typed view over the configuration used by the conversion pipeline.
Settings are organized by category:
- Engine: which recognizer runs (glyph cache or Tesseract)
- Glyphs: location and file format of the glyph library
- Binarization: thresholds and border used to prepare images
- Tesseract: language, data directory, engine variables, DPI, workers
- Debug: image dumps
- Logging: verbosity
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import OcrEngine


@dataclass
class AppSettings:
    """Complete settings with typed fields and defaults."""

    # =========================================================================
    # Engine
    # =========================================================================
    ocr_engine: OcrEngine = OcrEngine.TESSERACT

    # =========================================================================
    # Glyph library
    # =========================================================================
    glyph_library_dir: str = ".glyphs"
    glyph_compact_format: bool = False

    # =========================================================================
    # Binarization
    # =========================================================================
    luma_threshold: float = 0.6
    alpha_threshold: int = 1
    border: int = 5
    pgs_luma_threshold: int = 100  # PGS palette luma, 0 - 255
    pgs_alpha_threshold: int = 100  # PGS palette alpha, 0 - 255

    # =========================================================================
    # Tesseract
    # =========================================================================
    tessdata_dir: str | None = None
    language: str = "eng"
    tesseract_config: dict[str, str] = field(default_factory=dict)
    dpi: int = 150
    max_workers: int = 0  # 0 = one worker per CPU

    # =========================================================================
    # Debug
    # =========================================================================
    dump_images: bool = False
    dump_raw_images: bool = False
    dump_pieces: bool = False
    dump_dir: str = "dumps"

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = "WARNING"

    @classmethod
    def from_config(cls, cfg: dict) -> AppSettings:
        """Create AppSettings from a config dictionary, filling defaults."""
        tessdata_dir = cfg.get("tessdata_dir") or None
        return cls(
            ocr_engine=OcrEngine(cfg.get("ocr_engine", "tesseract")),
            glyph_library_dir=str(cfg.get("glyph_library_dir", ".glyphs")),
            glyph_compact_format=bool(cfg.get("glyph_compact_format", False)),
            luma_threshold=float(cfg.get("luma_threshold", 0.6)),
            alpha_threshold=int(cfg.get("alpha_threshold", 1)),
            border=int(cfg.get("border", 5)),
            pgs_luma_threshold=int(cfg.get("pgs_luma_threshold", 100)),
            pgs_alpha_threshold=int(cfg.get("pgs_alpha_threshold", 100)),
            tessdata_dir=str(tessdata_dir) if tessdata_dir else None,
            language=str(cfg.get("language", "eng")),
            tesseract_config={
                str(k): str(v) for k, v in (cfg.get("tesseract_config") or {}).items()
            },
            dpi=int(cfg.get("dpi", 150)),
            max_workers=int(cfg.get("max_workers", 0)),
            dump_images=bool(cfg.get("dump_images", False)),
            dump_raw_images=bool(cfg.get("dump_raw_images", False)),
            dump_pieces=bool(cfg.get("dump_pieces", False)),
            dump_dir=str(cfg.get("dump_dir", "dumps")),
            log_level=str(cfg.get("log_level", "WARNING")).upper(),
        )

    def to_dict(self) -> dict:
        """Convert AppSettings to a dictionary for serialization."""
        from dataclasses import fields

        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            # Convert enums to their string values
            if isinstance(value, OcrEngine):
                result[f.name] = value.value
            elif isinstance(value, dict):
                result[f.name] = dict(value)
            else:
                result[f.name] = value
        return result
