"""Document field extraction and classification over OCR block output."""

__version__ = "0.1.0"
