"""
OCR boundary: turns receipt images (and single-page PDFs) into plain text.
"""

import io
from pathlib import Path

from .utils import IMAGE_EXTS, PDF_EXTS


def _lazy_import_ocr_deps():
    """Lazy import heavy OCR dependencies."""
    global pytesseract, PIL_Image, fitz
    import importlib
    pytesseract = importlib.import_module("pytesseract")
    PIL_Image = importlib.import_module("PIL.Image")
    fitz = importlib.import_module("fitz")  # pymupdf


# Initialize on first use
pytesseract = None
PIL_Image = None
fitz = None


def _image_to_text(img, lang: str) -> str:
    # Grayscale improves Tesseract accuracy on thermal-paper scans
    if img.mode != "L":
        img = img.convert("L")
    return pytesseract.image_to_string(img, lang=lang)


def recognize(image_bytes: bytes, lang: str = "eng") -> str:
    """OCR raw image bytes (PNG, JPEG, ...) to text."""
    if not image_bytes:
        raise ValueError("No image data provided")
    if pytesseract is None:
        _lazy_import_ocr_deps()

    with PIL_Image.open(io.BytesIO(image_bytes)) as img:
        return _image_to_text(img, lang)


def ocr_image_to_text(img_path: Path, lang: str = "eng") -> str:
    """OCR an image file to text."""
    if pytesseract is None:
        _lazy_import_ocr_deps()

    with PIL_Image.open(img_path) as img:
        return _image_to_text(img, lang)


def pdf_to_text(pdf_path: Path, lang: str = "eng") -> str:
    """
    Extract text from the first page of a PDF using PyMuPDF.

    Multi-page receipts are not supported, so later pages are ignored. If the
    page has no text layer it is rasterized and run through Tesseract.
    """
    if fitz is None:
        _lazy_import_ocr_deps()

    doc = fitz.open(pdf_path.as_posix())
    try:
        if doc.page_count == 0:
            return ""
        page = doc[0]
        text = page.get_text()
        if text.strip():
            return text

        print(f"[WARN] {pdf_path.name} has no text layer; running Tesseract on page 1")
        pix = page.get_pixmap(matrix=fitz.Matrix(2, 2), alpha=False)
        img = PIL_Image.open(io.BytesIO(pix.tobytes("png")))
        return _image_to_text(img, lang)
    finally:
        doc.close()


def extract_text(path: Path, lang: str = "eng") -> str:
    """
    Extract receipt text from an image or PDF file.

    Raises:
        ValueError: the file type is not supported.
    """
    ext = path.suffix.lower()
    if ext in IMAGE_EXTS:
        return ocr_image_to_text(path, lang)
    if ext in PDF_EXTS:
        return pdf_to_text(path, lang)
    raise ValueError(f"Unsupported file type: {path}")
