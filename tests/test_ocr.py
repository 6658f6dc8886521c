"""Tests for the OCR boundary (Tesseract/Pillow/PyMuPDF are mocked)."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from receipt_text_parser.core import ocr


@pytest.fixture
def fake_tesseract(monkeypatch):
    """Replace pytesseract and PIL.Image with mocks."""
    tesseract = MagicMock()
    tesseract.image_to_string.return_value = "SHOP\nTotal 1.00"

    gray = MagicMock(mode="L")
    img = MagicMock(mode="RGB")
    img.convert.return_value = gray
    img.__enter__.return_value = img

    pil_image = MagicMock()
    pil_image.open.return_value = img

    monkeypatch.setattr(ocr, "pytesseract", tesseract)
    monkeypatch.setattr(ocr, "PIL_Image", pil_image)
    return tesseract, pil_image, img, gray


def test_recognize_bytes(fake_tesseract):
    tesseract, pil_image, img, gray = fake_tesseract
    assert ocr.recognize(b"\x89PNG...", lang="nld") == "SHOP\nTotal 1.00"
    img.convert.assert_called_once_with("L")
    tesseract.image_to_string.assert_called_once_with(gray, lang="nld")


def test_recognize_closes_image(fake_tesseract):
    tesseract, pil_image, img, gray = fake_tesseract
    ocr.recognize(b"\x89PNG...")
    img.__exit__.assert_called_once()


def test_recognize_empty_bytes():
    with pytest.raises(ValueError):
        ocr.recognize(b"")


def test_image_file(fake_tesseract, tmp_path):
    tesseract, pil_image, img, gray = fake_tesseract
    path = tmp_path / "receipt.JPG"
    path.write_bytes(b"fake")
    assert ocr.extract_text(path) == "SHOP\nTotal 1.00"
    pil_image.open.assert_called_once_with(path)


def test_unsupported_file_type(tmp_path):
    with pytest.raises(ValueError, match="Unsupported file type"):
        ocr.extract_text(tmp_path / "notes.txt")


def test_pdf_with_text_layer(monkeypatch):
    page = MagicMock()
    page.get_text.return_value = "SHOP\nTotal 2.00\n"
    doc = MagicMock(page_count=3)
    doc.__getitem__.return_value = page
    fitz = MagicMock()
    fitz.open.return_value = doc
    monkeypatch.setattr(ocr, "fitz", fitz)

    assert ocr.extract_text(Path("receipt.pdf")) == "SHOP\nTotal 2.00\n"
    doc.__getitem__.assert_called_once_with(0)
    doc.close.assert_called_once()


def test_pdf_without_text_layer_falls_back_to_tesseract(monkeypatch, fake_tesseract):
    tesseract, pil_image, img, gray = fake_tesseract
    page = MagicMock()
    page.get_text.return_value = "   "
    page.get_pixmap.return_value.tobytes.return_value = b"png-bytes"
    doc = MagicMock(page_count=1)
    doc.__getitem__.return_value = page
    fitz = MagicMock()
    fitz.open.return_value = doc
    monkeypatch.setattr(ocr, "fitz", fitz)

    assert ocr.pdf_to_text(Path("scan.pdf")) == "SHOP\nTotal 1.00"
    tesseract.image_to_string.assert_called_once()


def test_pdf_without_pages(monkeypatch):
    doc = MagicMock(page_count=0)
    fitz = MagicMock()
    fitz.open.return_value = doc
    monkeypatch.setattr(ocr, "fitz", fitz)
    assert ocr.pdf_to_text(Path("empty.pdf")) == ""
