"""Tests for per-type text extraction strategies and their failure policies."""

import asyncio
from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
from docx import Document
from PIL import Image

from cv_pipeline import text_extractor
from cv_pipeline.errors import ExtractionFailed, UnsupportedFileType
from cv_pipeline.text_extractor import EXTRACTION_STRATEGIES, clean_cv_text, extract_text


def _docx_bytes(*paragraphs):
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


def _png_bytes():
    buf = BytesIO()
    Image.new("RGB", (20, 20), "white").save(buf, format="PNG")
    return buf.getvalue()


def _raise(message):
    def extractor(data):
        raise RuntimeError(message)
    return extractor


class TestFileTypeDispatch:

    @pytest.mark.parametrize("file_type", ["bmp", "txt", "", "pdfx"])
    def test_unsupported_type(self, file_type):
        with pytest.raises(UnsupportedFileType, match="Unsupported file type"):
            asyncio.run(extract_text(b"data", file_type))

    @pytest.mark.parametrize("file_type", ["PDF", "Pdf", ".pdf", " pdf "])
    def test_type_match_is_case_insensitive(self, file_type):
        strategies = [("fake", lambda data: "pdf text")]
        with patch.dict(EXTRACTION_STRATEGIES, {"pdf": strategies}):
            assert asyncio.run(extract_text(b"%PDF", file_type)) == "pdf text"


class TestPdfStrategies:

    def test_primary_success_skips_fallback(self):
        ocr = MagicMock(return_value="ocr text")
        with patch.dict(EXTRACTION_STRATEGIES, {"pdf": [("text", lambda d: "layer text"), ("ocr", ocr)]}):
            assert asyncio.run(extract_text(b"%PDF", "pdf")) == "layer text"
        ocr.assert_not_called()

    def test_falls_back_when_primary_raises(self):
        strategies = [("text", _raise("broken xref")), ("ocr", lambda d: "ocr text")]
        with patch.dict(EXTRACTION_STRATEGIES, {"pdf": strategies}):
            assert asyncio.run(extract_text(b"%PDF", "pdf")) == "ocr text"

    def test_falls_back_when_primary_returns_nothing(self):
        strategies = [("text", lambda d: "  \n"), ("ocr", lambda d: "scanned text")]
        with patch.dict(EXTRACTION_STRATEGIES, {"pdf": strategies}):
            assert asyncio.run(extract_text(b"%PDF", "pdf")) == "scanned text"

    def test_total_failure_surfaces_last_error(self):
        strategies = [("text", _raise("first")), ("ocr", _raise("tesseract missing"))]
        with patch.dict(EXTRACTION_STRATEGIES, {"pdf": strategies}):
            with pytest.raises(ExtractionFailed, match="tesseract missing"):
                asyncio.run(extract_text(b"%PDF", "pdf"))

    def test_all_empty_returns_empty_text(self):
        strategies = [("text", lambda d: ""), ("ocr", lambda d: "")]
        with patch.dict(EXTRACTION_STRATEGIES, {"pdf": strategies}):
            assert asyncio.run(extract_text(b"%PDF", "pdf")) == ""

    def test_pdfplumber_text_layer_joins_pages(self):
        pages = [MagicMock(), MagicMock(), MagicMock()]
        pages[0].extract_text.return_value = "Page one"
        pages[1].extract_text.return_value = None
        pages[2].extract_text.return_value = "Page three"
        pdf = MagicMock()
        pdf.pages = pages
        pdf.__enter__.return_value = pdf
        with patch.object(text_extractor.pdfplumber, "open", return_value=pdf):
            assert text_extractor._extract_pdf_text_layer(b"%PDF") == "Page one\n\nPage three"

    def test_pdf_ocr_renders_each_page(self):
        page = MagicMock()
        pdf = MagicMock()
        pdf.pages = [page, page]
        pdf.__enter__.return_value = pdf
        with patch.object(text_extractor.pdfplumber, "open", return_value=pdf), \
                patch.object(text_extractor.pytesseract, "image_to_string", return_value="scan") as ocr:
            assert text_extractor._extract_pdf_ocr(b"%PDF") == "scan\n\nscan"
        assert ocr.call_count == 2
        page.to_image.assert_called_with(resolution=text_extractor.OCR_PDF_RESOLUTION)


class TestDocx:

    def test_extracts_paragraphs(self):
        data = _docx_bytes("Jane Doe", "", "Python developer")
        assert asyncio.run(extract_text(data, "docx")) == "Jane Doe\n\nPython developer"

    def test_extracts_table_cells(self):
        doc = Document()
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Skills"
        table.rows[0].cells[1].text = "Go, SQL"
        buf = BytesIO()
        doc.save(buf)
        assert "Skills | Go, SQL" in asyncio.run(extract_text(buf.getvalue(), "docx"))

    def test_corrupt_docx_degrades_to_empty(self):
        assert asyncio.run(extract_text(b"not a zip file", "docx")) == ""


class TestImages:

    @pytest.mark.parametrize("file_type", ["png", "jpg", "jpeg", "JPG"])
    def test_ocr_on_image(self, file_type):
        with patch.object(text_extractor.pytesseract, "image_to_string", return_value="Jane Doe\nEngineer"):
            assert asyncio.run(extract_text(_png_bytes(), file_type)) == "Jane Doe\nEngineer"

    def test_ocr_failure_propagates(self):
        with patch.object(text_extractor.pytesseract, "image_to_string", side_effect=RuntimeError("no tesseract")):
            with pytest.raises(ExtractionFailed, match="no tesseract"):
                asyncio.run(extract_text(_png_bytes(), "png"))

    def test_invalid_image_propagates(self):
        with pytest.raises(ExtractionFailed):
            asyncio.run(extract_text(b"not an image", "png"))


class TestCleanCvText:

    def test_collapses_whitespace(self):
        assert clean_cv_text("Jane   Doe\n\n\n\nEngineer  ") == "Jane Doe\n\nEngineer"

    def test_truncates_long_text(self):
        cleaned = clean_cv_text("a" * 100, max_chars=10)
        assert cleaned.startswith("a" * 10)
        assert cleaned.endswith("[Content truncated.]")

    def test_blank_text(self):
        assert clean_cv_text("   ") == ""
