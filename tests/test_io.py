"""
Tests for decoding, encoding and export.
"""

import json
import shutil
import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def _poppler_available():
    try:
        import pdf2image  # noqa: F401
    except ImportError:
        return False
    return shutil.which("pdftoppm") is not None


needs_poppler = pytest.mark.skipif(not _poppler_available(), reason="pdf2image/poppler not installed")


@pytest.fixture
def marked_page():
    """Wide page with a dark mark in the top-left corner."""
    from scanbinder.utils.pixels import PixelBuffer

    img = np.full((100, 160, 3), 255, dtype=np.uint8)
    img[0:20, 0:20] = 0
    return PixelBuffer.from_array(img)


class TestImages:
    """Test image loading and saving."""

    def test_png_round_trip(self, tmp_path, marked_page):
        from scanbinder.utils.io import load_image, save_image

        path = save_image(marked_page, tmp_path / "page.png")

        assert load_image(path) == marked_page

    def test_jpeg_saved(self, tmp_path, marked_page):
        from scanbinder.utils.io import load_image, save_image

        path = save_image(marked_page, tmp_path / "sub" / "page.jpg")

        assert load_image(path).size == marked_page.size

    def test_missing_image(self, tmp_path):
        from scanbinder.utils.io import load_image

        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "nope.png")

    def test_undecodable_image(self, tmp_path):
        from scanbinder.utils.io import load_image

        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")

        with pytest.raises(ValueError):
            load_image(path)

    def test_load_image_pages_skips_bad_files(self, tmp_path, marked_page):
        from scanbinder.utils.io import load_image_pages, save_image

        good = save_image(marked_page, tmp_path / "good.png")
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"junk")

        pages = load_image_pages([good, bad])

        assert len(pages) == 1
        assert pages[0].image == marked_page


class TestEncoding:
    """Test PDF encoding and export."""

    def test_empty_document_encodes_blank_page(self):
        from scanbinder.utils.io import encode_pdf

        data = encode_pdf([])

        assert data.startswith(b"%PDF")

    def test_rotated_pages_encode(self, marked_page):
        from scanbinder.utils.documents import new_page
        from scanbinder.utils.io import _page_image, encode_pdf

        page = new_page(marked_page, rotation=90)
        img = _page_image(page)

        # Clockwise quarter turn: tall page, mark now top-right
        assert img.size == (100, 160)
        assert img.getpixel((95, 5)) == (0, 0, 0)
        assert encode_pdf([page, new_page(marked_page)]).startswith(b"%PDF")

    def test_note_encodes_text(self):
        from scanbinder.utils.documents import DocumentType, new_document
        from scanbinder.utils.io import encode_document

        memo = new_document("Memo.txt", doc_type=DocumentType.NOTE, note_content="héllo")

        assert encode_document(memo) == "héllo".encode("utf-8")

    def test_output_filename(self):
        from scanbinder.utils.documents import DocumentType, new_document
        from scanbinder.utils.io import output_filename

        assert output_filename(new_document("Report")) == "Report.pdf"
        assert output_filename(new_document("Report.PDF")) == "Report.PDF"
        assert output_filename(new_document("Memo", doc_type=DocumentType.NOTE)) == "Memo.txt"

    def test_export_documents(self, tmp_path, marked_page):
        from scanbinder.utils.documents import DocumentType, new_document
        from scanbinder.utils.io import export_documents

        (tmp_path / "Box_001.pdf").write_bytes(b"old")
        docs = [
            new_document("Box_001.pdf", [marked_page]),
            new_document("Memo.txt", doc_type=DocumentType.NOTE, note_content="hi"),
        ]

        written = export_documents(docs, tmp_path)

        assert [p.name for p in written] == ["Box_001.pdf", "Memo.txt"]
        assert (tmp_path / "Box_001.pdf").read_bytes().startswith(b"%PDF")
        assert (tmp_path / "Memo.txt").read_text(encoding="utf-8") == "hi"


class TestDecoding:
    """Test PDF decoding."""

    def test_missing_pdf_gives_error_document(self, tmp_path):
        from scanbinder.utils.io import load_document

        doc = load_document(tmp_path / "gone.pdf")

        assert doc.name == "Error: gone.pdf"
        assert doc.pages == ()

    @needs_poppler
    def test_missing_pdf_raises(self, tmp_path):
        from scanbinder.utils.io import load_pdf

        with pytest.raises(FileNotFoundError):
            load_pdf(tmp_path / "gone.pdf")

    @needs_poppler
    def test_decode_encoded_document(self, tmp_path, marked_page):
        from scanbinder.utils.documents import new_page
        from scanbinder.utils.io import encode_pdf, load_document, load_pdf

        data = encode_pdf([new_page(marked_page), new_page(marked_page, rotation=90)])
        path = tmp_path / "Box_002.pdf"
        path.write_bytes(data)

        assert len(load_pdf(data, dpi=72)) == 2

        doc = load_document(path, dpi=72)
        assert doc.name == "Box_002.pdf"
        assert [p.original_index for p in doc.pages] == [1, 2]
        assert doc.pages[0].image.width > doc.pages[0].image.height
        assert doc.pages[1].image.width < doc.pages[1].image.height

    @needs_poppler
    def test_corrupt_pdf_gives_error_document(self, tmp_path):
        from scanbinder.utils.io import load_document

        path = tmp_path / "bad.pdf"
        path.write_bytes(b"%PDF-1.4 garbage")

        doc = load_document(path)

        assert doc.name == "Error: bad.pdf"


class TestHelpers:
    """Test JSON and path helpers."""

    def test_save_json(self, tmp_path):
        from scanbinder.utils.io import save_json
        from scanbinder.utils.sequencing import SequenceResult

        path = save_json(
            {"count": np.int64(3), "result": SequenceResult("001", "05", 2), "path": Path("a")},
            tmp_path / "out" / "report.json"
        )
        data = json.loads(path.read_text(encoding="utf-8"))

        assert data["count"] == 3
        assert data["result"]["group_name"] == "001"
        assert data["path"] == "a"

    def test_detect_input_type(self, tmp_path):
        from scanbinder.utils.io import detect_input_type

        (tmp_path / "a.pdf").write_bytes(b"")
        (tmp_path / "b.PNG").write_bytes(b"")
        (tmp_path / "c.txt").write_bytes(b"")

        assert detect_input_type(tmp_path) == "folder"
        assert detect_input_type(tmp_path / "a.pdf") == "pdf"
        assert detect_input_type(tmp_path / "b.PNG") == "image"
        assert detect_input_type(tmp_path / "c.txt") == "unknown"
        assert detect_input_type(tmp_path / "missing.pdf") == "unknown"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
