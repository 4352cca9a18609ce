"""
I/O utilities for the scan binder.

Handles:
- PDF decoding to page rasters
- Image loading and saving
- PDF encoding of binders and text export of notes
- Writing finished documents to a folder
- JSON serialization of reports
"""

import io
import json
import logging
from pathlib import Path
from typing import List, Union, Optional, Any, Iterable
from dataclasses import asdict

import numpy as np

from ..config import BINDER_EXTENSION, NOTE_EXTENSION
from .documents import Document, DocumentType, Page, new_document, new_page
from .pixels import PixelBuffer

logger = logging.getLogger(__name__)

PDF_SOURCE = Union[str, Path, bytes]
IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.tiff', '.tif', '.bmp')


# ============================================================================
# PDF to Image Conversion
# ============================================================================

def load_pdf(
    source: PDF_SOURCE,
    dpi: int = 80,
    first_page: Optional[int] = None,
    last_page: Optional[int] = None
) -> List[PixelBuffer]:
    """
    Convert PDF pages to rasters using pdf2image (poppler backend).

    Args:
        source: Path to the PDF file, or its bytes
        dpi: Resolution for rendering
        first_page: First page to convert (1-indexed, None = first)
        last_page: Last page to convert (1-indexed, None = last)

    Returns:
        One PixelBuffer per page, in page order

    Raises:
        FileNotFoundError: If PDF file doesn't exist
        RuntimeError: If the PDF cannot be parsed or poppler is not installed
    """
    from pdf2image import convert_from_bytes, convert_from_path
    from pdf2image.exceptions import PDFPageCountError, PDFSyntaxError

    if not isinstance(source, bytes):
        source = Path(source)
        if not source.exists():
            raise FileNotFoundError(f"PDF file not found: {source}")

    try:
        if isinstance(source, bytes):
            logger.info(f"Converting {len(source)} PDF bytes to images at {dpi} DPI")
            pil_images = convert_from_bytes(
                source, dpi=dpi, first_page=first_page, last_page=last_page, fmt='png'
            )
        else:
            logger.info(f"Converting PDF to images: {source} at {dpi} DPI")
            pil_images = convert_from_path(
                source, dpi=dpi, first_page=first_page, last_page=last_page,
                fmt='png', thread_count=4
            )
    except (PDFPageCountError, PDFSyntaxError) as e:
        raise RuntimeError(f"Failed to parse PDF: {e}")
    except Exception as e:
        if "poppler" in str(e).lower():
            raise RuntimeError(
                "Poppler is not installed. Install with:\n"
                "  Windows: Download from https://github.com/oschwartz10612/poppler-windows\n"
                "  macOS: brew install poppler\n"
                "  Linux: sudo apt-get install poppler-utils"
            )
        raise

    pages = [PixelBuffer.from_pil(img) for img in pil_images]
    logger.info(f"Converted {len(pages)} pages from PDF")
    return pages


def load_document(pdf_path: Union[str, Path], dpi: int = 80) -> Document:
    """
    Decode a PDF into a binder document.

    Decode failures do not raise: the result is an empty binder named
    "Error: <file name>".
    """
    pdf_path = Path(pdf_path)
    try:
        pages = load_pdf(pdf_path, dpi=dpi)
    except Exception as e:
        logger.error(f"Failed to decode {pdf_path.name}: {e}")
        return new_document(f"Error: {pdf_path.name}")
    return new_document(pdf_path.name, pages)


# ============================================================================
# Image Loading
# ============================================================================

def load_image(image_path: Union[str, Path]) -> PixelBuffer:
    """
    Load an image from file.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If image cannot be decoded
    """
    import cv2

    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    img = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError(f"Could not decode image: {image_path}")

    if img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    elif img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    if img.dtype != np.uint8:
        img = (img / 257).astype(np.uint8)

    logger.debug(f"Loaded image: {image_path}, shape: {img.shape}")
    return PixelBuffer.from_array(img)


def load_image_pages(image_paths: Iterable[Union[str, Path]]) -> List[Page]:
    """
    Load standalone images as pages not yet attached to a document.

    Unreadable files are skipped with a warning.
    """
    pages = []
    for path in image_paths:
        try:
            pages.append(new_page(load_image(path)))
        except Exception as e:
            logger.warning(f"Failed to load {path}: {e}")
    return pages


def save_image(
    buffer: PixelBuffer,
    output_path: Union[str, Path],
    quality: int = 95
) -> Path:
    """
    Save a raster to file; the format follows the file extension.

    Returns:
        Path to the saved image
    """
    import cv2

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() in ('.jpg', '.jpeg'):
        bgr = cv2.cvtColor(np.ascontiguousarray(buffer.rgb), cv2.COLOR_RGB2BGR)
        cv2.imwrite(str(output_path), bgr, [cv2.IMWRITE_JPEG_QUALITY, quality])
    else:
        cv2.imwrite(str(output_path), cv2.cvtColor(buffer.data, cv2.COLOR_RGBA2BGRA))

    logger.debug(f"Saved image: {output_path}")
    return output_path


# ============================================================================
# Encoding
# ============================================================================

def _page_image(page: Page):
    from PIL import Image

    if page.image is None or page.image.is_empty():
        img = Image.new("RGB", (1, 1), "white")
    else:
        img = Image.fromarray(np.ascontiguousarray(page.image.rgb))
    if page.rotation % 360:
        # PIL turns counter-clockwise, page rotation is clockwise
        img = img.rotate(-page.rotation, expand=True)
    return img


def encode_pdf(
    pages: Iterable[Page],
    jpeg_quality: int = 80,
    blank_page_size=(595, 842)
) -> bytes:
    """
    Encode pages into a PDF, one raster per page.

    An empty page sequence still yields one blank page.
    """
    from PIL import Image

    images = [_page_image(p) for p in pages]
    if not images:
        images = [Image.new("RGB", tuple(blank_page_size), "white")]

    out = io.BytesIO()
    images[0].save(
        out,
        format="PDF",
        save_all=True,
        append_images=images[1:],
        resolution=72.0,
        quality=jpeg_quality
    )
    return out.getvalue()


def encode_document(document: Document, jpeg_quality: int = 80, blank_page_size=(595, 842)) -> bytes:
    """PDF bytes for a binder, UTF-8 text for a note."""
    if document.doc_type is DocumentType.NOTE:
        return document.note_content.encode("utf-8")
    return encode_pdf(document.pages, jpeg_quality, blank_page_size)


def output_filename(document: Document) -> str:
    extension = NOTE_EXTENSION if document.is_note else BINDER_EXTENSION
    name = document.name
    return name if name.lower().endswith(extension) else f"{name}{extension}"


def export_documents(
    documents: Iterable[Document],
    output_dir: Union[str, Path],
    jpeg_quality: int = 80
) -> List[Path]:
    """
    Write every document into a folder, replacing files of the same name.

    Returns:
        Paths written, in document order
    """
    output_dir = ensure_dir(output_dir)
    written = []
    for doc in documents:
        path = output_dir / output_filename(doc)
        data = encode_document(doc, jpeg_quality)
        if path.exists():
            path.unlink()
        path.write_bytes(data)
        logger.info(f"Exported {path.name} ({len(doc.pages)} pages)")
        written.append(path)
    return written


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars, dataclasses and paths."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """Save data to a JSON file and return its path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of input file or directory.

    Returns:
        One of: 'pdf', 'image', 'folder', 'unknown'
    """
    input_path = Path(input_path)

    if input_path.is_dir():
        return 'folder'
    if not input_path.exists():
        return 'unknown'

    suffix = input_path.suffix.lower()
    if suffix == '.pdf':
        return 'pdf'
    elif suffix in IMAGE_EXTENSIONS:
        return 'image'

    return 'unknown'
