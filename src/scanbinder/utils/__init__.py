"""
Utility modules for the scan binder.
"""

from .pixels import PixelBuffer
from .background import estimate_background_color
from .skew import detect_skew_angle
from .regions import Region, find_blot, find_border_artifacts
from .images import rotate, crop, inpaint_region, erase_blot, repair_border_artifacts, deskew
from .sequencing import sequence_key, sort_names, analyze_sequences, SequenceResult
from .documents import AppState, Document, Page, Workspace, DocumentType, reduce
from .io import load_pdf, load_image, load_document, encode_document, export_documents, save_json
from .store import DocumentStore, PageTaskRunner

__all__ = [
    # Pixels
    "PixelBuffer",
    # Analysis
    "estimate_background_color", "detect_skew_angle",
    "Region", "find_blot", "find_border_artifacts",
    # Repairs
    "rotate", "crop", "inpaint_region", "erase_blot", "repair_border_artifacts", "deskew",
    # Sequencing
    "sequence_key", "sort_names", "analyze_sequences", "SequenceResult",
    # State
    "AppState", "Document", "Page", "Workspace", "DocumentType", "reduce",
    # IO
    "load_pdf", "load_image", "load_document", "encode_document", "export_documents", "save_json",
    # Concurrency
    "DocumentStore", "PageTaskRunner",
]
