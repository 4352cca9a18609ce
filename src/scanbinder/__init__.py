"""
Scan Binder
===========

Reorganizes scanned pages into binders and repairs common scan defects.

Main components:
- Page repair (deskew, border smudge cleanup, blot erasing, inpainting)
- Document/page state with two workspaces and undo/redo
- Filename sequencing and gap detection
- PDF decode/encode and folder export
"""

__version__ = "1.0.0"
__author__ = "Scan Binder Team"
