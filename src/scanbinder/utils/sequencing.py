"""
Document sequencing by filename.

Provides:
- The integer sort key derived from a document name
- Natural (numeric-aware) tie breaking
- Gap detection over folders of numbered files
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from ..config import (
    COVER_MARKER,
    COVER_SORT_KEY,
    TABLE_OF_CONTENTS_SORT_KEY,
    UNNUMBERED_SORT_KEY,
)

logger = logging.getLogger(__name__)

_EXTENSION = re.compile(r"\.[^/.]+$")
_PDF_EXTENSION = re.compile(r"\.pdf$", re.IGNORECASE)
_TRAILING_DIGITS = re.compile(r"(\d+)$")
_ANY_DIGITS = re.compile(r"\d+")
_ALL_ZEROS = re.compile(r"^0+$")
_BOX_FOLDER = re.compile(r"^\d{3}$")


def strip_extension(name: str) -> str:
    return _EXTENSION.sub("", name)


def split_extension(name: str) -> Tuple[str, str]:
    """Split "a_01.pdf" into ("a_01", ".pdf"); the extension may be empty."""
    match = _EXTENSION.search(name)
    if not match:
        return name, ""
    return name[:match.start()], match.group(0)


def display_name(name: str) -> str:
    """Drop a .pdf extension and keep the last dotted segment."""
    if not name:
        return ""
    stem = _PDF_EXTENSION.sub("", name)
    return stem.split(".")[-1] or stem


def _number_of(stem: str):
    match = _TRAILING_DIGITS.search(stem)
    if match:
        return int(match.group(1))
    match = _ANY_DIGITS.search(stem)
    if match:
        return int(match.group(0))
    return None


def sequence_key(name: str) -> int:
    """
    Map a document name to its position in a record.

    Covers (names containing the cover marker) come first, then a table of
    contents named only with zeros, then documents by their trailing number
    (or first number when none is trailing). Unnumbered names come last.
    """
    stem = strip_extension(name).lower()

    if COVER_MARKER in stem:
        return COVER_SORT_KEY
    if _ALL_ZEROS.match(stem):
        return TABLE_OF_CONTENTS_SORT_KEY

    number = _number_of(stem)
    return UNNUMBERED_SORT_KEY if number is None else number


def natural_key(name: str) -> Tuple:
    """Case-insensitive key comparing digit runs numerically."""
    parts = re.split(r"(\d+)", name.casefold())
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in parts if p)


def document_sort_key(name: str) -> Tuple:
    return (sequence_key(name), natural_key(name))


def sort_names(names: Iterable[str]) -> List[str]:
    """Names in sequencing order; the sort is stable."""
    return sorted(names, key=document_sort_key)


# ============================================================================
# Gap Detection
# ============================================================================

@dataclass
class SequenceResult:
    """Numbering report for one record folder."""
    group_name: str
    folder_path: str
    total: int
    missing: List[int] = field(default_factory=list)
    range_min: int = 1
    range_max: int = 0
    has_cover: bool = False
    has_table_of_contents: bool = False

    @property
    def has_errors(self) -> bool:
        return bool(self.missing) or not self.has_cover or not self.has_table_of_contents

    def to_dict(self) -> Dict:
        return {
            "group": self.group_name,
            "folder": self.folder_path,
            "total": self.total,
            "missing": self.missing,
            "range": {"min": self.range_min, "max": self.range_max},
            "has_cover": self.has_cover,
            "has_table_of_contents": self.has_table_of_contents,
        }


def _group_of(parts: Sequence[str]) -> Tuple[str, str]:
    """Box folder (three digits) and the record folder below it."""
    for i, part in enumerate(parts):
        if _BOX_FOLDER.match(part):
            if i + 1 < len(parts) - 1:
                return part, parts[i + 1]
            if i + 1 < len(parts):
                return part, "Root"
            break
    if len(parts) > 1:
        return parts[-2], "General"
    return "", ""


def find_missing(numbers: Iterable[int]) -> List[int]:
    """Numbers absent from 1..max(numbers)."""
    present = set(numbers)
    if not present:
        return []
    return [i for i in range(1, max(present) + 1) if i not in present]


def summarize_sequence(group: str, folder: str, names: Sequence[str]) -> SequenceResult:
    numbers = []
    cover = False
    toc = False
    for file_name in names:
        name = display_name(file_name).lower()
        if COVER_MARKER in name:
            cover = True
        elif _ALL_ZEROS.match(name):
            toc = True
        else:
            number = _number_of(name)
            if number is not None:
                numbers.append(number)

    return SequenceResult(
        group_name=group,
        folder_path=folder,
        total=len(names),
        missing=find_missing(numbers),
        range_min=min(numbers) if numbers else 1,
        range_max=max(numbers) if numbers else 0,
        has_cover=cover,
        has_table_of_contents=toc
    )


def analyze_sequences(paths: Iterable[Union[str, PurePath]]) -> Dict[str, List[SequenceResult]]:
    """
    Report numbering gaps per record folder.

    Args:
        paths: Relative file paths such as "archive/001/05/bia.pdf"; only
            PDF files are considered

    Returns:
        Mapping of box folder name to its record reports, ordered by folder
    """
    groups: Dict[str, Dict[str, List[str]]] = {}
    for path in paths:
        parts = PurePath(path).parts
        if not parts or not parts[-1].lower().endswith(".pdf"):
            continue
        group, folder = _group_of(parts)
        if group and folder:
            groups.setdefault(group, {}).setdefault(folder, []).append(parts[-1])

    report = {}
    for group, folders in groups.items():
        results = [summarize_sequence(group, folder, names) for folder, names in folders.items()]
        report[group] = sorted(results, key=lambda r: natural_key(r.folder_path))

    logger.debug(f"Analyzed {sum(len(r) for r in report.values())} record folders")
    return report


def analyze_folder(root: Union[str, Path]) -> Dict[str, List[SequenceResult]]:
    """Run analyze_sequences over every file below a directory."""
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    paths = [p.relative_to(root.parent) for p in root.rglob("*") if p.is_file()]
    return analyze_sequences(paths)
