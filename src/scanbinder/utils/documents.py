"""
Document and page state for the two workspaces.

Provides:
- Immutable data model (Page, Document, Selection, History, AppState)
- The closed set of actions
- reduce(): the single entry point producing the next state

Every action either returns a new AppState or, when its preconditions do
not hold, the very same state object. Mutating actions record the previous
document trees so they can be undone.
"""

import logging
import re
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..config import BINDER_EXTENSION, NOTE_EXTENSION
from .pixels import PixelBuffer
from .sequencing import document_sort_key, split_extension

logger = logging.getLogger(__name__)


# ============================================================================
# Data Model
# ============================================================================

class Workspace(str, Enum):
    """The two page-organizing surfaces."""
    MAIN = "main"
    SECONDARY = "secondary"


class DocumentType(Enum):
    BINDER = "binder"
    NOTE = "note"


LEFT = "left"
RIGHT = "right"
BEFORE = "before"
AFTER = "after"


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Page:
    """A scanned page; rotation is applied on display and export only."""
    id: str
    document_id: str
    original_index: int
    image: Optional[PixelBuffer] = None
    rotation: int = 0


@dataclass(frozen=True)
class Document:
    """An ordered binder of pages, or a free-text note."""
    id: str
    name: str
    pages: Tuple[Page, ...] = ()
    doc_type: DocumentType = DocumentType.BINDER
    note_content: str = ""
    loading: bool = False
    expanded: bool = True

    @property
    def is_note(self) -> bool:
        return self.doc_type is DocumentType.NOTE

    @property
    def page_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self.pages)


@dataclass(frozen=True)
class Selection:
    active_document_id: Optional[str] = None
    selected_page_ids: FrozenSet[str] = frozenset()
    selected_document_ids: FrozenSet[str] = frozenset()
    last_focused_workspace: Workspace = Workspace.MAIN


@dataclass(frozen=True)
class Snapshot:
    """Both workspaces' document sequences at one point in time."""
    main: Tuple[Document, ...] = ()
    secondary: Tuple[Document, ...] = ()


@dataclass(frozen=True)
class History:
    past: Tuple[Snapshot, ...] = ()
    future: Tuple[Snapshot, ...] = ()


@dataclass(frozen=True)
class AppState:
    main: Tuple[Document, ...] = ()
    secondary: Tuple[Document, ...] = ()
    secondary_open: bool = False
    selection: Selection = field(default_factory=Selection)
    history: History = field(default_factory=History)

    def documents(self, workspace: Workspace) -> Tuple[Document, ...]:
        return self.secondary if workspace == Workspace.SECONDARY else self.main

    def all_documents(self) -> Iterable[Tuple[Workspace, Document]]:
        for doc in self.main:
            yield Workspace.MAIN, doc
        for doc in self.secondary:
            yield Workspace.SECONDARY, doc

    def snapshot(self) -> Snapshot:
        return Snapshot(main=self.main, secondary=self.secondary)

    @cached_property
    def _document_index(self) -> Dict[str, Tuple[Workspace, int]]:
        return {
            doc.id: (ws, i)
            for ws in Workspace
            for i, doc in enumerate(self.documents(ws))
        }

    @cached_property
    def _page_index(self) -> Dict[str, Tuple[Workspace, int, int]]:
        return {
            page.id: (ws, i, j)
            for ws in Workspace
            for i, doc in enumerate(self.documents(ws))
            for j, page in enumerate(doc.pages)
        }

    def find_document(self, document_id: Optional[str]) -> Optional[Tuple[Workspace, int, Document]]:
        """(workspace, index, document) or None."""
        location = self._document_index.get(document_id)
        if location is None:
            return None
        ws, i = location
        return ws, i, self.documents(ws)[i]

    def find_page(self, page_id: str) -> Optional[Tuple[Workspace, Document, int, Page]]:
        """(workspace, owning document, index in document, page) or None."""
        location = self._page_index.get(page_id)
        if location is None:
            return None
        ws, i, j = location
        doc = self.documents(ws)[i]
        return ws, doc, j, doc.pages[j]

    def has_page(self, page_id: str) -> bool:
        return page_id in self._page_index

    def with_documents(self, workspace: Workspace, docs: Iterable[Document]) -> "AppState":
        if workspace == Workspace.SECONDARY:
            return replace(self, secondary=tuple(docs))
        return replace(self, main=tuple(docs))


def new_page(
    image: Optional[PixelBuffer] = None,
    original_index: int = 1,
    document_id: str = "",
    rotation: int = 0
) -> Page:
    return Page(
        id=new_id(),
        document_id=document_id,
        original_index=original_index,
        image=image,
        rotation=rotation
    )


def new_document(
    name: str,
    images: Iterable[Optional[PixelBuffer]] = (),
    doc_type: DocumentType = DocumentType.BINDER,
    note_content: str = ""
) -> Document:
    """Build a document whose pages are numbered 1..n in the given order."""
    doc_id = new_id()
    pages = tuple(
        new_page(image, original_index=i, document_id=doc_id)
        for i, image in enumerate(images, start=1)
    )
    return Document(
        id=doc_id,
        name=name,
        pages=pages,
        doc_type=doc_type,
        note_content=note_content
    )


def sort_documents(docs: Iterable[Document]) -> Tuple[Document, ...]:
    """Stable sort by sequencing key, ties broken by natural name order."""
    return tuple(sorted(docs, key=lambda d: document_sort_key(d.name)))


def _rehome(doc: Document, pages: Iterable[Page]) -> Document:
    """Replace a document's pages, pointing each page back at it."""
    return replace(doc, pages=tuple(
        p if p.document_id == doc.id else replace(p, document_id=doc.id)
        for p in pages
    ))


# ============================================================================
# Actions
# ============================================================================

class Action:
    """Base class of every state change request."""


@dataclass(frozen=True)
class LoadDocuments(Action):
    documents: Tuple[Document, ...]
    workspace: Workspace = Workspace.MAIN


@dataclass(frozen=True)
class LoadImages(Action):
    pages: Tuple[Page, ...]
    workspace: Workspace = Workspace.MAIN
    into_document_id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class UpdatePageImage(Action):
    page_id: str
    image: PixelBuffer


@dataclass(frozen=True)
class SetDocumentLoading(Action):
    document_id: str
    loading: bool


@dataclass(frozen=True)
class ToggleSecondaryScreen(Action):
    pass


@dataclass(frozen=True)
class SetFocusWorkspace(Action):
    workspace: Workspace


@dataclass(frozen=True)
class SelectPage(Action):
    page_id: str
    document_id: str
    multi_select: bool = False


@dataclass(frozen=True)
class SelectDocument(Action):
    document_id: str
    multi_select: bool = False


@dataclass(frozen=True)
class SelectAllPages(Action):
    pass


@dataclass(frozen=True)
class DeselectAll(Action):
    pass


@dataclass(frozen=True)
class DeleteSelected(Action):
    pass


@dataclass(frozen=True)
class SplitSelected(Action):
    pass


@dataclass(frozen=True)
class RotateSelected(Action):
    direction: str = RIGHT


@dataclass(frozen=True)
class MovePage(Action):
    page_id: str
    dest_document_id: str
    new_index: int


@dataclass(frozen=True)
class MoveDocument(Action):
    source_index: int
    dest_index: int
    source_workspace: Workspace = Workspace.MAIN
    dest_workspace: Workspace = Workspace.MAIN


@dataclass(frozen=True)
class RenameDocument(Action):
    document_id: str
    name: str


@dataclass(frozen=True)
class AddAdjacentDocument(Action):
    document_id: str
    direction: str = AFTER


@dataclass(frozen=True)
class SortDocuments(Action):
    workspace: Workspace = Workspace.MAIN


@dataclass(frozen=True)
class ToggleDocumentType(Action):
    document_id: str
    discard: bool = False


@dataclass(frozen=True)
class UpdateNoteContent(Action):
    document_id: str
    content: str


@dataclass(frozen=True)
class ClearAllDocuments(Action):
    pass


@dataclass(frozen=True)
class Undo(Action):
    pass


@dataclass(frozen=True)
class Redo(Action):
    pass


# ============================================================================
# History
# ============================================================================

def _push_history(state: AppState, max_history: Optional[int] = None) -> AppState:
    past = state.history.past + (state.snapshot(),)
    if max_history is not None and len(past) > max_history:
        past = past[len(past) - max_history:]
    return replace(state, history=History(past=past, future=()))


def _keep_loading(state: AppState, documents: Tuple[Document, ...]) -> Tuple[Document, ...]:
    """Give restored documents the loading flags they have right now."""
    loading = {doc.id for _, doc in state.all_documents() if doc.loading}
    return tuple(
        doc if doc.loading == (doc.id in loading) else replace(doc, loading=doc.id in loading)
        for doc in documents
    )


def _undo(state: AppState, action: Undo, max_history=None) -> AppState:
    past, future = state.history.past, state.history.future
    if not past:
        return state
    last = past[-1]
    return replace(
        state,
        main=_keep_loading(state, last.main),
        secondary=_keep_loading(state, last.secondary),
        history=History(past=past[:-1], future=(state.snapshot(),) + future)
    )


def _redo(state: AppState, action: Redo, max_history=None) -> AppState:
    past, future = state.history.past, state.history.future
    if not future:
        return state
    upcoming = future[0]
    return replace(
        state,
        main=_keep_loading(state, upcoming.main),
        secondary=_keep_loading(state, upcoming.secondary),
        history=History(past=past + (state.snapshot(),), future=future[1:])
    )


# ============================================================================
# Loading
# ============================================================================

def _load_documents(state: AppState, action: LoadDocuments, max_history=None) -> AppState:
    if not action.documents:
        return state
    incoming = [_rehome(doc, doc.pages) for doc in action.documents]
    new_state = _push_history(state, max_history)
    docs = sort_documents(list(new_state.documents(action.workspace)) + incoming)
    new_state = new_state.with_documents(action.workspace, docs)
    return replace(
        new_state,
        selection=replace(new_state.selection, last_focused_workspace=action.workspace)
    )


def _load_images(state: AppState, action: LoadImages, max_history=None) -> AppState:
    if not action.pages:
        return state
    docs = list(state.documents(action.workspace))

    if action.into_document_id is not None:
        index = next((i for i, d in enumerate(docs) if d.id == action.into_document_id), None)
        if index is None or docs[index].is_note:
            return state
        docs[index] = _rehome(docs[index], docs[index].pages + tuple(action.pages))
    else:
        name = action.name or f"Images_{int(time.time() * 1000)}{BINDER_EXTENSION}"
        doc = Document(id=new_id(), name=name)
        docs = list(sort_documents(docs + [_rehome(doc, action.pages)]))

    return _push_history(state, max_history).with_documents(action.workspace, docs)


def _update_page_image(state: AppState, action: UpdatePageImage, max_history=None) -> AppState:
    found = state.find_page(action.page_id)
    if found is None:
        logger.debug(f"Ignoring image update for missing page {action.page_id}")
        return state
    ws, doc, j, page = found
    pages = list(doc.pages)
    pages[j] = replace(page, image=action.image)
    return _replace_document(_push_history(state, max_history), ws, replace(doc, pages=tuple(pages)))


def _set_document_loading(state: AppState, action: SetDocumentLoading, max_history=None) -> AppState:
    found = state.find_document(action.document_id)
    if found is None or found[2].loading == action.loading:
        return state
    ws, _, doc = found
    return _replace_document(state, ws, replace(doc, loading=action.loading))


def _replace_document(state: AppState, workspace: Workspace, doc: Document) -> AppState:
    return state.with_documents(
        workspace, (doc if d.id == doc.id else d for d in state.documents(workspace))
    )


# ============================================================================
# Focus and Selection
# ============================================================================

def _toggle_secondary_screen(state: AppState, action: ToggleSecondaryScreen, max_history=None) -> AppState:
    return replace(state, secondary_open=not state.secondary_open)


def _set_focus_workspace(state: AppState, action: SetFocusWorkspace, max_history=None) -> AppState:
    if state.selection.last_focused_workspace == action.workspace:
        return state
    return replace(state, selection=replace(state.selection, last_focused_workspace=action.workspace))


def _select_page(state: AppState, action: SelectPage, max_history=None) -> AppState:
    found = state.find_document(action.document_id)
    if found is None:
        return state
    workspace = found[0]
    sel = state.selection

    keep = action.multi_select and workspace == sel.last_focused_workspace
    selected = set(sel.selected_page_ids) if keep else set()

    if action.page_id in selected:
        selected.discard(action.page_id)
    else:
        selected.add(action.page_id)

    return replace(state, selection=Selection(
        active_document_id=action.document_id,
        selected_page_ids=frozenset(selected),
        selected_document_ids=sel.selected_document_ids if keep else frozenset(),
        last_focused_workspace=workspace
    ))


def _select_document(state: AppState, action: SelectDocument, max_history=None) -> AppState:
    found = state.find_document(action.document_id)
    if found is None:
        return state
    workspace, _, doc = found
    sel = state.selection

    keep = action.multi_select and workspace == sel.last_focused_workspace
    pages = set(sel.selected_page_ids) if keep else set()
    doc_ids = set(sel.selected_document_ids) if keep else set()

    if doc.id in sel.selected_document_ids:
        pages.difference_update(doc.page_ids)
        doc_ids.discard(doc.id)
    else:
        pages.update(doc.page_ids)
        doc_ids.add(doc.id)

    return replace(state, selection=Selection(
        active_document_id=doc.id,
        selected_page_ids=frozenset(pages),
        selected_document_ids=frozenset(doc_ids),
        last_focused_workspace=workspace
    ))


def _select_all_pages(state: AppState, action: SelectAllPages, max_history=None) -> AppState:
    workspace = state.selection.last_focused_workspace
    ids = frozenset(p.id for d in state.documents(workspace) for p in d.pages)
    return replace(state, selection=replace(state.selection, selected_page_ids=ids))


def _deselect_all(state: AppState, action: DeselectAll, max_history=None) -> AppState:
    return replace(state, selection=replace(
        state.selection,
        active_document_id=None,
        selected_page_ids=frozenset(),
        selected_document_ids=frozenset()
    ))


def _refresh_selection(state: AppState) -> AppState:
    """
    Drop selections of vanished pages and documents and recompute which
    documents are fully selected.

    A document with pages is fully selected exactly when all of its pages
    are; an empty document stays selected only if it was selected explicitly.
    """
    sel = state.selection
    pages = frozenset(pid for pid in sel.selected_page_ids if state.has_page(pid))

    docs = set()
    for _, doc in state.all_documents():
        if doc.pages:
            if all(p.id in pages for p in doc.pages):
                docs.add(doc.id)
        elif doc.id in sel.selected_document_ids:
            docs.add(doc.id)

    active = sel.active_document_id
    if active is not None and state.find_document(active) is None:
        active = None

    refreshed = Selection(
        active_document_id=active,
        selected_page_ids=pages,
        selected_document_ids=frozenset(docs),
        last_focused_workspace=sel.last_focused_workspace
    )
    if refreshed == sel:
        return state
    return replace(state, selection=refreshed)


# ============================================================================
# Page Operations
# ============================================================================

def _delete_selected(state: AppState, action: DeleteSelected, max_history=None) -> AppState:
    sel = state.selection
    if not sel.selected_page_ids and not sel.selected_document_ids:
        return state

    new_state = _push_history(state, max_history)
    for ws in Workspace:
        kept = []
        for doc in new_state.documents(ws):
            if doc.id in sel.selected_document_ids:
                continue
            pages = tuple(p for p in doc.pages if p.id not in sel.selected_page_ids)
            if len(pages) != len(doc.pages):
                if not pages and not doc.is_note:
                    continue
                doc = replace(doc, pages=pages)
            kept.append(doc)
        new_state = new_state.with_documents(ws, kept)

    return replace(new_state, selection=replace(
        new_state.selection,
        active_document_id=None,
        selected_page_ids=frozenset(),
        selected_document_ids=frozenset()
    ))


def _split_selected(state: AppState, action: SplitSelected, max_history=None) -> AppState:
    sel = state.selection
    found = state.find_document(sel.active_document_id)
    if found is None or not sel.selected_page_ids:
        return state
    ws, index, source = found

    positions = [j for j, p in enumerate(source.pages) if p.id in sel.selected_page_ids]
    if not positions or min(positions) == 0:
        return state
    cut = min(positions)

    stem, ext = split_extension(source.name)
    new_doc = _rehome(
        Document(id=new_id(), name=f"{stem}_Part2{ext or BINDER_EXTENSION}"),
        source.pages[cut:]
    )
    docs = list(state.documents(ws))
    docs[index] = replace(source, pages=source.pages[:cut])
    docs.insert(index + 1, new_doc)

    new_state = _push_history(state, max_history).with_documents(ws, docs)
    return replace(new_state, selection=replace(
        new_state.selection,
        active_document_id=new_doc.id,
        selected_page_ids=frozenset(),
        selected_document_ids=frozenset()
    ))


def _rotate_selected(state: AppState, action: RotateSelected, max_history=None) -> AppState:
    selected = state.selection.selected_page_ids
    if not selected or action.direction not in (LEFT, RIGHT):
        return state
    delta = -90 if action.direction == LEFT else 90

    new_state = _push_history(state, max_history)
    for ws in Workspace:
        new_state = new_state.with_documents(ws, (
            replace(doc, pages=tuple(
                replace(p, rotation=(p.rotation + delta) % 360) if p.id in selected else p
                for p in doc.pages
            )) if any(p.id in selected for p in doc.pages) else doc
            for doc in new_state.documents(ws)
        ))
    return new_state


def _move_page(state: AppState, action: MovePage, max_history=None) -> AppState:
    dest = state.find_document(action.dest_document_id)
    if dest is None or dest[2].is_note or not state.has_page(action.page_id):
        return state
    dest_ws = dest[0]

    selected = state.selection.selected_page_ids
    moving_ids = selected if action.page_id in selected else frozenset([action.page_id])

    # Collect in display order: main before secondary, document by document
    moving: List[Page] = []
    new_state = _push_history(state, max_history)
    for ws in Workspace:
        kept = []
        for doc in new_state.documents(ws):
            pages = tuple(p for p in doc.pages if p.id not in moving_ids)
            if len(pages) != len(doc.pages):
                moving.extend(p for p in doc.pages if p.id in moving_ids)
                if not pages and not doc.is_note and doc.id != action.dest_document_id:
                    continue
                doc = replace(doc, pages=pages)
            kept.append(doc)
        new_state = new_state.with_documents(ws, kept)

    docs = list(new_state.documents(dest_ws))
    index = next(i for i, d in enumerate(docs) if d.id == action.dest_document_id)
    target = docs[index]
    at = min(max(0, action.new_index), len(target.pages))
    docs[index] = _rehome(target, target.pages[:at] + tuple(moving) + target.pages[at:])
    new_state = new_state.with_documents(dest_ws, docs)

    return replace(new_state, selection=replace(
        new_state.selection,
        active_document_id=action.dest_document_id,
        last_focused_workspace=dest_ws
    ))


# ============================================================================
# Document Operations
# ============================================================================

def _move_document(state: AppState, action: MoveDocument, max_history=None) -> AppState:
    source = list(state.documents(action.source_workspace))
    if not 0 <= action.source_index < len(source):
        return state
    if action.source_workspace == action.dest_workspace and action.source_index == action.dest_index:
        return state

    moved = source.pop(action.source_index)
    dest = source if action.source_workspace == action.dest_workspace else list(
        state.documents(action.dest_workspace))
    dest.insert(min(max(0, action.dest_index), len(dest)), moved)

    new_state = _push_history(state, max_history).with_documents(action.source_workspace, source)
    return new_state.with_documents(action.dest_workspace, dest)


def _with_type_extension(name: str, doc_type: DocumentType) -> str:
    extension = NOTE_EXTENSION if doc_type is DocumentType.NOTE else BINDER_EXTENSION
    return name if name.lower().endswith(extension) else name + extension


def _rename_document(state: AppState, action: RenameDocument, max_history=None) -> AppState:
    found = state.find_document(action.document_id)
    name = action.name.strip()
    if found is None or not name:
        return state
    ws, _, doc = found
    name = _with_type_extension(name, doc.doc_type)
    if name == doc.name:
        return state
    return _replace_document(_push_history(state, max_history), ws, replace(doc, name=name))


_NUMBERED_STEM = re.compile(r"^(.*?)(\d+)$")


def adjacent_name(name: str, direction: str) -> Optional[str]:
    """
    Name of the document that would sit right before or after `name`.

    "Box_007.pdf" gives "Box_006.pdf" / "Box_008.pdf" keeping the zero
    padding. Unnumbered names get a "000_" prefix (before) or a "_001"
    suffix (after). None when the number cannot be decremented.
    """
    stem, ext = split_extension(name)
    ext = ext or BINDER_EXTENSION
    match = _NUMBERED_STEM.match(stem)

    if match:
        prefix, digits = match.groups()
        value = int(digits)
        if direction == BEFORE:
            if value <= 0:
                return None
            value -= 1
        else:
            value += 1
        return f"{prefix}{str(value).zfill(len(digits))}{ext}"

    if direction == BEFORE:
        return f"000_{stem}{ext}"
    return f"{stem}_001{ext}"


def _add_adjacent_document(state: AppState, action: AddAdjacentDocument, max_history=None) -> AppState:
    found = state.find_document(action.document_id)
    if found is None or action.direction not in (BEFORE, AFTER):
        return state
    ws, index, target = found

    name = adjacent_name(target.name, action.direction)
    if name is None:
        return state
    stem = split_extension(name)[0].lower()
    if any(split_extension(d.name)[0].lower() == stem for d in state.documents(ws)):
        logger.debug(f"Not adding {name}: the name is taken")
        return state

    docs = list(state.documents(ws))
    docs.insert(index if action.direction == BEFORE else index + 1, Document(id=new_id(), name=name))
    return _push_history(state, max_history).with_documents(ws, docs)


def _sort_documents(state: AppState, action: SortDocuments, max_history=None) -> AppState:
    new_state = _push_history(state, max_history)
    return new_state.with_documents(action.workspace, sort_documents(new_state.documents(action.workspace)))


def _toggle_document_type(state: AppState, action: ToggleDocumentType, max_history=None) -> AppState:
    found = state.find_document(action.document_id)
    if found is None:
        return state
    ws, _, doc = found

    stem = split_extension(doc.name)[0]
    if doc.is_note:
        if doc.note_content and not action.discard:
            logger.debug(f"Not converting {doc.name} to a binder: it still holds text")
            return state
        if doc.note_content:
            logger.warning(f"Discarding the text of {doc.name} on conversion to a binder")
        toggled = replace(doc, doc_type=DocumentType.BINDER, note_content="",
                          name=stem + BINDER_EXTENSION)
    else:
        if doc.pages and not action.discard:
            logger.debug(f"Not converting {doc.name} to a note: it still holds pages")
            return state
        if doc.pages:
            logger.warning(f"Discarding {len(doc.pages)} pages of {doc.name} on conversion to a note")
        toggled = replace(doc, doc_type=DocumentType.NOTE, pages=(), name=stem + NOTE_EXTENSION)

    return _replace_document(_push_history(state, max_history), ws, toggled)


def _update_note_content(state: AppState, action: UpdateNoteContent, max_history=None) -> AppState:
    found = state.find_document(action.document_id)
    if found is None or not found[2].is_note or found[2].note_content == action.content:
        return state
    ws, _, doc = found
    return _replace_document(_push_history(state, max_history), ws, replace(doc, note_content=action.content))


def _clear_all_documents(state: AppState, action: ClearAllDocuments, max_history=None) -> AppState:
    return AppState(secondary_open=state.secondary_open)


# ============================================================================
# Reducer
# ============================================================================

_HANDLERS: Dict[type, Callable[..., AppState]] = {
    LoadDocuments: _load_documents,
    LoadImages: _load_images,
    UpdatePageImage: _update_page_image,
    SetDocumentLoading: _set_document_loading,
    ToggleSecondaryScreen: _toggle_secondary_screen,
    SetFocusWorkspace: _set_focus_workspace,
    SelectPage: _select_page,
    SelectDocument: _select_document,
    SelectAllPages: _select_all_pages,
    DeselectAll: _deselect_all,
    DeleteSelected: _delete_selected,
    SplitSelected: _split_selected,
    RotateSelected: _rotate_selected,
    MovePage: _move_page,
    MoveDocument: _move_document,
    RenameDocument: _rename_document,
    AddAdjacentDocument: _add_adjacent_document,
    SortDocuments: _sort_documents,
    ToggleDocumentType: _toggle_document_type,
    UpdateNoteContent: _update_note_content,
    ClearAllDocuments: _clear_all_documents,
    Undo: _undo,
    Redo: _redo,
}


def reduce(state: AppState, action: Action, max_history: Optional[int] = None) -> AppState:
    """
    Apply one action.

    Args:
        state: Current state
        action: One of the Action subclasses defined in this module
        max_history: Keep at most this many undo steps (None = unbounded)

    Returns:
        The next state, or `state` itself when the action does not apply

    Raises:
        TypeError: If `action` is not a known action
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown action: {action!r}")

    new_state = handler(state, action, max_history)
    if new_state is state:
        return state
    return _refresh_selection(new_state)
