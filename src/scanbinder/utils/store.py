"""
Dispatch point and background tasks for the document state.

DocumentStore serialises every action through one lock so that each
history snapshot reflects exactly the state before its own action.
PageTaskRunner runs decode and repair work on a thread pool; workers
never touch the state directly, they only dispatch actions when done.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..config import StoreConfig
from .documents import (
    Action,
    AppState,
    LoadDocuments,
    SetDocumentLoading,
    UpdatePageImage,
    Workspace,
    reduce,
)
from .io import load_document
from .pixels import PixelBuffer

logger = logging.getLogger(__name__)

Subscriber = Callable[[AppState, Action], None]


class DocumentStore:
    """Holds the current AppState and applies actions one at a time."""

    def __init__(self, state: Optional[AppState] = None, config: Optional[StoreConfig] = None):
        self.config = config or StoreConfig()
        self._state = state if state is not None else AppState()
        # Re-entrant so that subscribers may dispatch follow-up actions
        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        """
        Apply an action and notify subscribers when the state changed.

        Returns:
            The state after the action
        """
        with self._lock:
            previous = self._state
            new_state = reduce(previous, action, self.config.max_history)
            self._state = new_state
            if new_state is not previous:
                for callback in list(self._subscribers):
                    callback(new_state, action)
            return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)
        return partial(self.unsubscribe, callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)


class PageTaskRunner:
    """
    Runs page repairs and PDF decodes without blocking dispatches.

    Each repair works on its own copy of the page raster. A repair whose
    page is deleted before it starts is cancelled; a result arriving for a
    page that no longer exists is dropped.
    """

    def __init__(self, store: DocumentStore, workers: Optional[int] = None):
        self.store = store
        self._executor = ThreadPoolExecutor(
            max_workers=workers or store.config.workers,
            thread_name_prefix="scanbinder"
        )
        self._lock = threading.Lock()
        self._pending: Dict[Future, Tuple[str, str]] = {}
        self._unsubscribe = store.subscribe(self._cancel_orphaned)

    # ------------------------------------------------------------------
    # Repairs
    # ------------------------------------------------------------------

    def submit_repair(
        self,
        page_id: str,
        operation: Callable[..., Union[PixelBuffer, tuple]],
        *args,
        **kwargs
    ) -> Optional[Future]:
        """
        Run `operation(image, *args, **kwargs)` on a page in the background.

        The operation may return a buffer or a tuple whose first item is the
        buffer (as deskew(..., return_angle=True) does). The owning document
        is flagged as loading until every repair on it has finished.

        Returns:
            The future, or None when the page does not exist or has no image
        """
        found = self.store.state.find_page(page_id)
        if found is None or found[3].image is None:
            logger.debug(f"Nothing to repair for page {page_id}")
            return None
        _, doc, _, page = found

        image = page.image.copy()
        with self._lock:
            future = self._executor.submit(operation, image, *args, **kwargs)
            self._pending[future] = (page_id, doc.id)
        self.store.dispatch(SetDocumentLoading(doc.id, True))
        future.add_done_callback(self._finish_repair)
        return future

    def _finish_repair(self, future: Future) -> None:
        with self._lock:
            page_id, document_id = self._pending.pop(future)
            still_loading = any(d == document_id for _, d in self._pending.values())

        try:
            if future.cancelled():
                logger.debug(f"Repair of page {page_id} was cancelled")
                return
            error = future.exception()
            if error is not None:
                logger.error(f"Repair of page {page_id} failed: {error}")
                return

            result = future.result()
            if isinstance(result, tuple):
                result = result[0]
            if not self.store.state.has_page(page_id):
                logger.debug(f"Dropping repair result for deleted page {page_id}")
                return
            self.store.dispatch(UpdatePageImage(page_id, result))
        finally:
            if not still_loading:
                self.store.dispatch(SetDocumentLoading(document_id, False))

    def _cancel_orphaned(self, state: AppState, action: Action) -> None:
        with self._lock:
            orphaned = [f for f, (page_id, _) in self._pending.items() if not state.has_page(page_id)]
        for future in orphaned:
            if future.cancel():
                logger.debug("Cancelled repair of a deleted page")

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def submit_decode(
        self,
        paths: Iterable[Union[str, Path]],
        workspace: Workspace = Workspace.MAIN,
        dpi: int = 80
    ) -> Future:
        """
        Decode PDFs in the background and load them into a workspace.

        Files that fail to decode arrive as empty "Error: <name>" documents.
        """
        paths = list(paths)
        future = self._executor.submit(lambda: tuple(load_document(p, dpi) for p in paths))
        future.add_done_callback(partial(self._finish_decode, workspace))
        return future

    def _finish_decode(self, workspace: Workspace, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Decoding failed: {error}")
            return
        documents = future.result()
        self.store.dispatch(LoadDocuments(documents, workspace))
        logger.info(f"Loaded {len(documents)} document(s) into the {workspace.value} workspace")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        self._unsubscribe()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "PageTaskRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
