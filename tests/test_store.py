"""
Tests for the dispatch point and background page tasks.
"""

import pytest
import threading
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def store():
    """Store holding one binder with three blank-image pages."""
    from scanbinder.utils.documents import AppState, new_document
    from scanbinder.utils.pixels import PixelBuffer
    from scanbinder.utils.store import DocumentStore

    doc = new_document("Box_001.pdf", [PixelBuffer.blank(20, 20) for _ in range(3)])
    return DocumentStore(AppState(main=(doc,)))


def darken(buffer):
    from scanbinder.utils.pixels import PixelBuffer
    return PixelBuffer.blank(buffer.width, buffer.height, (0, 0, 0))


class TestDocumentStore:
    """Test DocumentStore."""

    def test_dispatch_and_notify(self, store):
        from scanbinder.utils.documents import SortDocuments

        seen = []
        store.subscribe(lambda state, action: seen.append((state, action)))

        action = SortDocuments()
        state = store.dispatch(action)

        assert store.state is state
        assert seen == [(state, action)]

    def test_noop_not_notified(self, store):
        from scanbinder.utils.documents import DeleteSelected

        seen = []
        store.subscribe(lambda state, action: seen.append(action))
        before = store.state

        assert store.dispatch(DeleteSelected()) is before
        assert seen == []

    def test_unsubscribe(self, store):
        from scanbinder.utils.documents import SortDocuments

        seen = []
        unsubscribe = store.subscribe(lambda state, action: seen.append(action))
        unsubscribe()
        store.dispatch(SortDocuments())

        assert seen == []

    def test_history_cap_from_config(self):
        from scanbinder.config import StoreConfig
        from scanbinder.utils.documents import SortDocuments
        from scanbinder.utils.store import DocumentStore

        store = DocumentStore(config=StoreConfig(max_history=3))
        for _ in range(5):
            store.dispatch(SortDocuments())

        assert len(store.state.history.past) == 3

    def test_concurrent_dispatches_all_recorded(self, store):
        from scanbinder.utils.documents import SortDocuments

        threads = [
            threading.Thread(target=lambda: [store.dispatch(SortDocuments()) for _ in range(25)])
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.state.history.past) == 100


class TestPageTaskRunner:
    """Test PageTaskRunner."""

    def test_repair_updates_page(self, store):
        from scanbinder.utils.store import PageTaskRunner

        page_id = store.state.main[0].pages[1].id
        runner = PageTaskRunner(store, workers=1)
        future = runner.submit_repair(page_id, darken)
        runner.shutdown()

        assert future.done()
        doc = store.state.main[0]
        assert doc.pages[1].image.get_pixel(0, 0) == (0, 0, 0, 255)
        assert doc.pages[0].image.get_pixel(0, 0) == (255, 255, 255, 255)
        assert not doc.loading
        assert len(store.state.history.past) == 1

    def test_tuple_result(self, store):
        from scanbinder.utils.images import deskew
        from scanbinder.utils.store import PageTaskRunner

        page_id = store.state.main[0].pages[0].id
        with PageTaskRunner(store, workers=1) as runner:
            runner.submit_repair(page_id, deskew, return_angle=True)

        assert store.state.main[0].pages[0].image.size == (20, 20)

    def test_missing_page(self, store):
        from scanbinder.utils.store import PageTaskRunner

        with PageTaskRunner(store, workers=1) as runner:
            assert runner.submit_repair("missing", darken) is None

    def test_loading_while_running(self, store):
        from scanbinder.utils.store import PageTaskRunner

        release = threading.Event()

        def slow(buffer):
            release.wait(5)
            return darken(buffer)

        page_id = store.state.main[0].pages[0].id
        runner = PageTaskRunner(store, workers=1)
        runner.submit_repair(page_id, slow)

        assert store.state.main[0].loading

        release.set()
        runner.shutdown()
        assert not store.state.main[0].loading

    def test_queued_repair_cancelled_on_delete(self, store):
        from scanbinder.utils.documents import DeleteSelected, SelectPage
        from scanbinder.utils.store import PageTaskRunner

        release = threading.Event()

        def slow(buffer):
            release.wait(5)
            return darken(buffer)

        doc = store.state.main[0]
        first, second = doc.pages[0].id, doc.pages[1].id
        runner = PageTaskRunner(store, workers=1)
        running = runner.submit_repair(first, slow)
        queued = runner.submit_repair(second, darken)

        store.dispatch(SelectPage(second, doc.id))
        store.dispatch(DeleteSelected())

        assert queued.cancelled()
        release.set()
        runner.shutdown()
        assert running.done()
        assert not store.state.main[0].loading

    def test_result_for_deleted_page_dropped(self, store):
        from scanbinder.utils.documents import DeleteSelected, SelectPage
        from scanbinder.utils.store import PageTaskRunner

        started = threading.Event()
        release = threading.Event()

        def slow(buffer):
            started.set()
            release.wait(5)
            return darken(buffer)

        doc = store.state.main[0]
        page_id = doc.pages[0].id
        runner = PageTaskRunner(store, workers=1)
        future = runner.submit_repair(page_id, slow)
        started.wait(5)

        store.dispatch(SelectPage(page_id, doc.id))
        store.dispatch(DeleteSelected())
        release.set()
        runner.shutdown()

        assert not future.cancelled()
        assert not store.state.has_page(page_id)
        # Only the deletion is in the history
        assert len(store.state.history.past) == 1

    def test_failed_repair_clears_loading(self, store):
        from scanbinder.utils.store import PageTaskRunner

        def broken(buffer):
            raise RuntimeError("boom")

        page_id = store.state.main[0].pages[0].id
        with PageTaskRunner(store, workers=1) as runner:
            runner.submit_repair(page_id, broken)

        assert not store.state.main[0].loading
        assert store.state.history.past == ()

    def test_undo_after_repair_not_loading(self, store):
        from scanbinder.utils.documents import Redo, Undo
        from scanbinder.utils.store import PageTaskRunner

        page_id = store.state.main[0].pages[0].id
        with PageTaskRunner(store, workers=1) as runner:
            runner.submit_repair(page_id, darken)

        state = store.dispatch(Undo())
        assert not state.main[0].loading
        assert state.main[0].pages[0].image.get_pixel(0, 0) == (255, 255, 255, 255)

        state = store.dispatch(Redo())
        assert not state.main[0].loading
        assert state.main[0].pages[0].image.get_pixel(0, 0) == (0, 0, 0, 255)

    def test_decode_failure_loads_error_document(self, store, tmp_path):
        from scanbinder.utils.store import PageTaskRunner

        with PageTaskRunner(store, workers=1) as runner:
            runner.submit_decode([tmp_path / "missing.pdf"]).result()

        names = [d.name for d in store.state.main]
        assert "Error: missing.pdf" in names
        assert next(d for d in store.state.main if d.name == "Error: missing.pdf").pages == ()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
