import logging

from PyQt6.QtCore import QThread, pyqtSignal

from notegraph.api_client import GraphFetchError

logger = logging.getLogger(__name__)


class FetchWorker(QThread):
    succeeded = pyqtSignal(object, int)  # GraphSnapshot, request number
    failed = pyqtSignal(str, int)  # message, request number

    def __init__(self, fetch, request_id):
        super().__init__()
        self.fetch = fetch
        self.request_id = request_id

    def run(self):
        try:
            snapshot = self.fetch()
        except GraphFetchError as e:
            self.failed.emit(str(e), self.request_id)
            return
        except Exception as e:
            # Nothing above this frame would see it otherwise
            logger.exception(f"Unexpected error in fetch #{self.request_id}")
            self.failed.emit(f"Unexpected error: {e}", self.request_id)
            return
        self.succeeded.emit(snapshot, self.request_id)


class ThreadRunner:
    """Runs fetches on QThreads; results arrive on the caller's thread through queued signals."""

    def __init__(self):
        self._workers = set()

    def submit(self, fetch, request_id, on_success, on_error):
        worker = FetchWorker(fetch, request_id)
        worker.succeeded.connect(on_success)
        worker.failed.connect(on_error)
        worker.finished.connect(lambda: self._release(worker))
        self._workers.add(worker)
        worker.start()
        return worker

    def _release(self, worker):
        self._workers.discard(worker)
        worker.deleteLater()

    def wait(self, msecs=5000):
        for worker in list(self._workers):
            worker.wait(msecs)


class InlineRunner:
    """Runs the fetch synchronously on the calling thread."""

    def submit(self, fetch, request_id, on_success, on_error):
        try:
            snapshot = fetch()
        except GraphFetchError as e:
            on_error(str(e), request_id)
            return None
        except Exception as e:
            logger.exception(f"Unexpected error in fetch #{request_id}")
            on_error(f"Unexpected error: {e}", request_id)
            return None
        on_success(snapshot, request_id)
        return None

    def wait(self, msecs=5000):
        pass
