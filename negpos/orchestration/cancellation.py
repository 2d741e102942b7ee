import threading


class ProcessingCancelled(Exception):
    """
    Raised at a stage boundary once the owning request has been superseded.
    """


class CancellationToken:
    """
    Cooperative cancellation flag shared between the event loop and the
    worker thread running the pipeline.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ProcessingCancelled()
