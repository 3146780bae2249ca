"""
Background conversion worker.

A single thread takes FileTasks from a request queue and converts them one
at a time; progress goes back through a second queue that the caller polls.
The two queues are the only things shared between the caller and the worker.

Usage:
    with ConversionCoordinator() as coordinator:
        coordinator.submit_path("tile.obj", offset)
        ...
        for event in coordinator.poll():
            print(event.path, event.fraction)
"""
import queue
import threading
import weakref
from dataclasses import dataclass
from typing import List, Optional

from config import OUTPUT_SUFFIX, POLL_INTERVAL, PROGRESS_INTERVAL_LINES
from logUtils import log_with_timestamp
from metadata import Offset
from transformobj import ConversionResult, ProgressEvent, transform_obj_coordinates

# Put on the request queue to stop the worker
_CLOSE = object()


@dataclass(frozen=True)
class FileTask:
    path: str
    offset: Offset


@dataclass
class ConversionOutcome:
    task: FileTask
    result: Optional[ConversionResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self):
        return self.error is None


class ProgressChannel:
    """
    Worker -> caller queue of ProgressEvents.

    With maxsize > 0 the channel is bounded: when it is full, intermediate
    events are dropped (the next event for the same file supersedes them) and
    terminal events wait for the observer to drain the queue.
    """

    def __init__(self, maxsize=0):
        self.maxsize = maxsize
        self.dropped = 0
        self._queue = queue.Queue(maxsize)

    def publish(self, event):
        if event.terminal or self.maxsize <= 0:
            self._queue.put(event)
            return
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1

    def get(self, timeout=None):
        return self._queue.get(timeout=timeout)

    def poll(self):
        """Return every event available right now, without blocking."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class ConversionCoordinator:
    def __init__(self, interval=PROGRESS_INTERVAL_LINES, suffix=OUTPUT_SUFFIX, progress_maxsize=0):
        self.interval = interval
        self.suffix = suffix
        self.progress = ProgressChannel(progress_maxsize)
        self.results: List[ConversionOutcome] = []
        self._requests = queue.Queue()
        self._thread = None
        self._finalizer = None
        self._closed = False
        self._lock = threading.Lock()

    def start(self):
        with self._lock:
            if self._thread is None:
                if self._closed:
                    raise RuntimeError("Coordinator is closed, no new tasks are accepted")
                thread = threading.Thread(
                    target=_worker_loop,
                    args=(self._requests, self.progress, self.results, self.interval, self.suffix),
                    name="obj-converter",
                    daemon=True,
                )
                thread.start()
                self._thread = thread
                # Caller dropped us or the interpreter is exiting: let queued work finish
                self._finalizer = weakref.finalize(self, _shutdown_worker, self._requests, thread)
        return self

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    @property
    def closed(self):
        return self._closed

    def submit(self, task):
        """Queue a task for conversion and return immediately."""
        self.start()
        with self._lock:
            if self._closed:
                raise RuntimeError("Coordinator is closed, no new tasks are accepted")
            self._requests.put(task)
        return task

    def submit_path(self, path, offset):
        return self.submit(FileTask(str(path), offset))

    def poll(self):
        return self.progress.poll()

    def events(self):
        """Yield progress events as they arrive until the worker has stopped."""
        while True:
            try:
                yield self.progress.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                if not self.running:
                    yield from self.progress.poll()
                    return

    def close(self, wait=True, timeout=None):
        """
        Stop accepting tasks. The worker finishes everything already queued
        and then exits.
        """
        with self._lock:
            if self._closed:
                finalizer = None
            else:
                self._closed = True
                finalizer = self._finalizer
        if finalizer is not None and finalizer.detach() is not None:
            self._requests.put(_CLOSE)
        if wait:
            self.join(timeout)

    def join(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _shutdown_worker(requests, thread):
    requests.put(_CLOSE)
    if thread is not threading.current_thread():
        thread.join()


def _worker_loop(requests, progress, results, interval, suffix):
    log_with_timestamp("Conversion worker started")
    while True:
        task = requests.get()
        if task is _CLOSE:
            break
        results.append(_process(task, progress, interval, suffix))
    log_with_timestamp("Conversion worker stopped")


def _process(task, progress, interval, suffix):
    log_with_timestamp(f"Converting {task.path} with offset {task.offset}")
    last_fraction = 0.0

    def forward(event):
        nonlocal last_fraction
        last_fraction = event.fraction
        progress.publish(event)

    try:
        result = transform_obj_coordinates(
            task.path, task.offset, progress=forward, interval=interval, suffix=suffix
        )
    except Exception as e:
        # One bad file must not take the worker down
        log_with_timestamp(f"ERROR converting {task.path}: {e}")
        progress.publish(ProgressEvent(task.path, last_fraction, error=str(e)))
        return ConversionOutcome(task, error=e)

    return ConversionOutcome(task, result=result)
