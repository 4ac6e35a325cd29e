"""
Запуск обращений к коллабораторам вне UI-потока.

Работа (work) выполняется в пуле потоков, а колбэки on_success / on_failure
всегда вызываются в UI-потоке: всё состояние формы меняется из одного места.
"""
from __future__ import annotations
import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

Work = Callable[[], Any]
OnSuccess = Callable[[Any], None]
OnFailure = Callable[[Exception], None]


class TaskRunner(Protocol):
    def submit(self, work: Work, on_success: OnSuccess, on_failure: OnFailure) -> None:
        ...


class ImmediateRunner:
    """Синхронный раннер: для тестов и скриптов без UI."""

    def submit(self, work: Work, on_success: OnSuccess, on_failure: OnFailure) -> None:
        try:
            result = work()
        except Exception as e:
            on_failure(e)
            return
        on_success(result)

    def shutdown(self) -> None:
        pass


class TkTaskRunner:
    """
    ThreadPoolExecutor + очередь готовых результатов,
    которую UI-поток разбирает по root.after.
    """

    POLL_MS = 50

    def __init__(self, root, max_workers: int = 2):
        self.root = root
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="bmlquery")
        self._done: "queue.Queue[tuple]" = queue.Queue()
        self._closed = False
        self.root.after(self.POLL_MS, self._poll)

    def submit(self, work: Work, on_success: OnSuccess, on_failure: OnFailure) -> None:
        future = self._pool.submit(work)
        future.add_done_callback(lambda f: self._done.put((f, on_success, on_failure)))

    def shutdown(self) -> None:
        self._closed = True
        # незавершённые ответы просто отбрасываем
        self._pool.shutdown(wait=False, cancel_futures=True)

    def _poll(self) -> None:
        while True:
            try:
                future, on_success, on_failure = self._done.get_nowait()
            except queue.Empty:
                break
            try:
                self._deliver(future, on_success, on_failure)
            except Exception:
                # упавший колбэк не должен останавливать опрос
                logger.exception("task callback failed")
        if not self._closed:
            self.root.after(self.POLL_MS, self._poll)

    @staticmethod
    def _deliver(future: Future, on_success: OnSuccess, on_failure: OnFailure) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            on_failure(exc)
        else:
            on_success(future.result())
