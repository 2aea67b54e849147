"""
Bounded-time reconnection
A single worker retries the connection until it succeeds, the caller waits
for it no longer than the configured timeout
"""

import concurrent.futures
import logging
import threading

from .errors import FTPError, ReconnectTimeout

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_TIMEOUT = 5
DEFAULT_RETRY_INTERVAL = 0.2


class ReconnectSupervisor:
    """Runs a cancellable retry loop and hands its transport over once"""

    def __init__(self, connect_fn, timeout=DEFAULT_RECONNECT_TIMEOUT,
                 retry_interval=DEFAULT_RETRY_INTERVAL, on_discard=None):
        """
        Args:
            connect_fn: Callable(host, port) returning an open transport or
                raising FTPError
            timeout: Wall-clock bound in seconds
            retry_interval: Pause between two failed attempts
            on_discard: Callable(result) used to release a result that
                arrives after the deadline
        """
        self.connect_fn = connect_fn
        self.timeout = timeout
        self.retry_interval = retry_interval
        self.on_discard = on_discard

    def run(self, host, port):
        """
        Retry until connected or the timeout elapses

        Returns:
            Whatever connect_fn returned on its first success

        Raises:
            ReconnectTimeout: No attempt succeeded in time
        """
        cancel = threading.Event()
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix='ftp-reconnect')
        future = executor.submit(self._retry_loop, host, port, cancel)
        try:
            return future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError:
            cancel.set()
            future.add_done_callback(self._discard)
            raise ReconnectTimeout(
                f"Cannot reconnect to {host}:{port}: timeout of {self.timeout}s exceeded") from None
        finally:
            executor.shutdown(wait=False)

    def _retry_loop(self, host, port, cancel):
        attempt = 0
        while not cancel.is_set():
            attempt += 1
            try:
                result = self.connect_fn(host, port)
            except FTPError as e:
                logger.warning("Reconnect attempt %d to %s:%s failed: %s", attempt, host, port, e)
                cancel.wait(self.retry_interval)
                continue

            if cancel.is_set():
                self._release(result)
                return None
            logger.info("Reconnected to %s:%s after %d attempt(s)", host, port, attempt)
            return result
        return None

    def _discard(self, future):
        if future.cancelled() or future.exception() is not None:
            return
        self._release(future.result())

    def _release(self, result):
        if result is not None and self.on_discard is not None:
            self.on_discard(result)
