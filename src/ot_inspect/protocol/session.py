"""CDP session over a single WebSocket.

Outbound calls get a monotonically increasing id and a PendingCall holding a
Future and a deadline timer. A daemon reader thread resolves the matching
PendingCall for each response and routes events to listeners. A PendingCall
is removed exactly once, by whichever of response or timeout pops it first.
"""

from __future__ import annotations

import itertools
import json
import threading
import time
from collections import defaultdict
from collections.abc import Callable
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from typing import Any

import websocket
from loguru import logger

from ot_inspect.config import ProtocolConfig
from ot_inspect.errors import ConnectionFailed, ProtocolError, ProtocolTimeout

EventListener = Callable[[dict[str, Any]], None]


@dataclass
class PendingCall:
    """An in-flight request awaiting its response."""

    call_id: int
    method: str
    timeout: float
    future: Future[dict[str, Any]]
    timer: threading.Timer
    sent_at: float = field(default_factory=time.monotonic)


class ProtocolSession:
    """Request/response correlated CDP client.

    Example:
        >>> with ProtocolSession.connect(target.ws_url) as session:
        ...     session.call("Page.enable")
        ...     shot = session.call("Page.captureScreenshot", {"format": "png"})
    """

    def __init__(
        self,
        ws: websocket.WebSocket,
        *,
        call_timeout: float = 30.0,
        name: str = "cdp-reader",
    ) -> None:
        self._ws = ws
        self.call_timeout = call_timeout
        self._ids = itertools.count(1)
        self._pending: dict[int, PendingCall] = {}
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._listeners: dict[str, list[EventListener]] = defaultdict(list)
        self._closed = threading.Event()
        self._reader = threading.Thread(target=self._read_loop, name=name, daemon=True)
        self._reader.start()

    @classmethod
    def connect(cls, ws_url: str, config: ProtocolConfig | None = None) -> ProtocolSession:
        """Open a WebSocket to a target, retrying with a fixed delay.

        Raises:
            ConnectionFailed: If every attempt fails
        """
        config = config or ProtocolConfig()
        last_error: Exception | None = None
        for attempt in range(1, config.connect_attempts + 1):
            try:
                ws = websocket.create_connection(
                    ws_url,
                    timeout=config.connect_timeout,
                    suppress_origin=True,
                )
            except (websocket.WebSocketException, OSError) as e:
                last_error = e
                logger.debug(
                    f"WebSocket connect attempt {attempt}/{config.connect_attempts} failed: {e}"
                )
                if attempt < config.connect_attempts:
                    time.sleep(config.connect_retry_delay)
                continue

            # The reader blocks on recv; close() unblocks it
            ws.settimeout(None)
            return cls(ws, call_timeout=config.call_timeout)

        raise ConnectionFailed(
            f"Could not connect to {ws_url} after {config.connect_attempts} attempts: {last_error}"
        )

    # -------------------------------------------------------------------------
    # Calls
    # -------------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Future[dict[str, Any]]:
        """Send a request and return a Future for its result.

        The Future fails with ProtocolTimeout if no response arrives in time,
        ProtocolError if the browser answers with an error, or
        ConnectionFailed if the socket closes first.
        """
        if self._closed.is_set():
            raise ConnectionFailed(f"CDP session closed, cannot send {method}")

        call_id = next(self._ids)
        deadline = timeout if timeout is not None else self.call_timeout
        future: Future[dict[str, Any]] = Future()
        timer = threading.Timer(deadline, self._expire, args=(call_id,))
        timer.daemon = True
        pending = PendingCall(call_id, method, deadline, future, timer)

        with self._lock:
            self._pending[call_id] = pending
        timer.start()

        payload = json.dumps({"id": call_id, "method": method, "params": params or {}})
        try:
            with self._send_lock:
                self._ws.send(payload)
        except (websocket.WebSocketException, OSError) as e:
            self._discard(call_id)
            raise ConnectionFailed(f"Failed to send {method}: {e}") from e
        return future

    def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send a request and block for its result."""
        return self.send(method, params, timeout).result()

    def _discard(self, call_id: int) -> PendingCall | None:
        with self._lock:
            pending = self._pending.pop(call_id, None)
        if pending is not None:
            pending.timer.cancel()
        return pending

    def _expire(self, call_id: int) -> None:
        with self._lock:
            pending = self._pending.pop(call_id, None)
        if pending is None:
            return
        logger.warning(f"CDP request timeout: {pending.method} (id={call_id})")
        self._resolve(pending, error=ProtocolTimeout(pending.method, pending.timeout))

    def _fail_all(self, error_message: str) -> None:
        with self._lock:
            pending_calls = list(self._pending.values())
            self._pending.clear()
        for pending in pending_calls:
            pending.timer.cancel()
            self._resolve(
                pending,
                error=ConnectionFailed(f"{error_message} while waiting for {pending.method}"),
            )

    @staticmethod
    def _resolve(
        pending: PendingCall,
        result: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        """Complete a call's Future unless the caller already cancelled it."""
        try:
            if error is not None:
                pending.future.set_exception(error)
            else:
                pending.future.set_result(result or {})
        except InvalidStateError:
            logger.debug(
                f"Dropping result for cancelled call {pending.method} (id={pending.call_id})"
            )

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def add_listener(self, method: str, listener: EventListener) -> None:
        with self._lock:
            self._listeners[method].append(listener)

    def remove_listener(self, method: str, listener: EventListener) -> None:
        with self._lock:
            listeners = self._listeners.get(method, [])
            if listener in listeners:
                listeners.remove(listener)

    def wait_for_event(self, method: str, timeout: float) -> dict[str, Any] | None:
        """Block until the next event named method, or None on timeout."""
        received: list[dict[str, Any]] = []
        fired = threading.Event()

        def _on_event(params: dict[str, Any]) -> None:
            received.append(params)
            fired.set()

        self.add_listener(method, _on_event)
        try:
            fired.wait(timeout)
        finally:
            self.remove_listener(method, _on_event)
        return received[0] if received else None

    # -------------------------------------------------------------------------
    # Reader
    # -------------------------------------------------------------------------

    def _read_loop(self) -> None:
        reason = "CDP socket closed"
        try:
            while not self._closed.is_set():
                try:
                    raw = self._ws.recv()
                except websocket.WebSocketTimeoutException:
                    continue
                except (websocket.WebSocketException, OSError) as e:
                    if not self._closed.is_set():
                        logger.debug(f"CDP reader stopped: {e}")
                        reason = f"CDP socket error: {e}"
                    break
                if not raw:
                    if not getattr(self._ws, "connected", True):
                        break
                    continue
                self._dispatch(raw)
        finally:
            self._closed.set()
            self._fail_all(reason)

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Dropping malformed CDP frame: {raw[:80]!r}")
            return
        if not isinstance(message, dict):
            return

        call_id = message.get("id")
        if call_id is not None:
            pending = self._discard(call_id)
            if pending is None:
                logger.debug(f"Dropping response for unknown id {call_id}")
                return
            error = message.get("error")
            if error is not None:
                if isinstance(error, dict):
                    exc = ProtocolError(
                        pending.method, str(error.get("message", error)), error.get("code")
                    )
                else:
                    exc = ProtocolError(pending.method, str(error))
                self._resolve(pending, error=exc)
            else:
                self._resolve(pending, message.get("result"))
            return

        method = message.get("method")
        if not method:
            return
        with self._lock:
            listeners = list(self._listeners.get(method, ()))
        params = message.get("params") or {}
        for listener in listeners:
            try:
                listener(params)
            except Exception as e:
                logger.warning(f"Event listener for {method} failed: {e}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the socket and fail anything still pending. Idempotent."""
        reader_stopped = self._closed.is_set() and not self._reader.is_alive()
        self._closed.set()
        try:
            self._ws.close()
        except (websocket.WebSocketException, OSError) as e:
            logger.debug(f"Error closing CDP socket: {e}")
        if reader_stopped:
            return
        if self._reader is not threading.current_thread():
            self._reader.join(timeout=2.0)
        self._fail_all("CDP session closed")

    def __enter__(self) -> ProtocolSession:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
