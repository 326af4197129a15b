import logging
from typing import Callable

from starlette.datastructures import MutableHeaders
from starlette.types import Message, Receive, Send

logger = logging.getLogger(__name__)


class Exchange:
    """
    Response side of one request/response exchange.

    Collects the headers that stages contribute, runs completion callbacks
    exactly once when the response headers are committed, replays a buffered
    request body downstream, and drops any write after the response has
    finished or the client has gone away.
    """

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self._headers: dict[str, str] = {}
        self._completion_callbacks: list[Callable[[], None]] = []
        self._finalized = False
        self._completed = False
        self._disconnected = False
        self._buffered_body: bytes | None = None
        self.status_code: int | None = None

    @property
    def headers(self) -> dict[str, str]:
        return self._headers

    @property
    def response_started(self) -> bool:
        return self._finalized

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def set_header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def on_complete(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the response is finalized"""
        self._completion_callbacks.append(callback)

    def finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        callbacks, self._completion_callbacks = self._completion_callbacks, []
        for callback in callbacks:
            callback()

    def buffer_body(self, body: bytes) -> None:
        self._buffered_body = body

    async def receive(self) -> Message:
        """Raw receive channel, tracking client disconnects"""
        message = await self._receive()
        if message["type"] == "http.disconnect":
            self._disconnected = True
        return message

    async def replay_receive(self) -> Message:
        """Receive channel for the downstream app, serving the buffered body first"""
        if self._buffered_body is not None:
            body, self._buffered_body = self._buffered_body, None
            return {"type": "http.request", "body": body, "more_body": False}
        return await self.receive()

    async def send(self, message: Message) -> None:
        if self._completed or self._disconnected:
            logger.debug("Dropping %s after the response was closed", message["type"])
            return

        if message["type"] == "http.response.start":
            if self._finalized:
                logger.warning("Response already started; ignoring a second response start")
                return
            self.finalize()
            self.status_code = message["status"]
            message.setdefault("headers", [])
            headers = MutableHeaders(scope=message)
            for name, value in self._headers.items():
                if name.lower() == "vary":
                    headers.add_vary_header(value)
                else:
                    headers[name] = value
        elif message["type"] == "http.response.body":
            if not message.get("more_body", False):
                self._completed = True

        await self._send(message)

