"""
Unit tests for the response-side exchange guard.
"""

from conftest import make_exchange, run


def start_message(status: int = 200, headers=None):
    return {"type": "http.response.start", "status": status, "headers": list(headers or [])}


def body_message(body: bytes = b"", more_body: bool = False):
    return {"type": "http.response.body", "body": body, "more_body": more_body}


class TestExchange:
    """Tests for Exchange."""

    def test_stage_headers_are_added_to_response(self):
        exchange, send = make_exchange(b"")
        exchange.set_header("X-Request-Id", "abc")

        run(exchange.send(start_message(headers=[(b"content-type", b"application/json")])))

        headers = dict(send.messages[0]["headers"])
        assert headers[b"x-request-id"] == b"abc"
        assert headers[b"content-type"] == b"application/json"
        assert exchange.status_code == 200
        assert exchange.response_started

    def test_stage_headers_override_response_headers(self):
        exchange, send = make_exchange(b"")
        exchange.set_header("X-Response-Time-ms", "1.234")

        run(exchange.send(start_message(headers=[(b"x-response-time-ms", b"0")])))

        values = [value for name, value in send.messages[0]["headers"] if name == b"x-response-time-ms"]
        assert values == [b"1.234"]

    def test_completion_callbacks_fire_once(self):
        exchange, _ = make_exchange(b"")
        calls = []
        exchange.on_complete(lambda: calls.append("done"))

        run(exchange.send(start_message()))
        exchange.finalize()

        assert calls == ["done"]

    def test_vary_is_merged_with_response_vary(self):
        exchange, send = make_exchange(b"")
        exchange.set_header("Vary", "Origin")

        run(exchange.send(start_message(headers=[(b"vary", b"Accept-Encoding")])))

        values = [value for name, value in send.messages[0]["headers"] if name == b"vary"]
        assert values == [b"Accept-Encoding, Origin"]

    def test_callback_header_lands_on_response(self):
        exchange, send = make_exchange(b"")
        exchange.on_complete(lambda: exchange.set_header("X-Late", "yes"))

        run(exchange.send(start_message()))

        assert (b"x-late", b"yes") in send.messages[0]["headers"]

    def test_second_response_start_is_dropped(self):
        exchange, send = make_exchange(b"")

        run(exchange.send(start_message(200)))
        run(exchange.send(start_message(500)))

        assert len(send.messages) == 1
        assert exchange.status_code == 200

    def test_writes_after_completion_are_dropped(self):
        exchange, send = make_exchange(b"")

        run(exchange.send(start_message()))
        run(exchange.send(body_message(b"done")))
        run(exchange.send(body_message(b"late")))

        assert exchange.completed
        assert len(send.messages) == 2

    def test_writes_after_disconnect_are_dropped(self):
        exchange, send = make_exchange(disconnect=True)

        message = run(exchange.receive())
        run(exchange.send(start_message()))

        assert message["type"] == "http.disconnect"
        assert send.messages == []

    def test_replay_serves_buffer_then_delegates(self):
        exchange, _ = make_exchange(b"original")
        exchange.buffer_body(b"buffered")

        first = run(exchange.replay_receive())
        second = run(exchange.replay_receive())

        assert first["body"] == b"buffered"
        assert second["body"] == b"original"
