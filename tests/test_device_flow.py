#!/usr/bin/env python3
"""
Test the OAuth device authorization flow.

Polling is driven with a fake sleep, so no test waits in real time.

Usage:
    uv run python tests/test_device_flow.py
"""

import io
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs

import httpx

from yoto_mcp.auth import DeviceAuthorizer
from yoto_mcp.auth.device_flow import DEVICE_CODE_GRANT
from yoto_mcp.config import Config
from yoto_mcp.errors import AuthTimeoutError, RemoteRejectedError

NOW = 1_700_000_000.0

DEVICE_RESPONSE = {
    "device_code": "dev-123",
    "user_code": "ABCD-EFGH",
    "verification_uri": "https://login.test/activate",
    "verification_uri_complete": "https://login.test/activate?user_code=ABCD-EFGH",
    "interval": 7,
    "expires_in": 900,
}


class FakeAuthServer:
    """Answers device-code requests, then token polls from a script."""

    def __init__(self, token_replies):
        self.token_replies = list(token_replies)
        self.device_requests = []
        self.token_requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/device/code":
            self.device_requests.append(request)
            return httpx.Response(200, json=DEVICE_RESPONSE)

        self.token_requests.append(request)
        reply = self.token_replies.pop(0) if self.token_replies else None
        if reply is None:
            return httpx.Response(403, json={"error": "authorization_pending"})
        if isinstance(reply, Exception):
            raise reply
        return reply


def _authorizer(server, sleep=None, **config_overrides):
    config = Config(auth_url="https://login.test", client_id="cid", **config_overrides)
    client = httpx.Client(transport=httpx.MockTransport(server))
    return DeviceAuthorizer(
        config, http_client=client, sleep=sleep or MagicMock(), clock=lambda: NOW
    )


def test_success_after_pending_polls():
    print("\n=== Test 1: approval arrives on the third poll ===")

    server = FakeAuthServer(
        [
            None,
            None,
            httpx.Response(
                200,
                json={"access_token": "acc", "refresh_token": "ref", "expires_in": 86400},
            ),
        ]
    )
    sleep = MagicMock()
    prompt = MagicMock()

    credential = _authorizer(server, sleep=sleep).run(on_prompt=prompt)

    assert credential.access_token == "acc"
    assert credential.refresh_token == "ref"
    assert credential.expires_at == NOW + 86400
    assert len(server.token_requests) == 3, "Loop stops on first success"
    assert sleep.call_count == 3
    assert all(c.args == (7,) for c in sleep.call_args_list), "Server interval used"

    session = prompt.call_args.args[0]
    assert session.user_code == "ABCD-EFGH"
    assert session.auth_url == DEVICE_RESPONSE["verification_uri_complete"]

    print(f"✅ Authorized after {len(server.token_requests)} polls")
    print("✅ Test passed!\n")


def test_device_code_request_form():
    print("\n=== Test 2: request bodies ===")

    server = FakeAuthServer(
        [httpx.Response(200, json={"access_token": "a", "expires_in": 10})]
    )
    _authorizer(server, scope="openid", audience="https://api.test").run(
        on_prompt=MagicMock()
    )

    device_form = parse_qs(server.device_requests[0].content.decode())
    assert device_form == {
        "client_id": ["cid"],
        "scope": ["openid"],
        "audience": ["https://api.test"],
    }

    token_form = parse_qs(server.token_requests[0].content.decode())
    assert token_form == {
        "grant_type": [DEVICE_CODE_GRANT],
        "device_code": ["dev-123"],
        "client_id": ["cid"],
    }

    print("✅ Test passed!\n")


def test_times_out_after_sixty_attempts():
    print("\n=== Test 3: attempt budget exhausted ===")

    server = FakeAuthServer([])
    sleep = MagicMock()

    try:
        _authorizer(server, sleep=sleep).run(on_prompt=MagicMock())
        raise AssertionError("Expected AuthTimeoutError")
    except AuthTimeoutError:
        pass

    assert len(server.token_requests) == 60, "Exactly 60 polls"
    assert sleep.call_count == 60
    print("✅ Test passed!\n")


def test_network_errors_count_as_attempts():
    print("\n=== Test 4: transient errors are swallowed ===")

    request = httpx.Request("POST", "https://login.test/oauth/token")
    server = FakeAuthServer(
        [
            httpx.ConnectError("down", request=request),
            httpx.ReadTimeout("slow", request=request),
            httpx.Response(200, json={"access_token": "ok", "expires_in": 60}),
        ]
    )

    credential = _authorizer(server).run(on_prompt=MagicMock())

    assert credential.access_token == "ok"
    assert credential.refresh_token is None
    assert len(server.token_requests) == 3
    print("✅ Test passed!\n")


def test_network_errors_exhaust_budget():
    print("\n=== Test 5: only network errors, small budget ===")

    request = httpx.Request("POST", "https://login.test/oauth/token")
    server = FakeAuthServer([httpx.ConnectError("down", request=request)] * 5)

    try:
        _authorizer(server, device_poll_max_attempts=5).run(on_prompt=MagicMock())
        raise AssertionError("Expected AuthTimeoutError")
    except AuthTimeoutError:
        pass

    assert len(server.token_requests) == 5
    print("✅ Test passed!\n")


def test_unreadable_success_reply_keeps_polling():
    print("\n=== Test 6: 200 with an HTML body counts as an attempt ===")

    server = FakeAuthServer(
        [
            httpx.Response(200, text="<html>proxy</html>"),
            httpx.Response(200, json={"token_type": "Bearer"}),
            httpx.Response(200, json={"access_token": "late", "expires_in": 60}),
        ]
    )

    credential = _authorizer(server).run(on_prompt=MagicMock())

    assert credential.access_token == "late"
    assert len(server.token_requests) == 3, "Unreadable replies are not terminal"
    print("✅ Test passed!\n")


def test_instructions_show_code_and_expiry():
    print("\n=== Test 7: operator instructions ===")

    authorizer = _authorizer(FakeAuthServer([]), open_browser=False)
    session = authorizer.init_flow()

    with patch("sys.stderr", new_callable=io.StringIO) as stderr:
        authorizer.print_instructions(session)

    output = stderr.getvalue()
    assert "ABCD-EFGH" in output
    assert DEVICE_RESPONSE["verification_uri_complete"] in output
    assert "expires in 15 minutes" in output
    print("✅ Test passed!\n")


def test_device_code_rejected():
    print("\n=== Test 8: device code request refused ===")

    def handler(request):
        return httpx.Response(401, text="unauthorized_client")

    config = Config(auth_url="https://login.test")
    authorizer = DeviceAuthorizer(
        config, http_client=httpx.Client(transport=httpx.MockTransport(handler))
    )

    try:
        authorizer.run(on_prompt=MagicMock())
        raise AssertionError("Expected RemoteRejectedError")
    except RemoteRejectedError as e:
        assert "unauthorized_client" in str(e), "Body should be in the message"

    print("✅ Test passed!\n")


if __name__ == "__main__":
    print("=" * 60)
    print("Device Flow Tests")
    print("=" * 60)

    tests = [
        test_success_after_pending_polls,
        test_device_code_request_form,
        test_times_out_after_sixty_attempts,
        test_network_errors_count_as_attempts,
        test_network_errors_exhaust_budget,
        test_unreadable_success_reply_keeps_polling,
        test_instructions_show_code_and_expiry,
        test_device_code_rejected,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ Test failed with exception: {e}")
            failed += 1

    print("=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)
