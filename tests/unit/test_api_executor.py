"""
Unit Tests - API Executor

Tests for request resolution, credential masking and response
classification, against httpx.MockTransport.
"""

import asyncio
import base64
import json
import time

import httpx
import pytest

from actionhub.actions.api_executor import ApiExecutor
from actionhub.core.exceptions import ActionConfigError
from actionhub.core.types import ActionDefinition, ActionType, AuthCredential
from actionhub.safety.redaction import MASK, redact_headers
from tests.fixtures import RecordingTransport, api_action, weather_handler


class TestApiExecutor:
    """Tests for ApiExecutor.execute()."""

    @pytest.mark.asyncio
    async def test_weather_lookup(self):
        """Test the resolved URL, status and parsed JSON body."""
        transport = RecordingTransport(weather_handler)
        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(api_action(), {"city": "Tokyo"})

        assert result.success is True
        assert result.status == 200
        assert result.data == {"city": "Tokyo", "temp_C": "21"}
        assert result.resolved_request.url == "https://wttr.in/Tokyo?format=j1"
        assert result.resolved_request.method == "GET"
        assert str(transport.requests[0].url) == "https://wttr.in/Tokyo?format=j1"

    @pytest.mark.asyncio
    async def test_bearer_token_masked(self):
        """Test the real token is sent but only the mask is returned."""
        transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
        credential = AuthCredential(name="gh", auth_type="bearer", bearer_token="secret-token")
        definition = api_action(
            name="whoami",
            url="https://api.example.com/user",
            parameters=[],
            credential=credential,
        )

        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(definition, {})

        assert transport.requests[0].headers["Authorization"] == "Bearer secret-token"
        assert result.resolved_request.headers["Authorization"] == MASK
        assert "secret-token" not in json.dumps(result.to_dict())

    @pytest.mark.asyncio
    async def test_custom_header_credential_overrides_template(self):
        """Test credential headers replace template headers and are masked."""
        transport = RecordingTransport(lambda request: httpx.Response(200, text="ok"))
        credential = AuthCredential(
            name="svc",
            auth_type="custom_headers",
            custom_headers={"X-Custom-Secret": "real"},
        )
        definition = api_action(
            name="svc_call",
            url="https://svc.example.com",
            parameters=[],
            credential=credential,
            headers={"x-custom-secret": "placeholder", "Accept": "text/plain"},
        )

        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(definition, {})

        sent = transport.requests[0].headers
        assert sent["X-Custom-Secret"] == "real"
        assert result.resolved_request.headers == {
            "Accept": "text/plain",
            "X-Custom-Secret": MASK,
        }
        assert result.data == "ok"

    @pytest.mark.asyncio
    async def test_sensitive_template_headers_masked(self):
        """Test well-known secret headers are masked without a credential."""
        transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
        definition = api_action(
            name="keyed",
            url="https://e.com",
            parameters=[{"name": "key"}],
            headers={"X-Api-Key": "{{key}}"},
        )

        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(definition, {"key": "k-123"})

        assert transport.requests[0].headers["X-Api-Key"] == "k-123"
        assert result.resolved_request.headers["X-Api-Key"] == MASK

    @pytest.mark.asyncio
    async def test_post_body_and_default_content_type(self):
        """Test bodies are raw-resolved and JSON content type is defaulted."""
        transport = RecordingTransport(lambda request: httpx.Response(201, json={"id": 7}))
        definition = api_action(
            name="create",
            url="https://e.com/items",
            parameters=[{"name": "title"}],
            method="POST",
            body_template='{"title": "{{title}}"}',
        )

        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(definition, {"title": "a b&c"})

        request = transport.requests[0]
        assert request.content == b'{"title": "a b&c"}'
        assert request.headers["Content-Type"] == "application/json"
        assert result.status == 201
        assert result.resolved_request.body == '{"title": "a b&c"}'

    @pytest.mark.asyncio
    async def test_existing_content_type_kept(self):
        """Test a template Content-Type of any case is not overridden."""
        transport = RecordingTransport(lambda request: httpx.Response(200, text=""))
        definition = api_action(
            name="form",
            url="https://e.com",
            parameters=[],
            method="PUT",
            headers={"content-type": "text/plain"},
            body_template="hello",
        )

        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(definition, {})

        assert transport.requests[0].headers["content-type"] == "text/plain"
        assert list(result.resolved_request.headers) == ["content-type"]

    @pytest.mark.asyncio
    async def test_get_never_sends_body(self):
        """Test body templates are ignored for GET."""
        transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
        definition = api_action(
            name="lookup",
            url="https://e.com",
            parameters=[],
            body_template="ignored",
        )

        async with ApiExecutor(transport=transport) as executor:
            await executor.execute(definition, {})

        assert transport.requests[0].content == b""

    @pytest.mark.asyncio
    async def test_non_2xx_is_failure(self):
        """Test upstream errors carry status and parsed body."""
        transport = RecordingTransport(
            lambda request: httpx.Response(404, json={"message": "Unknown location"})
        )
        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(api_action(), {"city": "Atlantis"})

        assert result.success is False
        assert result.status == 404
        assert result.error == {"message": "Unknown location"}

    @pytest.mark.asyncio
    async def test_empty_error_body(self):
        """Test an empty failure body falls back to the status line."""
        transport = RecordingTransport(lambda request: httpx.Response(503))
        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(api_action(), {"city": "Oslo"})

        assert result.error == "HTTP 503"

    @pytest.mark.asyncio
    async def test_image_response(self):
        """Test image bodies come back base64 encoded."""
        pixels = b"\x89PNG\r\n\x1a\n fake"
        transport = RecordingTransport(
            lambda request: httpx.Response(
                200, content=pixels, headers={"Content-Type": "image/png"}
            )
        )
        definition = api_action(name="random_image", url="https://picsum.photos/200", parameters=[])

        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(definition, {})

        assert result.success is True
        assert result.image.mime_type == "image/png"
        assert base64.b64decode(result.image.data) == pixels

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test a timeout is reported with the configured duration."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        definition = api_action(timeout_ms=5000)
        async with ApiExecutor(transport=httpx.MockTransport(handler)) as executor:
            result = await executor.execute(definition, {"city": "Tokyo"})

        assert result.success is False
        assert result.error == "Request timed out after 5000ms"
        assert result.status is None
        assert result.resolved_request.url == "https://wttr.in/Tokyo?format=j1"

    @pytest.mark.asyncio
    async def test_timeout_bounds_slow_body(self):
        """Test a body trickled below the read timeout still stops at timeout_ms."""

        async def drip(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 40\r\n\r\n")
            try:
                for _ in range(40):
                    writer.write(b"x")
                    await writer.drain()
                    await asyncio.sleep(0.1)
            except ConnectionError:
                pass
            finally:
                writer.close()

        server = await asyncio.start_server(drip, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        definition = api_action(url=f"http://127.0.0.1:{port}/slow", parameters=[], timeout_ms=500)

        started = time.monotonic()
        try:
            async with ApiExecutor() as executor:
                result = await executor.execute(definition, {})
        finally:
            server.close()
        elapsed = time.monotonic() - started

        assert elapsed < 2
        assert result.success is False
        assert result.error == "Request timed out after 500ms"
        assert result.resolved_request.url == f"http://127.0.0.1:{port}/slow"

    @pytest.mark.asyncio
    async def test_non_ascii_header_is_failure(self):
        """Test a header value that cannot be encoded is a result, not an exception."""
        definition = api_action(
            url="https://example.test/profile",
            parameters=[{"name": "who", "required": True}],
            headers={"X-User": "{{who}}"},
        )
        transport = RecordingTransport(weather_handler)
        async with ApiExecutor(transport=transport) as executor:
            result = await executor.execute(definition, {"who": "José"})

        assert result.success is False
        assert result.error.startswith("Request headers must be ASCII")
        assert result.resolved_request.url == "https://example.test/profile"
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test transport failures are described, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        async with ApiExecutor(transport=httpx.MockTransport(handler)) as executor:
            result = await executor.execute(api_action(), {"city": "Tokyo"})

        assert result.success is False
        assert result.error.startswith("ConnectError: Connection refused")

    @pytest.mark.asyncio
    async def test_missing_api_config(self):
        """Test a definition without api_config is a config error."""
        definition = ActionDefinition.model_construct(
            name="broken",
            action_type=ActionType.API,
            api_config=None,
        )
        async with ApiExecutor(transport=httpx.MockTransport(weather_handler)) as executor:
            with pytest.raises(ActionConfigError):
                await executor.execute(definition, {})


class TestRedaction:
    """Tests for redact_headers()."""

    def test_case_insensitive(self):
        """Test header names match regardless of case."""
        redacted = redact_headers({"authorization": "Bearer x", "TOKEN": "y", "Accept": "*/*"})
        assert redacted == {"authorization": MASK, "TOKEN": MASK, "Accept": "*/*"}

    def test_extra_names(self):
        """Test additional names are masked."""
        assert redact_headers({"X-Secret": "v"}, extra=["x-secret"]) == {"X-Secret": MASK}
