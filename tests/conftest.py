"""
Test Configuration

Shared fixtures and test utilities.
"""

import pytest
import pytest_asyncio

from actionhub.actions import ApiExecutor, Dispatcher, InMemoryActionStore
from actionhub.config.settings import ExecutionSettings
from actionhub.observability.logging import BufferHandler, configure_logging
from actionhub.safety.audit import AuditLogWriter, InMemoryAuditStorage
from tests.fixtures import (
    RecordingTransport,
    api_action,
    bash_action,
    composite_action,
    weather_handler,
)


@pytest.fixture
def log_buffer():
    """Capture every log record emitted during the test."""
    buffer = BufferHandler()
    configure_logging(level="DEBUG", handlers=[buffer])
    yield buffer
    configure_logging(level="INFO")


@pytest.fixture
def weather_transport() -> RecordingTransport:
    return RecordingTransport(weather_handler)


@pytest.fixture
def store() -> InMemoryActionStore:
    """Store with one action of each type."""
    return InMemoryActionStore(
        [
            api_action(),
            bash_action(
                "echo_message",
                "echo {{message}}",
                allowed=["echo"],
                parameters=[{"name": "message", "required": True}],
            ),
            composite_action(
                "weather_report",
                steps=[
                    {"action": "get_weather", "params": {"city": "{{city}}"}},
                    {"action": "echo_message", "params": {"message": "{{step_0_result}}"}},
                ],
                parameters=[{"name": "city", "required": True}],
            ),
        ]
    )


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_writer(audit_storage) -> AuditLogWriter:
    return AuditLogWriter(audit_storage)


@pytest_asyncio.fixture
async def dispatcher(store, audit_writer, weather_transport):
    """Dispatcher whose api calls go to the fake weather service."""
    dispatcher = Dispatcher(
        store,
        audit_writer=audit_writer,
        settings=ExecutionSettings(),
        api_executor=ApiExecutor(transport=weather_transport),
    )
    yield dispatcher
    await audit_writer.drain()
    await dispatcher.close()
