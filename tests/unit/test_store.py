"""
Unit Tests - Action Store

Tests for YAML loading, credential linking and the Redis-backed store.
"""

from pathlib import Path

import pytest

from actionhub.actions.store import InMemoryActionStore, RedisActionStore, expand_env
from actionhub.core.exceptions import (
    ActionConfigError,
    ConfigurationError,
    UnknownActionTypeError,
)
from actionhub.core.types import ActionType, AuthType
from tests.fixtures import FakeRedis, api_action, bash_action, record

DEMO_ACTIONS = Path(__file__).resolve().parents[2] / "config" / "actions"

ACTIONS_YAML = """
credentials:
  - name: github
    auth_type: bearer
    bearer_token: ${GITHUB_TOKEN}
  - name: internal
    auth_type: custom_headers
    custom_headers:
      X-Service-Key: key-${ENV_NAME}

actions:
  - name: github_user
    action_type: api
    auth_credential: github
    api_config:
      url_template: https://api.github.com/users/{{username}}
    parameters:
      - name: username
  - name: internal_status
    action_type: api
    auth_credential: internal
    api_config:
      url_template: https://internal.example.com/status
  - name: list_dir
    action_type: bash
    enabled: false
    bash_config:
      command_template: ls {{path}}
      allowed_commands: [ls]
"""


def write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


class TestExpandEnv:
    """Tests for expand_env()."""

    def test_expands_references(self):
        """Test ${NAME} references are replaced."""
        assert expand_env("a-${X}-${Y}", {"X": "1", "Y": "2"}) == "a-1-2"

    def test_unset_variable(self):
        """Test an unset variable is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            expand_env("${MISSING}", {})
        assert exc_info.value.context == {"variable": "MISSING"}


class TestInMemoryActionStore:
    """Tests for InMemoryActionStore loading and lookup."""

    @pytest.mark.asyncio
    async def test_load_file_with_credentials(self, tmp_path):
        """Test actions are linked to credentials with secrets expanded."""
        path = write(tmp_path, "actions.yaml", ACTIONS_YAML)
        store = InMemoryActionStore.from_file(
            path, environ={"GITHUB_TOKEN": "ghp_abc", "ENV_NAME": "prod"}
        )

        github = await store.find_action_by_name("github_user")
        assert github.auth_credential.auth_type == AuthType.BEARER
        assert github.auth_credential.auth_headers() == {"Authorization": "Bearer ghp_abc"}

        internal = await store.find_action_by_name("internal_status")
        assert internal.auth_credential.auth_headers() == {"X-Service-Key": "key-prod"}

    @pytest.mark.asyncio
    async def test_disabled_actions_hidden(self, tmp_path):
        """Test disabled actions are only visible when asked for."""
        path = write(tmp_path, "actions.yaml", ACTIONS_YAML)
        store = InMemoryActionStore.from_file(path, environ={"GITHUB_TOKEN": "t", "ENV_NAME": "e"})

        assert await store.find_action_by_name("list_dir") is None
        assert (await store.find_action_by_name("list_dir", enabled_only=False)).action_type == ActionType.BASH
        assert [a.name for a in await store.list_actions()] == ["github_user", "internal_status"]
        assert len(await store.list_actions(enabled_only=False)) == 3

    def test_missing_environment_variable(self, tmp_path):
        """Test loading fails when a secret's variable is unset."""
        path = write(tmp_path, "actions.yaml", ACTIONS_YAML)
        with pytest.raises(ConfigurationError):
            InMemoryActionStore.from_file(path, environ={"GITHUB_TOKEN": "t"})

    def test_unknown_credential(self, tmp_path):
        """Test an action naming an unknown credential is rejected."""
        path = write(
            tmp_path,
            "actions.yaml",
            """
actions:
  - name: x
    action_type: api
    auth_credential: nobody
    api_config:
      url_template: https://e.com
""",
        )
        with pytest.raises(ActionConfigError) as exc_info:
            InMemoryActionStore.from_file(path)
        assert exc_info.value.context["credential"] == "nobody"

    def test_invalid_records(self, tmp_path):
        """Test broken records fail the load with the right error."""
        broken = write(
            tmp_path,
            "broken.yaml",
            "actions:\n  - name: x\n    action_type: api\n",
        )
        untyped = write(tmp_path, "untyped.yaml", "actions:\n  - name: y\n")

        with pytest.raises(ActionConfigError):
            InMemoryActionStore.from_file(broken)
        with pytest.raises(UnknownActionTypeError):
            InMemoryActionStore.from_file(untyped)

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML and non-mapping documents are rejected."""
        bad = write(tmp_path, "bad.yaml", "actions: [unclosed")
        listed = write(tmp_path, "list.yaml", "- name: x\n")

        with pytest.raises(ConfigurationError):
            InMemoryActionStore.from_file(bad)
        with pytest.raises(ConfigurationError):
            InMemoryActionStore.from_file(listed)

    def test_missing_paths(self, tmp_path):
        """Test missing files and directories are configuration errors."""
        with pytest.raises(ConfigurationError):
            InMemoryActionStore.from_file(tmp_path / "nope.yaml")
        with pytest.raises(ConfigurationError):
            InMemoryActionStore.from_directory(tmp_path / "nope")

    @pytest.mark.asyncio
    async def test_directory_shares_credentials(self, tmp_path):
        """Test credentials in one file serve actions in another."""
        write(
            tmp_path,
            "a_actions.yaml",
            """
actions:
  - name: whoami
    action_type: api
    auth_credential: shared
    api_config:
      url_template: https://e.com/me
""",
        )
        write(
            tmp_path,
            "z_credentials.yml",
            "credentials:\n  - name: shared\n    auth_type: bearer\n    bearer_token: tok\n",
        )

        store = InMemoryActionStore.from_directory(tmp_path)

        whoami = await store.find_action_by_name("whoami")
        assert whoami.auth_credential.name == "shared"

    @pytest.mark.asyncio
    async def test_demo_actions(self):
        """Test the shipped demo actions load."""
        store = InMemoryActionStore.from_path(DEMO_ACTIONS)

        weather = await store.find_action_by_name("get_weather")
        disk = await store.find_action_by_name("disk_usage")
        combo = await store.find_action_by_name("weather_and_joke")

        assert weather.api_config.url_template.startswith("https://wttr.in/")
        assert disk.bash_config.allowed_commands == ["du"]
        assert combo.composite_config.stop_on_error is False

    @pytest.mark.asyncio
    async def test_duplicates_first_wins(self, log_buffer):
        """Test the earliest definition of a name wins and a warning is logged."""
        store = InMemoryActionStore()
        store.add(bash_action("dup", "echo one"))
        store.add(bash_action("dup", "echo two"))

        found = await store.find_action_by_name("dup")
        listed = await store.list_actions()

        assert found.bash_config.command_template == "echo one"
        assert len(listed) == 1
        assert len(store) == 2
        assert any(r.message.startswith("Duplicate action name") for r in log_buffer.records)


class TestRedisActionStore:
    """Tests for RedisActionStore against an in-process fake."""

    @pytest.fixture
    def redis_store(self):
        return RedisActionStore(client=FakeRedis(), key_prefix="test:")

    @pytest.mark.asyncio
    async def test_save_and_find(self, redis_store):
        """Test records round-trip through the hash."""
        await redis_store.save_action(record(api_action()))

        found = await redis_store.find_action_by_name("get_weather")

        assert found.api_config.url_template == "https://wttr.in/{{city}}?format=j1"
        assert await redis_store.find_action_by_name("other") is None

    @pytest.mark.asyncio
    async def test_credentials_linked_on_read(self, redis_store):
        """Test credential names are resolved when a record is read."""
        await redis_store.save_credential(
            {"name": "gh", "auth_type": "bearer", "bearer_token": "secret"}
        )
        action = record(api_action("github", url="https://api.github.com", parameters=[]))
        action["auth_credential"] = "gh"
        await redis_store.save_action(action)

        found = await redis_store.find_action_by_name("github")

        assert found.auth_credential.auth_headers() == {"Authorization": "Bearer secret"}

    @pytest.mark.asyncio
    async def test_list_sorted_and_enabled(self, redis_store):
        """Test listing is sorted and honours enabled."""
        await redis_store.save_action(record(bash_action("zz", "true")))
        await redis_store.save_action(record(bash_action("aa", "true")))
        disabled = record(bash_action("mm", "true"))
        disabled["enabled"] = False
        await redis_store.save_action(disabled)

        assert [a.name for a in await redis_store.list_actions()] == ["aa", "zz"]
        assert await redis_store.find_action_by_name("mm") is None
        assert [a.name for a in await redis_store.list_actions(enabled_only=False)] == ["aa", "mm", "zz"]

    @pytest.mark.asyncio
    async def test_corrupt_record(self, redis_store):
        """Test a broken stored record fails the lookup that reads it."""
        await redis_store.save_action({"name": "bad", "action_type": "bash"})

        with pytest.raises(ActionConfigError):
            await redis_store.find_action_by_name("bad")
