"""
Action Store

Read side of action definitions, plus the loaders that populate it.

Design decisions:
- Definitions are validated when read from their source, so every
  definition handed to the dispatcher is structurally sound
- YAML files hold `credentials:` and `actions:` sections; actions refer
  to a credential by name
- Credential secrets may be written as `${ENV_VAR}` and are expanded at
  load time so files can be committed without secrets
- Lookups keep insertion order: the first definition with a name wins
"""

import json
import os
import re
from pathlib import Path
from threading import RLock
from typing import Any

import yaml

from actionhub.core.exceptions import ActionConfigError, ConfigurationError
from actionhub.core.types import ActionDefinition, AuthCredential
from actionhub.observability.logging import get_logger

logger = get_logger("actionhub.actions.store")

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env(value: str, environ: dict[str, str] | None = None) -> str:
    """
    Expand `${NAME}` references from the environment.

    Raises:
        ConfigurationError: If a referenced variable is unset
    """
    env = os.environ if environ is None else environ

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in env:
            raise ConfigurationError(
                f"Environment variable {name} is not set",
                context={"variable": name},
            )
        return env[name]

    return _ENV_REF.sub(_replace, value)


def _expand_credential(record: dict[str, Any], environ: dict[str, str] | None) -> dict[str, Any]:
    expanded = dict(record)
    token = expanded.get("bearer_token")
    if isinstance(token, str):
        expanded["bearer_token"] = expand_env(token, environ)
    headers = expanded.get("custom_headers")
    if isinstance(headers, dict):
        expanded["custom_headers"] = {
            key: expand_env(value, environ) if isinstance(value, str) else value
            for key, value in headers.items()
        }
    return expanded


def link_credential(
    record: dict[str, Any],
    credentials: dict[str, AuthCredential],
) -> dict[str, Any]:
    """
    Replace an auth_credential name with the credential it names.

    Raises:
        ActionConfigError: If the name does not resolve
    """
    reference = record.get("auth_credential")
    if not isinstance(reference, str):
        return record

    credential = credentials.get(reference)
    if credential is None:
        raise ActionConfigError(
            f"Action '{record.get('name')}' references unknown credential '{reference}'",
            context={"action": record.get("name"), "credential": reference},
        )
    return {**record, "auth_credential": credential}


class InMemoryActionStore:
    """
    Action store held in memory.

    Usage:
        store = InMemoryActionStore.from_directory("config/actions")
        definition = await store.find_action_by_name("get_weather")

        # Or programmatically:
        store = InMemoryActionStore()
        store.add(definition)
    """

    def __init__(self, actions: list[ActionDefinition] | None = None):
        self._actions: list[ActionDefinition] = list(actions or [])
        self._credentials: dict[str, AuthCredential] = {}
        self._lock = RLock()

    @classmethod
    def from_directory(
        cls,
        directory: str | Path,
        recursive: bool = True,
        environ: dict[str, str] | None = None,
    ) -> "InMemoryActionStore":
        """
        Create a store by scanning a directory for YAML files.

        Files load in sorted path order. Credentials from every file are
        visible to actions in every file.

        Raises:
            ConfigurationError: If the directory doesn't exist
        """
        path = Path(directory)
        if not path.exists():
            raise ConfigurationError(f"Directory not found: {directory}")
        if not path.is_dir():
            raise ConfigurationError(f"Not a directory: {directory}")

        pattern = "**/*.y*ml" if recursive else "*.y*ml"
        documents = [
            (str(yaml_file), cls._read_yaml(yaml_file))
            for yaml_file in sorted(path.glob(pattern))
            if yaml_file.is_file()
        ]

        store = cls()
        for source, data in documents:
            store.load_credentials(data.get("credentials") or [], source, environ)
        for source, data in documents:
            store.load_actions(data.get("actions") or [], source)
        return store

    @classmethod
    def from_file(
        cls,
        filepath: str | Path,
        environ: dict[str, str] | None = None,
    ) -> "InMemoryActionStore":
        """Create a store from a single YAML file."""
        store = cls()
        store.load_file(filepath, environ)
        return store

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        environ: dict[str, str] | None = None,
    ) -> "InMemoryActionStore":
        """Load a file or a directory, whichever path is."""
        if Path(path).is_dir():
            return cls.from_directory(path, environ=environ)
        return cls.from_file(path, environ)

    @staticmethod
    def _read_yaml(filepath: str | Path) -> dict[str, Any]:
        path = Path(filepath)
        if not path.exists():
            raise ConfigurationError(f"File not found: {filepath}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {filepath}",
                context={"file": str(filepath)},
                cause=e,
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Expected a mapping with 'credentials' and 'actions' in {filepath}",
                context={"file": str(filepath)},
            )
        return data

    def load_file(self, filepath: str | Path, environ: dict[str, str] | None = None) -> list[ActionDefinition]:
        """
        Load credentials and actions from one YAML file.

        Returns:
            The actions added
        """
        data = self._read_yaml(filepath)
        self.load_credentials(data.get("credentials") or [], str(filepath), environ)
        return self.load_actions(data.get("actions") or [], str(filepath))

    def load_credentials(
        self,
        records: list[dict[str, Any]],
        source: str | None = None,
        environ: dict[str, str] | None = None,
    ) -> list[AuthCredential]:
        """Validate and register credential records."""
        loaded = []
        for record in records:
            try:
                credential = AuthCredential.model_validate(_expand_credential(record, environ))
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid credential '{record.get('name')}'",
                    context={"source": source},
                    cause=e,
                ) from e
            self.add_credential(credential)
            loaded.append(credential)
        return loaded

    def load_actions(
        self,
        records: list[dict[str, Any]],
        source: str | None = None,
    ) -> list[ActionDefinition]:
        """Validate and register action records."""
        loaded = []
        for record in records:
            definition = ActionDefinition.from_record(link_credential(record, self._credentials))
            self.add(definition)
            loaded.append(definition)

        logger.info("Loaded actions", count=len(loaded), source=source)
        return loaded

    def add(self, definition: ActionDefinition) -> ActionDefinition:
        """Append a definition. An earlier one with the same name still wins lookups."""
        with self._lock:
            if any(a.name == definition.name for a in self._actions):
                logger.warning("Duplicate action name; first definition wins", action=definition.name)
            self._actions.append(definition)
        return definition

    def add_credential(self, credential: AuthCredential) -> AuthCredential:
        with self._lock:
            self._credentials[credential.name] = credential
        return credential

    async def find_action_by_name(
        self,
        name: str,
        enabled_only: bool = True,
    ) -> ActionDefinition | None:
        with self._lock:
            for action in self._actions:
                if action.name == name and (action.enabled or not enabled_only):
                    return action
        return None

    async def list_actions(self, enabled_only: bool = True) -> list[ActionDefinition]:
        with self._lock:
            seen: set[str] = set()
            actions = []
            for action in self._actions:
                if action.name in seen or (enabled_only and not action.enabled):
                    continue
                seen.add(action.name)
                actions.append(action)
        return sorted(actions, key=lambda a: a.name)

    def __len__(self) -> int:
        return len(self._actions)


class RedisActionStore:
    """
    Redis-backed action store.

    Action and credential records are JSON values in two hashes keyed by
    name. Records are validated on every read, so a corrupt record fails
    the request that touches it rather than the whole store.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        key_prefix: str = "actionhub:",
        client=None,
    ):
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._client = client

    async def _get_client(self):
        """Lazy initialization of Redis client."""
        if self._client is None:
            import redis.asyncio as redis

            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    @property
    def _actions_key(self) -> str:
        return f"{self._key_prefix}actions"

    @property
    def _credentials_key(self) -> str:
        return f"{self._key_prefix}credentials"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def save_action(self, record: dict[str, Any]) -> None:
        """Store a raw action record. auth_credential may be a credential name."""
        client = await self._get_client()
        await client.hset(self._actions_key, record["name"], json.dumps(record))

    async def save_credential(self, record: dict[str, Any]) -> None:
        """Store a raw credential record, secrets included."""
        client = await self._get_client()
        await client.hset(self._credentials_key, record["name"], json.dumps(record))

    async def _credential(self, name: str) -> AuthCredential | None:
        client = await self._get_client()
        data = await client.hget(self._credentials_key, name)
        if data is None:
            return None
        return AuthCredential.model_validate_json(data)

    async def _build(self, raw: str) -> ActionDefinition:
        record = json.loads(raw)
        reference = record.get("auth_credential")
        credentials = {}
        if isinstance(reference, str):
            credential = await self._credential(reference)
            if credential is not None:
                credentials[reference] = credential
        return ActionDefinition.from_record(link_credential(record, credentials))

    async def find_action_by_name(
        self,
        name: str,
        enabled_only: bool = True,
    ) -> ActionDefinition | None:
        client = await self._get_client()
        raw = await client.hget(self._actions_key, name)
        if raw is None:
            return None
        definition = await self._build(raw)
        if enabled_only and not definition.enabled:
            return None
        return definition

    async def list_actions(self, enabled_only: bool = True) -> list[ActionDefinition]:
        client = await self._get_client()
        records = await client.hgetall(self._actions_key)

        actions = []
        for raw in records.values():
            definition = await self._build(raw)
            if enabled_only and not definition.enabled:
                continue
            actions.append(definition)
        return sorted(actions, key=lambda a: a.name)
