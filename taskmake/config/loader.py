import json
import logging
import shlex
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from taskmake.graph.types import CyclicDependencyError

from .types import (
    Artifact,
    ConfigError,
    Phony,
    Task,
    TaskRegistry,
    UnknownTaskError,
    UnsupportedConfigFormatError,
)

logger = logging.getLogger(__name__)


def load_registry(path: str | Path) -> TaskRegistry:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    raw_file = _parse_file(pure_path, fmt)
    registry = _build_registry(raw_file)
    logger.debug("Loaded %d task(s) from %s", len(registry), pure_path)
    return registry


def _detect_format(path: Path) -> str:
    fmt = path.suffix
    match fmt:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case _:
            raise UnsupportedConfigFormatError(
                f"Non supported file extension: {fmt}\n Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    match fmt:
        case "yaml":
            return _parse_yaml(path)
        case "toml":
            return _parse_toml(path)
        case "json":
            return _parse_json(path)
        case _:
            raise AssertionError("Unreachable")


def _parse_yaml(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML") from exc

    return _ensure_mapping(path, "YAML", raw_file)


def _parse_toml(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: invalid TOML") from exc

    return _ensure_mapping(path, "TOML", raw_file)


def _parse_json(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON") from exc

    return _ensure_mapping(path, "JSON", raw_file)


def _ensure_mapping(path: Path, fmt: str, raw_file: Any) -> Mapping[str, Any]:
    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: {fmt} parsed successfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def _build_registry(raw: Mapping[str, Any]) -> TaskRegistry:
    if "tasks" not in raw:
        raise ConfigError("Missing 'tasks' field")

    if not isinstance(raw["tasks"], Mapping):
        raise ConfigError(f"'tasks' must be a mapping, got {type(raw['tasks'])}")

    if len(raw["tasks"]) < 1:
        raise ConfigError("There must be at least one task in the config file")

    default = None
    if "default" in raw:
        if not isinstance(raw["default"], str) or len(raw["default"].strip()) < 1:
            raise ConfigError("'default' must be a non empty task id")
        default = raw["default"].strip()

    registry = TaskRegistry(default)

    for task_id, fields in raw["tasks"].items():
        if not isinstance(task_id, str):
            raise ConfigError(f"Task id must be a string, got {type(task_id)}")

        if not isinstance(fields, Mapping):
            raise ConfigError(f"{task_id} must be a mapping")

        task_id_norm = task_id.strip()

        if len(task_id_norm) < 1:
            raise ConfigError("A task id can't be empty")

        # DuplicateTaskError when two ids collide after normalization
        registry.register(_build_task(task_id_norm, fields))

    for task in registry:
        for dep in task.deps:
            if dep not in registry:
                raise UnknownTaskError(dep, required_by=task.id)

    if default is not None and default not in registry:
        raise UnknownTaskError(default)

    return registry


def _build_task(task_id: str, fields: Mapping[str, Any]) -> Task:
    keys = {"command", "deps", "env", "working_dir", "phony", "artifact", "timeout"}
    deps = []
    seen = set()
    env = {}
    working_dir = None
    timeout = None

    for field in fields.keys():
        if field not in keys:
            raise ConfigError(f"{task_id}: Can't process: {field}")

    if "command" not in fields:
        raise ConfigError(f"{task_id}: missing 'command'")

    command = _build_command(task_id, fields["command"])

    if "deps" in fields:
        if not isinstance(fields["deps"], list):
            raise ConfigError(f"{task_id}: Dependencies should be in a list.")

        for item in fields["deps"]:
            if not isinstance(item, str):
                raise ConfigError(
                    f"{task_id}: {item} should be a string in the dependency list"
                )

            dep = item.strip()

            if len(dep) < 1:
                raise ConfigError(f"{task_id}: A dependency is empty")

            if dep == task_id:
                raise CyclicDependencyError([task_id, task_id])

            # Allows to ignore duplicates dependency
            if dep in seen:
                continue

            deps.append(dep)
            seen.add(dep)

    if "env" in fields:
        if not isinstance(fields["env"], Mapping):
            raise ConfigError(f"{task_id}: Env should be a mapping")

        for key, item in fields["env"].items():
            if not isinstance(key, str):
                raise ConfigError(f"{task_id}: {key} should be a string")

            if len(key.strip()) < 1:
                raise ConfigError(f"{task_id}: A key can't be empty")

            if not isinstance(item, str):
                raise ConfigError(f"{task_id}: {item} should be a string")

            env[key.strip()] = item

    if "working_dir" in fields:
        if not isinstance(fields["working_dir"], str):
            raise ConfigError(f"{task_id}: The working_dir should be a string")

        if len(fields["working_dir"].strip()) < 1:
            raise ConfigError(
                f"{task_id}: Please provide a string or remove this field"
            )

        working_dir = fields["working_dir"].strip()

    if "timeout" in fields:
        value = fields["timeout"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{task_id}: The timeout should be a number of seconds")

        if value <= 0:
            raise ConfigError(f"{task_id}: The timeout must be positive")

        timeout = float(value)

    kind = _build_kind(task_id, fields)

    return Task(task_id, command, tuple(deps), kind, env, working_dir, timeout)


def _build_command(task_id: str, raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        try:
            argv = shlex.split(raw)
        except ValueError as exc:
            raise ConfigError(f"{task_id}: Can't split command: {exc}") from exc
    elif isinstance(raw, list):
        for item in raw:
            if not isinstance(item, str):
                raise ConfigError(
                    f"{task_id}: {item} should be a string in the command list"
                )
        argv = list(raw)
    else:
        raise ConfigError(f"{task_id}: The command should be a string or a list")

    if len(argv) < 1 or len(argv[0].strip()) < 1:
        raise ConfigError(f"{task_id}: Command missing")

    return tuple(argv)


def _build_kind(task_id: str, fields: Mapping[str, Any]) -> Phony | Artifact:
    artifact = None

    if "artifact" in fields:
        if not isinstance(fields["artifact"], str):
            raise ConfigError(f"{task_id}: The artifact should be a string")

        if len(fields["artifact"].strip()) < 1:
            raise ConfigError(
                f"{task_id}: Please provide a path or remove this field"
            )

        artifact = fields["artifact"].strip()

    if "phony" in fields:
        if not isinstance(fields["phony"], bool):
            raise ConfigError(f"{task_id}: phony should be true or false")

        if fields["phony"]:
            if artifact is not None:
                raise ConfigError(f"{task_id}: A phony task can't have an artifact")
            return Phony()

        # Non phony without an explicit artifact produces a file named after the task
        return Artifact(artifact or task_id)

    if artifact is not None:
        return Artifact(artifact)

    return Phony()
