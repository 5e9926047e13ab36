"""Pre-upload hooks declared in `.td-hooks.json` next to a workflow project.

Why this is strict:
- Hooks run local commands before a project is packed, so every command is
  validated (no shell, no injection characters, bounded timeout) and its
  working directory must stay inside the project directory.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path

from pydantic import ValidationError

from treasuredata.core.domain.workflow import WorkflowHook, WorkflowHooksConfig
from treasuredata.core.errors import HookError

logger = logging.getLogger(__name__)

HOOKS_FILE_NAME = ".td-hooks.json"
DEFAULT_HOOK_TIMEOUT = 60
MAX_HOOK_TIMEOUT = 600
MAX_COMMAND_LENGTH = 1000
DANGEROUS_CHARS = frozenset(";|&$`\n\r")


def validate_hook_command(command: list[str]) -> None:
    if not command:
        raise HookError("", "command cannot be empty")
    for i, arg in enumerate(command):
        if len(arg) > MAX_COMMAND_LENGTH:
            raise HookError("", f"command argument {i} too long (max {MAX_COMMAND_LENGTH} characters)")
        if DANGEROUS_CHARS.intersection(arg):
            raise HookError("", f"command argument {i} contains dangerous characters")
    if ".." in command[0]:
        raise HookError("", "executable path cannot contain '..'")


def validate_working_dir(working_dir: str, project_dir: str | Path) -> Path:
    """Resolve a hook working directory; it must be inside `project_dir`."""

    project = Path(project_dir).resolve()
    if not working_dir:
        return project
    candidate = Path(working_dir)
    if not candidate.is_absolute():
        candidate = project / candidate
    candidate = candidate.resolve()
    if candidate != project and project not in candidate.parents:
        raise HookError("", f"working directory cannot be outside project directory (attempted: {working_dir})")
    return candidate


def validate_hook(hook: WorkflowHook, project_dir: str | Path) -> None:
    if not hook.name:
        raise HookError("", "hook name cannot be empty")
    try:
        validate_hook_command(hook.command)
    except HookError as exc:
        raise HookError(hook.name, f"invalid command: {exc.message}") from None
    if hook.timeout < 0:
        raise HookError(hook.name, "timeout cannot be negative")
    if hook.timeout > MAX_HOOK_TIMEOUT:
        raise HookError(hook.name, f"timeout {hook.timeout}s exceeds maximum {MAX_HOOK_TIMEOUT}s")
    try:
        validate_working_dir(hook.working_dir, project_dir)
    except HookError as exc:
        raise HookError(hook.name, f"invalid working directory: {exc.message}") from None


def load_hooks_config(project_dir: str | Path) -> WorkflowHooksConfig:
    """Read and validate `.td-hooks.json`; a missing file means no hooks."""

    path = Path(project_dir) / HOOKS_FILE_NAME
    if not path.exists():
        return WorkflowHooksConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = WorkflowHooksConfig.model_validate(data)
    except OSError as exc:
        raise HookError("", f"failed to read hooks config file {path}: {exc}") from exc
    except (ValueError, ValidationError) as exc:
        raise HookError("", f"failed to parse hooks config file {path}: {exc}") from exc

    for hook in config.pre_upload_hooks:
        validate_hook(hook, project_dir)
    return config


def execute_hook(hook: WorkflowHook, project_dir: str | Path) -> None:
    """Run one hook without a shell; output goes to the parent's stdio."""

    validate_hook(hook, project_dir)
    timeout = hook.timeout or DEFAULT_HOOK_TIMEOUT
    cwd = validate_working_dir(hook.working_dir, project_dir)

    logger.info("running hook %r: %s (cwd=%s)", hook.name, " ".join(hook.command), cwd)
    try:
        subprocess.run(hook.command, cwd=cwd, timeout=timeout, check=True)
    except subprocess.TimeoutExpired:
        raise HookError(hook.name, f"timed out after {timeout}s") from None
    except subprocess.CalledProcessError as exc:
        raise HookError(hook.name, f"failed with exit code {exc.returncode}") from exc
    except OSError as exc:
        raise HookError(hook.name, f"failed to start: {exc}") from exc
    logger.info("hook %r completed", hook.name)


def execute_pre_upload_hooks(project_dir: str | Path) -> int:
    """Run every pre-upload hook in order; returns how many ran.

    A failing hook aborts the upload only when its `fail_on_error` is set.
    """

    config = load_hooks_config(project_dir)
    if not config.pre_upload_hooks:
        return 0

    logger.info("executing %d pre-upload hook(s)", len(config.pre_upload_hooks))
    for hook in config.pre_upload_hooks:
        try:
            execute_hook(hook, project_dir)
        except HookError as exc:
            if hook.fail_on_error:
                raise
            logger.warning("hook %r failed but continuing: %s", hook.name, exc.message)
    return len(config.pre_upload_hooks)
