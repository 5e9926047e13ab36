"""Pre-upload hooks: validation, loading and execution."""

import json
import sys

import pytest

from treasuredata.adapters.hooks import (
    HOOKS_FILE_NAME,
    execute_pre_upload_hooks,
    load_hooks_config,
    validate_hook_command,
    validate_working_dir,
)
from treasuredata.core.errors import HookError


def _write_hooks(project, hooks):
    (project / HOOKS_FILE_NAME).write_text(json.dumps({"pre_upload_hooks": hooks}))


class TestValidation:
    @pytest.mark.parametrize(
        "command",
        [
            [],
            ["sh", "-c", "echo hi; rm -rf /"],
            ["echo", "$HOME"],
            ["echo", "`id`"],
            ["cat", "a | b"],
            ["../bin/tool"],
            ["echo", "x" * 1001],
        ],
    )
    def test_rejected_commands(self, command):
        with pytest.raises(HookError):
            validate_hook_command(command)

    def test_plain_command(self):
        validate_hook_command(["dbt", "compile", "--target", "prod"])

    def test_working_dir_inside_project(self, tmp_path):
        (tmp_path / "sub").mkdir()
        assert validate_working_dir("sub", tmp_path) == (tmp_path / "sub").resolve()
        assert validate_working_dir("", tmp_path) == tmp_path.resolve()

    def test_working_dir_escape(self, tmp_path):
        with pytest.raises(HookError, match="outside project"):
            validate_working_dir("../elsewhere", tmp_path)


class TestLoading:
    def test_missing_file_means_no_hooks(self, tmp_path):
        assert load_hooks_config(tmp_path).pre_upload_hooks == []
        assert execute_pre_upload_hooks(tmp_path) == 0

    def test_invalid_json(self, tmp_path):
        (tmp_path / HOOKS_FILE_NAME).write_text("{not json")
        with pytest.raises(HookError, match="failed to parse"):
            load_hooks_config(tmp_path)

    def test_hook_errors_carry_the_hook_name(self, tmp_path):
        _write_hooks(tmp_path, [{"name": "lint", "command": ["echo", "a;b"]}])
        with pytest.raises(HookError) as excinfo:
            load_hooks_config(tmp_path)
        assert excinfo.value.hook == "lint"
        assert "invalid command" in str(excinfo.value)

    def test_timeout_above_maximum(self, tmp_path):
        _write_hooks(tmp_path, [{"name": "slow", "command": ["true"], "timeout": 601}])
        with pytest.raises(HookError, match="exceeds maximum"):
            load_hooks_config(tmp_path)

    def test_unnamed_hook(self, tmp_path):
        _write_hooks(tmp_path, [{"command": ["true"]}])
        with pytest.raises(HookError, match="name cannot be empty"):
            load_hooks_config(tmp_path)


class TestExecution:
    def test_failure_is_fatal_only_with_fail_on_error(self, tmp_path):
        failing = [sys.executable, "-c", "raise SystemExit(3)"]
        _write_hooks(tmp_path, [{"name": "soft", "command": failing}])
        assert execute_pre_upload_hooks(tmp_path) == 1

        _write_hooks(tmp_path, [{"name": "hard", "command": failing, "fail_on_error": True}])
        with pytest.raises(HookError, match="exit code 3"):
            execute_pre_upload_hooks(tmp_path)

    def test_runs_in_working_dir(self, tmp_path):
        (tmp_path / "build").mkdir()
        _write_hooks(
            tmp_path,
            [{"name": "touch", "command": [sys.executable, "-c", "open('out.txt','w').close()"],
              "working_dir": "build", "fail_on_error": True}],
        )
        execute_pre_upload_hooks(tmp_path)
        assert (tmp_path / "build" / "out.txt").exists()

    def test_missing_executable(self, tmp_path):
        _write_hooks(tmp_path, [{"name": "ghost", "command": ["no-such-binary-xyz"], "fail_on_error": True}])
        with pytest.raises(HookError, match="failed to start"):
            execute_pre_upload_hooks(tmp_path)

    def test_timeout(self, tmp_path):
        _write_hooks(
            tmp_path,
            [{"name": "sleepy", "command": [sys.executable, "-c", "__import__('time').sleep(5)"],
              "timeout": 1, "fail_on_error": True}],
        )
        with pytest.raises(HookError, match="timed out"):
            execute_pre_upload_hooks(tmp_path)
