"""Bazel command lines, process environment and generated file output."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Sequence
import sys

from core.command_runner import CommandResult, CommandRunner, format_command, format_environment
from core.console import Console

from .errors import BazelCommandError
from .labels import CqueryKey, canonicalize_label
from .materializer import (
    BUILDROOT_LABEL,
    PHONYROOT_LABEL,
    main_build_file_contents,
    main_bzl_file_contents,
    workspace_file_contents,
)
from .query_compiler import cquery_starlark_file_contents
from .settings import BridgeSettings, EnvironmentSettings

MAIN_BZL_FILE = "main.bzl"
BUILD_FILE = "BUILD.bazel"
CQUERY_FILE = "buildroot.cquery"
WORKSPACE_FILE = "WORKSPACE.bazel"
CQUERY_OUTPUT_FILE = "cquery.out"


class RunName(str, Enum):
    CQUERY_BUILDROOT = "cquery-buildroot"
    AQUERY_BUILDROOT = "aquery-buildroot"
    BUILD_PHONYROOT = "bazel-build-phonyroot"


@dataclass(frozen=True, slots=True)
class GeneratedFiles:
    workspace: str
    main_bzl: str
    build_file: str
    cquery: str

    def as_mapping(self) -> Dict[str, str]:
        return {
            MAIN_BZL_FILE: self.main_bzl,
            BUILD_FILE: self.build_file,
            CQUERY_FILE: self.cquery,
            WORKSPACE_FILE: self.workspace,
        }


def render_generated_files(
    keys: Iterable[CqueryKey],
    *,
    workspace_dir: str,
    settings: BridgeSettings,
) -> GeneratedFiles:
    key_list = list(keys)
    return GeneratedFiles(
        workspace=workspace_file_contents(workspace_dir, settings),
        main_bzl=main_bzl_file_contents(settings),
        build_file=main_build_file_contents(key_list, settings),
        cquery=cquery_starlark_file_contents(key_list, settings),
    )


def write_generated_files(directory: Path, files: GeneratedFiles) -> List[Path]:
    """Create ``directory`` if needed and overwrite each generated file in it."""

    directory.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, contents in files.as_mapping().items():
        path = directory / name
        path.write_text(contents, encoding="utf-8")
        written.append(path)
    return written


@dataclass(frozen=True, slots=True)
class BazelRun:
    run_name: RunName
    command: str
    labels: tuple[str, ...]
    extra_flags: tuple[str, ...] = ()


def flush_runs(intermediates_dir: str) -> Dict[RunName, BazelRun]:
    """The three invocations of a flush, in execution order."""

    # TODO: pass labels through --target_pattern_file once the root depends on
    # enough targets to hit command line length limits.
    return {
        RunName.CQUERY_BUILDROOT: BazelRun(
            RunName.CQUERY_BUILDROOT,
            "cquery",
            (f"kind(rule, deps({BUILDROOT_LABEL}))",),
            ("--output=starlark", f"--starlark:file={intermediates_dir}/{CQUERY_FILE}"),
        ),
        # jsonproto needs no dependency on Bazel's proto definitions.
        RunName.AQUERY_BUILDROOT: BazelRun(
            RunName.AQUERY_BUILDROOT,
            "aquery",
            (f"deps({BUILDROOT_LABEL})",),
            ("--output=jsonproto",),
        ),
        RunName.BUILD_PHONYROOT: BazelRun(RunName.BUILD_PHONYROOT, "build", (PHONYROOT_LABEL,)),
    }


def pwd_prefix(platform: str | None = None) -> Dict[str, str]:
    # macOS has no /proc.
    if (platform or sys.platform) == "darwin":
        return {}
    return {"PWD": "/proc/self/cwd"}


def package_path(intermediates_dir: str) -> str:
    """Package path for the generated files; relative directories resolve against the workspace."""

    if PurePosixPath(intermediates_dir).is_absolute():
        return intermediates_dir
    return f"%workspace%/{intermediates_dir}"


def metrics_filename(metrics_dir: str, run_name: RunName) -> str:
    return str(PurePosixPath(metrics_dir) / f"{run_name.value}_bazel_profile.gz")


class BazelInvoker:
    """Issues Bazel commands against one output base, one at a time."""

    def __init__(
        self,
        *,
        environment: EnvironmentSettings,
        settings: BridgeSettings,
        intermediates_dir: str,
        runner: CommandRunner,
        console: Console,
    ) -> None:
        self._environment = environment
        self._settings = settings
        self._intermediates_dir = intermediates_dir
        self._runner = runner
        self._console = console

    def process_environment(self) -> Dict[str, str]:
        env = {"HOME": self._environment.home_dir}
        env.update(pwd_prefix())
        # Toolchains are declared explicitly in BUILD files.
        env["BAZEL_DO_NOT_DETECT_CPP_TOOLCHAIN"] = "1"
        return env

    def command_line(
        self,
        run_name: RunName,
        command: str,
        labels: Sequence[str],
        extra_flags: Sequence[str] = (),
    ) -> List[str]:
        repository = self._settings.repository
        args = [
            self._environment.bazel_path,
            f"--output_base={self._environment.output_base}",
            command,
            *labels,
            f"--package_path={package_path(self._intermediates_dir)}",
            f"--profile={metrics_filename(self._environment.metrics_dir, run_name)}",
            # Labels from a bazelrc would resolve against the source root rather
            # than the generated workspace, so platforms are always canonical here.
            f"--platforms={canonicalize_label(self._settings.target_platform, repository)}",
        ]
        for toolchain in self._settings.extra_toolchains:
            args.append(f"--extra_toolchains={canonicalize_label(toolchain, repository)}")
        args.append(f"--host_platform={canonicalize_label(self._settings.host_platform, repository)}")
        args.append("--experimental_repository_disable_download")
        args.extend(extra_flags)
        return args

    def issue(
        self,
        run_name: RunName,
        command: str,
        labels: Sequence[str],
        extra_flags: Sequence[str] = (),
        *,
        check: bool = True,
    ) -> CommandResult:
        args = self.command_line(run_name, command, labels, extra_flags)
        env = self.process_environment()
        self._console.info(f"Running bazel {run_name.value}")
        self._console.debug(f"{format_command(args)} (env: [{format_environment(env)}])")
        result = self._runner.run(
            args,
            cwd=Path(self._environment.workspace_dir),
            env=env,
            check=False,
            note=run_name.value,
        )
        if check:
            ensure_success(run_name, result)
        return result

    def run_command_line(self, run: BazelRun) -> List[str]:
        return self.command_line(run.run_name, run.command, run.labels, run.extra_flags)

    def issue_run(self, run: BazelRun, *, check: bool = True) -> CommandResult:
        return self.issue(run.run_name, run.command, run.labels, run.extra_flags, check=check)


def ensure_success(run_name: RunName, result: CommandResult) -> CommandResult:
    if result.returncode != 0:
        raise BazelCommandError(run_name.value, result)
    return result
