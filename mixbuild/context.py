"""Per-build bridge object that batches cquery requests and flushes them to Bazel."""
from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Dict, List, Mapping
import os

from core.command_runner import CommandRunner, SubprocessCommandRunner
from core.console import Console

from .aquery import BuildStatement, aquery_build_statements
from .demux import collect_results, ensure_unambiguous
from .invocation import (
    CQUERY_OUTPUT_FILE,
    BazelInvoker,
    RunName,
    ensure_success,
    flush_runs,
    render_generated_files,
    write_generated_files,
)
from .labels import CqueryKey
from .registry import RequestRegistry
from .request_types import OutputFilesAndCcObjectFiles, RequestType
from .settings import BridgeSettings, EnvironmentSettings, analysis_requested


class BazelContextBase:
    """Interface the host build uses to talk to Bazel.

    The ``get_*`` methods queue a request and return ``found=False`` until a
    flush (:meth:`invoke_bazel`) has answered it.
    """

    bazel_enabled: bool = False

    def get_output_files(self, label: str, arch: str = "") -> tuple[List[str], bool]:
        raise NotImplementedError

    def get_output_files_and_cc_object_files(self, label: str, arch: str = "") -> tuple[List[str], List[str], bool]:
        raise NotImplementedError

    def invoke_bazel(self) -> None:
        raise NotImplementedError

    def build_statements_to_register(self) -> List[BuildStatement]:
        raise NotImplementedError

    @property
    def output_base(self) -> str:
        raise NotImplementedError


class DisabledBazelContext(BazelContextBase):
    """Context used when Bazel is not configured; nothing is ever answered."""

    bazel_enabled = False

    def get_output_files(self, label: str, arch: str = "") -> tuple[List[str], bool]:
        return [], False

    def get_output_files_and_cc_object_files(self, label: str, arch: str = "") -> tuple[List[str], List[str], bool]:
        return [], [], False

    def invoke_bazel(self) -> None:
        return None

    def build_statements_to_register(self) -> List[BuildStatement]:
        return []

    @property
    def output_base(self) -> str:
        return ""


class MockBazelContext(BazelContextBase):
    """Context for host build tests: answers from a fixed label to files mapping."""

    bazel_enabled = True

    def __init__(self, all_files: Mapping[str, List[str]] | None = None, output_base: str = "outputbase") -> None:
        self.all_files: Dict[str, List[str]] = dict(all_files or {})
        self._output_base = output_base

    def get_output_files(self, label: str, arch: str = "") -> tuple[List[str], bool]:
        if label in self.all_files:
            return list(self.all_files[label]), True
        return [], False

    def get_output_files_and_cc_object_files(self, label: str, arch: str = "") -> tuple[List[str], List[str], bool]:
        if label in self.all_files:
            files = list(self.all_files[label])
            return files, list(files), True
        return [], [], False

    def invoke_bazel(self) -> None:
        raise NotImplementedError("MockBazelContext cannot invoke bazel")

    def build_statements_to_register(self) -> List[BuildStatement]:
        return []

    @property
    def output_base(self) -> str:
        return self._output_base


class BazelContext(BazelContextBase):
    """Tracks queued requests and their answers for one build invocation."""

    bazel_enabled = True

    def __init__(
        self,
        *,
        environment: EnvironmentSettings,
        build_dir: str | Path,
        settings: BridgeSettings | None = None,
        runner: CommandRunner | None = None,
        console: Console | None = None,
    ) -> None:
        self._environment = environment
        self._settings = settings or BridgeSettings()
        self._console = console or Console()
        self._registry = RequestRegistry()
        self._build_statements: List[BuildStatement] = []
        self._intermediates_dir, self._intermediates_path = self._resolve_intermediates(Path(build_dir))
        self._invoker = BazelInvoker(
            environment=environment,
            settings=self._settings,
            intermediates_dir=self._intermediates_dir,
            runner=runner or SubprocessCommandRunner(),
            console=self._console,
        )

    def _resolve_intermediates(self, build_dir: Path) -> tuple[str, Path]:
        workspace = Path(self._environment.workspace_dir)
        subdir = self._settings.intermediates_subdir
        if not build_dir.is_absolute():
            relative = PurePosixPath(build_dir.as_posix()) / subdir
            return str(relative), workspace / relative
        absolute = build_dir / subdir
        try:
            return absolute.relative_to(workspace).as_posix(), absolute
        except ValueError:
            return absolute.as_posix(), absolute

    @property
    def settings(self) -> BridgeSettings:
        return self._settings

    @property
    def registry(self) -> RequestRegistry:
        return self._registry

    @property
    def output_base(self) -> str:
        return self._environment.output_base

    @property
    def metrics_dir(self) -> str:
        return self._environment.metrics_dir

    @property
    def intermediates_dir(self) -> str:
        """Workspace-relative (when possible) directory holding generated files."""

        return self._intermediates_dir

    @property
    def intermediates_path(self) -> Path:
        return self._intermediates_path

    def cquery(self, label: str, request_type: RequestType, arch: str = "") -> tuple[str, bool]:
        return self._registry.request(CqueryKey(label, request_type, arch))

    def get_output_files(self, label: str, arch: str = "") -> tuple[List[str], bool]:
        raw, found = self.cquery(label, RequestType.GET_OUTPUT_FILES, arch)
        if not found:
            return [], False
        return RequestType.GET_OUTPUT_FILES.parse_result(raw), True

    def get_output_files_and_cc_object_files(self, label: str, arch: str = "") -> tuple[List[str], List[str], bool]:
        request_type = RequestType.GET_OUTPUT_FILES_AND_CC_OBJECT_FILES
        raw, found = self.cquery(label, request_type, arch)
        if not found:
            return [], [], False
        result: OutputFilesAndCcObjectFiles = request_type.parse_result(raw)
        return result.output_files, result.cc_object_files, True

    def _materialize(self, keys: List[CqueryKey]) -> List[Path]:
        ensure_unambiguous(keys, self._settings)
        files = render_generated_files(
            keys,
            workspace_dir=self._environment.workspace_dir,
            settings=self._settings,
        )
        written = write_generated_files(self._intermediates_path, files)
        self._console.info(f"Wrote bazel workspace for {len(keys)} request(s) to {self._intermediates_path}")
        return written

    def materialize(self) -> List[Path]:
        """Write the generated files for the pending requests without running Bazel."""

        return self._materialize(self._registry.pending_keys())

    def invoke_bazel(self) -> None:
        """Answer every queued request, or raise and leave the queue untouched."""

        # Statements never outlive the flush that produced them.
        self._build_statements = []
        keys = self._registry.pending_keys()
        if not keys:
            self._console.info("No pending bazel requests; skipping bazel invocation")
            return

        self._materialize(keys)

        runs = flush_runs(self._intermediates_dir)
        cquery = self._invoker.issue_run(runs[RunName.CQUERY_BUILDROOT], check=False)
        (self._intermediates_path / CQUERY_OUTPUT_FILE).write_text(cquery.stdout, encoding="utf-8")
        ensure_success(RunName.CQUERY_BUILDROOT, cquery)
        results = collect_results(keys, cquery.stdout, self._settings, stderr=cquery.stderr)

        aquery = self._invoker.issue_run(runs[RunName.AQUERY_BUILDROOT])
        build_statements = aquery_build_statements(aquery.stdout)

        # aquery does not create the symlink forest, but source inputs of the
        # registered actions may only be reachable through it.
        self._invoker.issue_run(runs[RunName.BUILD_PHONYROOT])

        self._registry.publish(results)
        self._build_statements = build_statements
        self._console.info(
            f"Answered {len(results)} bazel request(s); {len(build_statements)} build statement(s) to register"
        )

    def build_statements_to_register(self) -> List[BuildStatement]:
        return list(self._build_statements)

    def planned_commands(self) -> List[List[str]]:
        """Command lines a flush issues, in order."""

        return [self._invoker.run_command_line(run) for run in flush_runs(self._intermediates_dir).values()]


def new_bazel_context(
    env: Mapping[str, str] | None,
    build_dir: str | Path,
    *,
    settings: BridgeSettings | None = None,
    runner: CommandRunner | None = None,
    console: Console | None = None,
) -> BazelContextBase:
    """Build the context for this invocation from the process environment.

    Without ``USE_BAZEL_ANALYSIS=1`` or with any required variable missing the
    bridge is disabled; the latter is reported once on ``console``.
    """

    environ = dict(os.environ) if env is None else dict(env)
    console = console or Console()
    if not analysis_requested(environ):
        return DisabledBazelContext()
    missing = EnvironmentSettings.missing_variables(environ)
    if missing:
        console.error(f"missing required env vars to use bazel: {', '.join(missing)}; bazel analysis is disabled")
        return DisabledBazelContext()
    return BazelContext(
        environment=EnvironmentSettings.from_environment(environ),
        build_dir=build_dir,
        settings=settings,
        runner=runner,
        console=console,
    )
