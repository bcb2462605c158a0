from __future__ import annotations

from contextlib import redirect_stdout
from pathlib import Path
import io
import tempfile
import unittest

from core.command_runner import CommandResult, RecordingCommandRunner, format_environment
from core.console import Console
from mixbuild.errors import BazelCommandError
from mixbuild.invocation import (
    BazelInvoker,
    RunName,
    flush_runs,
    metrics_filename,
    package_path,
    pwd_prefix,
    render_generated_files,
    write_generated_files,
)
from mixbuild.labels import CqueryKey
from mixbuild.request_types import RequestType
from mixbuild.settings import BridgeSettings, EnvironmentSettings


def make_environment() -> EnvironmentSettings:
    return EnvironmentSettings(
        home_dir="/home/builder",
        bazel_path="/opt/bazel",
        output_base="/ob",
        workspace_dir="/ws",
        metrics_dir="/metrics",
    )


class InvocationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = RecordingCommandRunner()
        self.invoker = BazelInvoker(
            environment=make_environment(),
            settings=BridgeSettings(),
            intermediates_dir="out/bazel",
            runner=self.runner,
            console=Console("none"),
        )

    def test_cquery_command_line(self) -> None:
        run = flush_runs("out/bazel")[RunName.CQUERY_BUILDROOT]
        self.assertEqual(
            self.invoker.run_command_line(run),
            [
                "/opt/bazel",
                "--output_base=/ob",
                "cquery",
                "kind(rule, deps(//:buildroot))",
                "--package_path=%workspace%/out/bazel",
                "--profile=/metrics/cquery-buildroot_bazel_profile.gz",
                "--platforms=@sourceroot//build/bazel/platforms:android_x86_64",
                "--extra_toolchains=@sourceroot//prebuilts/clang/host/linux-x86:all",
                "--host_platform=@sourceroot//build/bazel/platforms:linux_x86_64",
                "--experimental_repository_disable_download",
                "--output=starlark",
                "--starlark:file=out/bazel/buildroot.cquery",
            ],
        )

    def test_runs_in_flush_order(self) -> None:
        runs = flush_runs("out/bazel")
        self.assertEqual(
            list(runs),
            [RunName.CQUERY_BUILDROOT, RunName.AQUERY_BUILDROOT, RunName.BUILD_PHONYROOT],
        )
        self.assertEqual(runs[RunName.AQUERY_BUILDROOT].extra_flags, ("--output=jsonproto",))
        self.assertEqual(runs[RunName.BUILD_PHONYROOT].labels, ("//:phonyroot",))

    def test_issue_runs_in_workspace_with_environment(self) -> None:
        self.invoker.issue_run(flush_runs("out/bazel")[RunName.BUILD_PHONYROOT])
        record = self.runner.commands[0]
        self.assertEqual(record.cwd, "/ws")
        self.assertEqual(record.note, "bazel-build-phonyroot")
        self.assertEqual(record.env["HOME"], "/home/builder")
        self.assertEqual(record.env["BAZEL_DO_NOT_DETECT_CPP_TOOLCHAIN"], "1")

    def test_failed_run_raises_with_full_context(self) -> None:
        runner = RecordingCommandRunner(
            lambda record: CommandResult(record.command, 1, "partial", "boom", cwd=record.cwd, env=record.env)
        )
        invoker = BazelInvoker(
            environment=make_environment(),
            settings=BridgeSettings(),
            intermediates_dir="out/bazel",
            runner=runner,
            console=Console("none"),
        )
        with self.assertRaises(BazelCommandError) as ctx:
            invoker.issue_run(flush_runs("out/bazel")[RunName.AQUERY_BUILDROOT])
        message = str(ctx.exception)
        self.assertTrue(message.startswith("bazel aquery-buildroot failed."))
        self.assertIn("/opt/bazel --output_base=/ob aquery", message)
        self.assertIn("HOME=/home/builder", message)
        self.assertIn("stdout: partial", message)
        self.assertIn("stderr: boom", message)

    def test_unchecked_run_returns_failure(self) -> None:
        runner = RecordingCommandRunner(lambda record: CommandResult(record.command, 3, "", "bad"))
        invoker = BazelInvoker(
            environment=make_environment(),
            settings=BridgeSettings(),
            intermediates_dir="out/bazel",
            runner=runner,
            console=Console("none"),
        )
        result = invoker.issue_run(flush_runs("out/bazel")[RunName.CQUERY_BUILDROOT], check=False)
        self.assertEqual(result.returncode, 3)

    def test_pwd_prefix_per_platform(self) -> None:
        self.assertEqual(pwd_prefix("darwin"), {})
        self.assertEqual(pwd_prefix("linux"), {"PWD": "/proc/self/cwd"})

    def test_package_path_keeps_absolute_directories(self) -> None:
        self.assertEqual(package_path("out/bazel"), "%workspace%/out/bazel")
        self.assertEqual(package_path("/abs/out/bazel"), "/abs/out/bazel")

    def test_debug_line_renders_environment_like_command_errors(self) -> None:
        stdout = io.StringIO()
        invoker = BazelInvoker(
            environment=make_environment(),
            settings=BridgeSettings(),
            intermediates_dir="out/bazel",
            runner=self.runner,
            console=Console("debug"),
        )
        with redirect_stdout(stdout):
            invoker.issue_run(flush_runs("out/bazel")[RunName.BUILD_PHONYROOT])
        expected = format_environment(invoker.process_environment())
        self.assertIn(f"(env: [{expected}])", stdout.getvalue())

    def test_metrics_filename(self) -> None:
        self.assertEqual(
            metrics_filename("/m", RunName.AQUERY_BUILDROOT),
            "/m/aquery-buildroot_bazel_profile.gz",
        )


class GeneratedFilesTests(unittest.TestCase):
    def test_write_creates_directory_and_all_files(self) -> None:
        keys = [CqueryKey("//pkg:lib", RequestType.GET_OUTPUT_FILES, "")]
        files = render_generated_files(keys, workspace_dir="/ws", settings=BridgeSettings())
        with tempfile.TemporaryDirectory() as temp:
            target = Path(temp) / "out" / "bazel"
            written = write_generated_files(target, files)
            self.assertEqual(
                sorted(path.name for path in written),
                ["BUILD.bazel", "WORKSPACE.bazel", "buildroot.cquery", "main.bzl"],
            )
            self.assertIn('"@sourceroot//pkg:lib"', (target / "BUILD.bazel").read_text())
            self.assertIn('"@sourceroot//pkg:lib|x86_64" : True', (target / "buildroot.cquery").read_text())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
