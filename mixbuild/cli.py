"""Command line interface for the mixbuild bridge."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping
import json
import os
import sys

from core.command_runner import format_command
from core.config_loader import load_document
from core.console import Console

from .context import BazelContext, new_bazel_context
from .errors import BridgeError
from .invocation import render_generated_files, write_generated_files
from .labels import CqueryKey
from .registration import render_ninja, rules_for_build_statements
from .request_types import REQUEST_TYPES, OutputFilesAndCcObjectFiles, RequestType
from .settings import BridgeSettings


def parse_request_type(text: str) -> RequestType:
    """Accept ``GetOutputFiles``, ``getOutputFiles`` or ``get_output_files``."""

    normalized = text.strip().lower()
    for request_type in REQUEST_TYPES:
        if normalized in {request_type.name.lower(), request_type.starlark_name.lower()}:
            return request_type
    choices = ", ".join(request_type.starlark_name for request_type in REQUEST_TYPES)
    raise ValueError(f"Unknown request kind '{text}'. Expected one of: {choices}")


def _question_from_mapping(entry: Any, index: int) -> CqueryKey:
    if not isinstance(entry, Mapping):
        raise TypeError(f"questions[{index}] must be a table with 'label' and 'kind'")
    label = entry.get("label")
    if not label or not str(label).strip():
        raise ValueError(f"questions[{index}].label is required")
    kind = entry.get("kind", RequestType.GET_OUTPUT_FILES.starlark_name)
    arch = entry.get("arch") or ""
    return CqueryKey(str(label).strip(), parse_request_type(str(kind)), str(arch).strip())


def load_questions(path: Path) -> List[CqueryKey]:
    """Read ``[[questions]]`` entries (or a bare list in JSON/YAML) from ``path``."""

    data = load_document(path)
    if isinstance(data, Mapping):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise TypeError(f"'{path}' must contain a list of questions")
    return [_question_from_mapping(entry, index) for index, entry in enumerate(data)]


def _answer_record(context: BazelContext, key: CqueryKey) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "label": key.label,
        "kind": key.request_type.starlark_name,
        "arch": key.arch or context.settings.default_arch,
    }
    raw, found = context.cquery(key.label, key.request_type, key.arch)
    record["found"] = found
    if not found:
        return record
    parsed = key.request_type.parse_result(raw)
    if isinstance(parsed, OutputFilesAndCcObjectFiles):
        record["output_files"] = parsed.output_files
        record["cc_object_files"] = parsed.cc_object_files
    else:
        record["output_files"] = parsed
    return record


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="mixbuild", description="Batch cquery requests against Bazel")
    parser.add_argument("-c", "--config", type=Path, help="Settings file (TOML, JSON or YAML) with a [bazel] table")
    parser.add_argument(
        "-v",
        "--log-level",
        default="error",
        choices=sorted(Console.LEVELS, key=Console.LEVELS.__getitem__),
        help="Console verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser("generate", help="Write the generated Bazel files without running Bazel")
    generate_parser.add_argument("questions", type=Path, help="File listing the questions to ask")
    generate_parser.add_argument("--workspace", type=Path, required=True, help="Source tree exposed as @sourceroot")
    generate_parser.add_argument("--out", type=Path, required=True, help="Directory receiving the generated files")

    query_parser = subparsers.add_parser("query", help="Ask Bazel every question in a single flush")
    query_parser.add_argument("questions", type=Path, help="File listing the questions to ask")
    query_parser.add_argument("--build-dir", default="out", help="Host build output directory, relative to BAZEL_WORKSPACE")
    query_parser.add_argument("--ninja", type=Path, help="Write the translated actions as a Ninja fragment")
    query_parser.add_argument("-n", "--dry-run", action="store_true", help="Write generated files and print commands only")

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console(args.log_level, dry_run=getattr(args, "dry_run", False))
    try:
        settings = BridgeSettings.from_file(args.config)
    except (OSError, TypeError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    if args.command == "generate":
        return _handle_generate(args, settings, console)
    if args.command == "query":
        return _handle_query(args, settings, console, os.environ)
    raise ValueError(f"Unknown command: {args.command}")


def _handle_generate(args: Namespace, settings: BridgeSettings, console: Console) -> int:
    try:
        questions = load_questions(args.questions)
    except (OSError, TypeError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    files = render_generated_files(questions, workspace_dir=str(args.workspace), settings=settings)
    try:
        written = write_generated_files(args.out, files)
    except OSError as exc:
        print(f"Error: {exc}")
        return 1
    for path in written:
        console.info(f"Wrote {path}")
    return 0


def _handle_query(
    args: Namespace,
    settings: BridgeSettings,
    console: Console,
    environ: Mapping[str, str],
) -> int:
    try:
        questions = load_questions(args.questions)
    except (OSError, TypeError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    context = new_bazel_context(environ, args.build_dir, settings=settings, console=console)
    if not isinstance(context, BazelContext):
        print("Error: bazel analysis is disabled; set USE_BAZEL_ANALYSIS=1 and the BAZEL_* variables")
        return 2

    for key in questions:
        context.cquery(key.label, key.request_type, key.arch)

    if args.dry_run:
        try:
            written = context.materialize()
        except (BridgeError, OSError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        for path in written:
            console.dry(f"Wrote {path}")
        for command in context.planned_commands():
            console.dry(format_command(command))
        return 0

    try:
        context.invoke_bazel()
    except (BridgeError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps([_answer_record(context, key) for key in questions], indent=2))

    if args.ninja:
        try:
            rules = rules_for_build_statements(context.build_statements_to_register(), context.output_base)
            args.ninja.parent.mkdir(parents=True, exist_ok=True)
            args.ninja.write_text(render_ninja(rules), encoding="utf-8")
        except (BridgeError, OSError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        console.info(f"Wrote {len(rules)} rule(s) to {args.ninja}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
