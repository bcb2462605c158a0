"""Turn translated build statements into host build rules."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .aquery import BuildStatement
from .errors import ActionGraphError


@dataclass(frozen=True, slots=True)
class RegisteredRule:
    name: str
    description: str
    command: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    depfile: str | None = None
    # Some Bazel builtins carry far-future timestamps; restat keeps Ninja from
    # rebuilding (and warning about) their dependents on every run.
    restat: bool = True


def execution_root(output_base: str) -> str:
    return f"{output_base.rstrip('/')}/execroot/__main__"


def path_for_bazel_out(output_base: str, path: str) -> str:
    return f"{execution_root(output_base)}/{path}"


def rules_for_build_statements(statements: Sequence[BuildStatement], output_base: str) -> List[RegisteredRule]:
    rules: List[RegisteredRule] = []
    root = execution_root(output_base)
    for index, statement in enumerate(statements):
        if not statement.command:
            raise ActionGraphError(f"unhandled build statement: {statement}")
        rules.append(
            RegisteredRule(
                name=f"bazel {index}",
                description=statement.mnemonic,
                command=f"cd {root} && {statement.command}",
                inputs=tuple(path_for_bazel_out(output_base, path) for path in statement.input_paths),
                outputs=tuple(path_for_bazel_out(output_base, path) for path in statement.output_paths),
                depfile=path_for_bazel_out(output_base, statement.depfile) if statement.depfile else None,
            )
        )
    return rules


def _escape_path(path: str) -> str:
    return path.replace("$", "$$").replace(" ", "$ ").replace(":", "$:")


def _escape_value(value: str) -> str:
    # Ninja has no escape for a newline; "$" before one continues the line.
    if "\n" in value:
        raise ActionGraphError(f"multi-line values are not supported in ninja rules: {value!r}")
    return value.replace("$", "$$")


def _rule_id(rule: RegisteredRule) -> str:
    return rule.name.replace(" ", "_")


def render_ninja(rules: Iterable[RegisteredRule]) -> str:
    """Render ``rules`` as a Ninja fragment, one rule and build edge per action."""

    lines: List[str] = ["# This file is generated by mixbuild. Do not edit.", ""]
    for rule in rules:
        if not rule.outputs:
            raise ActionGraphError(f"{rule.name} ({rule.description}) declares no outputs")
        rule_id = _rule_id(rule)
        lines.append(f"rule {rule_id}")
        lines.append(f"  command = {_escape_value(rule.command)}")
        if rule.description:
            lines.append(f"  description = {_escape_value(rule.description)}")
        if rule.depfile:
            lines.append(f"  depfile = {_escape_path(rule.depfile)}")
            lines.append("  deps = gcc")
        if rule.restat:
            lines.append("  restat = 1")
        outputs = " ".join(_escape_path(path) for path in rule.outputs)
        edge = f"build {outputs}: {rule_id}"
        if rule.inputs:
            edge += " | " + " ".join(_escape_path(path) for path in rule.inputs)
        lines.append(edge)
        lines.append("")
    return "\n".join(lines)
