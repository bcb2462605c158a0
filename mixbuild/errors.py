"""Exception hierarchy raised by a flush."""
from __future__ import annotations

from typing import Sequence

from core.command_runner import CommandError, CommandResult


class BridgeError(RuntimeError):
    """Base class for every failure that aborts a flush."""


class BazelCommandError(BridgeError):
    """A Bazel invocation exited with a non-zero status."""

    def __init__(self, run_name: str, result: CommandResult):
        super().__init__(f"bazel {run_name} failed.\n{CommandError(result)}")
        self.run_name = run_name
        self.result = result


class MissingResultError(BridgeError):
    """A pending request has no matching line in the cquery output."""

    def __init__(self, cquery_id: str, output: str, stderr: str):
        super().__init__(
            f"missing result for bazel target {cquery_id}. "
            f"query output: [{output}], cquery err: [{stderr}]"
        )
        self.cquery_id = cquery_id


class ConflictingRequestError(BridgeError):
    """The same label and architecture were requested under more than one kind."""

    def __init__(self, cquery_ids: Sequence[str]):
        joined = ", ".join(cquery_ids)
        super().__init__(f"targets requested with more than one request type in a single invocation: {joined}")
        self.cquery_ids = list(cquery_ids)


class ActionGraphError(BridgeError):
    """The aquery action graph is malformed or cannot be translated."""


class ResultParseError(BridgeError):
    """A raw cquery answer does not match the format of its request type."""
