"""Translate ``aquery --output=jsonproto`` action graphs into build statements."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence
import json
import posixpath
import shlex

from .errors import ActionGraphError

DEPFILE_EXTENSION = ".d"


@dataclass(frozen=True, slots=True)
class BuildStatement:
    """One Bazel action, ready to be registered as a host build rule."""

    command: str
    mnemonic: str
    input_paths: tuple[str, ...]
    output_paths: tuple[str, ...]
    depfile: str | None = None


def _entries(container: Mapping[str, Any], field_name: str) -> List[Mapping[str, Any]]:
    value = container.get(field_name, [])
    if not isinstance(value, list):
        raise ActionGraphError(f"'{field_name}' must be a list")
    return value


class _ActionGraph:
    """Indexes of one action graph container, keyed by their numeric ids."""

    def __init__(self, container: Mapping[str, Any]) -> None:
        self._path_fragments: Dict[int, Mapping[str, Any]] = {
            fragment["id"]: fragment for fragment in _entries(container, "pathFragments")
        }
        self._artifact_paths: Dict[int, str] = {}
        for artifact in _entries(container, "artifacts"):
            self._artifact_paths[artifact["id"]] = self._expand_path_fragment(artifact["pathFragmentId"])
        self._depsets: Dict[int, Mapping[str, Any]] = {
            depset["id"]: depset for depset in _entries(container, "depSetOfFiles")
        }
        self.actions = _entries(container, "actions")

    def _expand_path_fragment(self, fragment_id: int) -> str:
        labels: List[str] = []
        current: int | None = fragment_id
        visited: set[int] = set()
        while current:
            if current in visited:
                raise ActionGraphError(f"cycle in path fragments at id {current}")
            visited.add(current)
            fragment = self._path_fragments.get(current)
            if fragment is None:
                raise ActionGraphError(f"undefined path fragment id {current}")
            labels.append(fragment["label"])
            current = fragment.get("parentId")
        if not labels:
            raise ActionGraphError(f"undefined path fragment id {fragment_id}")
        return posixpath.join(*reversed(labels))

    def artifact_path(self, artifact_id: int) -> str:
        path = self._artifact_paths.get(artifact_id)
        if path is None:
            raise ActionGraphError(f"undefined artifact id {artifact_id}")
        return path

    def depset_artifact_paths(self, depset_id: int) -> List[str]:
        paths: List[str] = []
        pending = [depset_id]
        visited: set[int] = set()
        while pending:
            current = pending.pop(0)
            if current in visited:
                continue
            visited.add(current)
            depset = self._depsets.get(current)
            if depset is None:
                raise ActionGraphError(f"undefined input depsetId {current}")
            for artifact_id in depset.get("directArtifactIds", []):
                paths.append(self.artifact_path(artifact_id))
            pending.extend(depset.get("transitiveDepSetIds", []))
        return paths


def _shell_command(arguments: Sequence[str]) -> str:
    return " ".join(shlex.quote(argument) for argument in arguments)


def _build_statement(graph: _ActionGraph, action: Mapping[str, Any]) -> BuildStatement:
    mnemonic = str(action.get("mnemonic", ""))
    arguments = action.get("arguments", [])
    if not arguments:
        raise ActionGraphError(f"action '{mnemonic}' has an empty command line")

    output_paths: List[str] = []
    depfile: str | None = None
    for output_id in action.get("outputIds", []):
        try:
            output_path = graph.artifact_path(output_id)
        except ActionGraphError:
            raise ActionGraphError(f"undefined outputId {output_id}") from None
        if posixpath.splitext(output_path)[1] == DEPFILE_EXTENSION:
            if depfile is not None:
                raise ActionGraphError(f"found multiple potential depfiles {depfile!r}, {output_path!r}")
            depfile = output_path
        else:
            output_paths.append(output_path)

    input_paths: List[str] = []
    seen_inputs: set[str] = set()
    for depset_id in action.get("inputDepSetIds", []):
        for path in graph.depset_artifact_paths(depset_id):
            if path not in seen_inputs:
                seen_inputs.add(path)
                input_paths.append(path)

    return BuildStatement(
        command=_shell_command(arguments),
        mnemonic=mnemonic,
        input_paths=tuple(input_paths),
        output_paths=tuple(output_paths),
        depfile=depfile,
    )


def aquery_build_statements(aquery_output: str) -> List[BuildStatement]:
    """Parse the JSON action graph printed by ``aquery --output=jsonproto``."""

    if not aquery_output.strip():
        return []
    try:
        container = json.loads(aquery_output)
    except json.JSONDecodeError as exc:
        raise ActionGraphError(f"aquery output is not valid JSON: {exc}") from exc
    if not isinstance(container, Mapping):
        raise ActionGraphError("aquery output must be a JSON object")
    try:
        graph = _ActionGraph(container)
        return [_build_statement(graph, action) for action in graph.actions]
    except KeyError as exc:
        raise ActionGraphError(f"action graph entry is missing field {exc}") from exc
