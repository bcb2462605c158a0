"""Split cquery output back into per-request raw answers."""
from __future__ import annotations

from typing import Dict, Iterable, List

from .errors import ConflictingRequestError, MissingResultError
from .labels import CqueryKey, cquery_id
from .query_compiler import RESULT_SEPARATOR, UNREQUESTED_RESULT
from .settings import BridgeSettings


def parse_cquery_output(output: str) -> Dict[str, str]:
    """Map each printed identity to its raw answer; lines without ``>>`` are ignored."""

    parsed: Dict[str, str] = {}
    for line in output.splitlines():
        if RESULT_SEPARATOR not in line:
            continue
        identity, _, answer = line.partition(RESULT_SEPARATOR)
        parsed[identity] = answer
    return parsed


def find_conflicting_requests(keys: Iterable[CqueryKey], settings: BridgeSettings) -> List[str]:
    """Identities requested under more than one request type."""

    seen: Dict[str, set] = {}
    for key in keys:
        identity = cquery_id(key, repository=settings.repository, default_arch=settings.default_arch)
        seen.setdefault(identity, set()).add(key.request_type)
    return sorted(identity for identity, kinds in seen.items() if len(kinds) > 1)


def ensure_unambiguous(keys: Iterable[CqueryKey], settings: BridgeSettings) -> None:
    conflicts = find_conflicting_requests(keys, settings)
    if conflicts:
        raise ConflictingRequestError(conflicts)


def collect_results(
    keys: Iterable[CqueryKey],
    output: str,
    settings: BridgeSettings,
    *,
    stderr: str = "",
) -> Dict[CqueryKey, str]:
    """Join every pending key to its line of ``output``.

    Any key without an answer aborts with :class:`MissingResultError`; there is
    no partial result.
    """

    parsed = parse_cquery_output(output)
    results: Dict[CqueryKey, str] = {}
    for key in keys:
        identity = cquery_id(key, repository=settings.repository, default_arch=settings.default_arch)
        answer = parsed.get(identity)
        if answer is None or answer == UNREQUESTED_RESULT:
            raise MissingResultError(identity, output, stderr)
        results[key] = answer
    return results
