"""Request keys and the identity strings that join them to cquery output."""
from __future__ import annotations

from dataclasses import dataclass

from .request_types import RequestType


@dataclass(frozen=True, slots=True)
class CqueryKey:
    """A single question: what does ``label`` produce for ``arch``?

    An empty ``arch`` selects the default architecture.
    """

    label: str
    request_type: RequestType
    arch: str = ""


def canonicalize_label(label: str, repository: str = "sourceroot") -> str:
    """Qualify a source tree label with the external repository alias.

    ``//foo/bar:baz`` and ``baz`` become ``@<repository>//foo/bar:baz`` and
    ``@<repository>//baz``. Labels that already name a repository are kept.
    """

    if label.startswith("@"):
        return label
    if label.startswith("//"):
        return f"@{repository}{label}"
    return f"@{repository}//{label}"


def arch_string(key: CqueryKey, default_arch: str = "x86_64") -> str:
    return key.arch or default_arch


def cquery_id(key: CqueryKey, *, repository: str = "sourceroot", default_arch: str = "x86_64") -> str:
    """Identity printed by ``format(target)`` for a configured target matching ``key``."""

    return f"{canonicalize_label(key.label, repository)}|{arch_string(key, default_arch)}"
