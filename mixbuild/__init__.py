"""Batched cquery bridge between a host build graph and Bazel."""

from .aquery import BuildStatement, aquery_build_statements
from .context import (
    BazelContext,
    BazelContextBase,
    DisabledBazelContext,
    MockBazelContext,
    new_bazel_context,
)
from .errors import (
    ActionGraphError,
    BazelCommandError,
    BridgeError,
    ConflictingRequestError,
    MissingResultError,
    ResultParseError,
)
from .labels import CqueryKey, canonicalize_label, cquery_id
from .properties import (
    Label,
    LabelList,
    LabelListAttribute,
    StringListAttribute,
    try_variable_substitution,
    try_variable_substitutions,
    unique_bazel_label_list,
    unique_bazel_labels,
)
from .registration import RegisteredRule, render_ninja, rules_for_build_statements
from .request_types import OutputFilesAndCcObjectFiles, RequestType
from .settings import BridgeSettings, EnvironmentSettings

__all__ = [
    "BuildStatement",
    "aquery_build_statements",
    "BazelContext",
    "BazelContextBase",
    "DisabledBazelContext",
    "MockBazelContext",
    "new_bazel_context",
    "ActionGraphError",
    "BazelCommandError",
    "BridgeError",
    "ConflictingRequestError",
    "MissingResultError",
    "ResultParseError",
    "CqueryKey",
    "canonicalize_label",
    "cquery_id",
    "Label",
    "LabelList",
    "LabelListAttribute",
    "StringListAttribute",
    "try_variable_substitution",
    "try_variable_substitutions",
    "unique_bazel_label_list",
    "unique_bazel_labels",
    "RegisteredRule",
    "render_ninja",
    "rules_for_build_statements",
    "OutputFilesAndCcObjectFiles",
    "RequestType",
    "BridgeSettings",
    "EnvironmentSettings",
]
