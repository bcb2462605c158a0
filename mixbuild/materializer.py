"""Generated Bazel workspace that forces evaluation of every pending request.

All functions here are pure: they map settings and pending keys to file text.
Writing the text to disk is the job of :mod:`mixbuild.invocation`.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Set
import json

from .labels import CqueryKey, arch_string, canonicalize_label
from .settings import BridgeSettings

GENERATED_HEADER = "# This file is generated by mixbuild. Do not edit."

BUILDROOT_LABEL = "//:buildroot"
PHONYROOT_LABEL = "//:phonyroot"

_WORKSPACE_TEMPLATE = """
{header}
local_repository(
    name = "{repository}",
    path = "{workspace_dir}",
)

local_repository(
    name = "rules_cc",
    path = "{workspace_dir}/{rules_cc_path}",
)
"""

_MAIN_BZL_TEMPLATE = """
#####################################################
{header}
#####################################################

def _config_node_transition_impl(settings, attr):
    return {{
        "//command_line_option:platforms": "{platform_base}:{platform_prefix}%s" % attr.arch,
    }}

_config_node_transition = transition(
    implementation = _config_node_transition_impl,
    inputs = [],
    outputs = [
        "//command_line_option:platforms",
    ],
)

def _passthrough_rule_impl(ctx):
    return [DefaultInfo(files = depset(ctx.files.deps))]

config_node = rule(
    implementation = _passthrough_rule_impl,
    attrs = {{
        "arch" : attr.string(mandatory = True),
        "deps" : attr.label_list(cfg = _config_node_transition),
        "_allowlist_function_transition": attr.label(default = "@bazel_tools//tools/allowlists/function_transition_allowlist"),
    }},
)


# Rule representing the root of the build, to depend on all Bazel targets that
# are required for the build. Building this target will build the entire Bazel
# build tree.
mixed_build_root = rule(
    implementation = _passthrough_rule_impl,
    attrs = {{
        "deps" : attr.label_list(),
    }},
)

def _phony_root_impl(ctx):
    return []

# Rule to depend on other targets but build nothing.
# Building a target of this rule generates the symlink forest for all of its
# dependencies without executing any of their actions.
phony_root = rule(
    implementation = _phony_root_impl,
    attrs = {{"deps" : attr.label_list()}},
)
"""

_BUILD_FILE_TEMPLATE = """
{header}
load(":main.bzl", "config_node", "mixed_build_root", "phony_root")
{config_nodes}
mixed_build_root(name = "buildroot",
    deps = [{config_node_labels}],
)

phony_root(name = "phonyroot",
    deps = [":buildroot"],
)
"""

_CONFIG_NODE_TEMPLATE = """
config_node(name = "{arch}",
    arch = "{arch}",
    deps = [{labels}],
)
"""

_LIST_SEPARATOR = ",\n            "


def workspace_file_contents(workspace_dir: str, settings: BridgeSettings) -> str:
    """``WORKSPACE.bazel`` exposing the source tree as ``@<repository>``."""

    return _WORKSPACE_TEMPLATE.format(
        header=GENERATED_HEADER,
        repository=settings.repository,
        workspace_dir=workspace_dir,
        rules_cc_path=settings.rules_cc_path,
    )


def main_bzl_file_contents(settings: BridgeSettings) -> str:
    return _MAIN_BZL_TEMPLATE.format(
        header=GENERATED_HEADER,
        platform_base=canonicalize_label(settings.platforms_package, settings.repository),
        platform_prefix=settings.platform_prefix,
    )


def labels_by_arch(keys: Iterable[CqueryKey], settings: BridgeSettings) -> Dict[str, List[str]]:
    """Group canonical labels by architecture, deduplicated and sorted."""

    grouped: Dict[str, Set[str]] = {}
    for key in keys:
        arch = arch_string(key, settings.default_arch)
        grouped.setdefault(arch, set()).add(canonicalize_label(key.label, settings.repository))
    return {arch: sorted(grouped[arch]) for arch in sorted(grouped)}


def main_build_file_contents(keys: Iterable[CqueryKey], settings: BridgeSettings) -> str:
    """``BUILD.bazel`` with one config node per requested architecture."""

    config_nodes: List[str] = []
    config_node_labels: List[str] = []
    for arch, labels in labels_by_arch(keys, settings).items():
        config_node_labels.append(json.dumps(f":{arch}"))
        config_nodes.append(
            _CONFIG_NODE_TEMPLATE.format(
                arch=arch,
                labels=_LIST_SEPARATOR.join(json.dumps(label) for label in labels),
            )
        )
    return _BUILD_FILE_TEMPLATE.format(
        header=GENERATED_HEADER,
        config_nodes="".join(config_nodes),
        config_node_labels=_LIST_SEPARATOR.join(config_node_labels),
    )
