"""Starlark program passed to ``cquery --output=starlark``.

For every configured target in the build root's dependency closure, ``format``
prints one line ``<label>|<arch>>><answer>``. The answer is computed by the
function of the first request type whose label map holds the identity, or is
``NONE`` for targets that were only pulled in as dependencies.
"""
from __future__ import annotations

from typing import Dict, Iterable, List
import json

from .labels import CqueryKey, cquery_id
from .materializer import GENERATED_HEADER
from .request_types import REQUEST_TYPES, RequestType
from .settings import BridgeSettings

RESULT_SEPARATOR = ">>"
UNREQUESTED_RESULT = "NONE"

_MAP_DECLARATION_TEMPLATE = """
{name} = {{
  {entries}
}}
"""

_FUNCTION_DEF_TEMPLATE = """
def {name}(target):
{body}
"""

_MAIN_SWITCH_TEMPLATE = """
  if id_string in {label_map}:
    return id_string + "{separator}" + {function}(target)
"""

_CQUERY_FILE_TEMPLATE = """
{header}

# Label Map Section
{label_maps}

# Function Def Section
{functions}

def get_arch(target):
  platforms = build_options(target)["//command_line_option:platforms"]
  if len(platforms) != 1:
    # A configured target has exactly one platform; the same label built for
    # several architectures shows up as several configured targets.
    fail("expected exactly 1 platform for " + str(target.label) + " but got " + str(platforms))
  platform_name = platforms[0].name
  if platform_name == "host":
    return "HOST"
  elif not platform_name.startswith("{prefix}"):
    fail("expected platform name of the form '{prefix}<arch>', but was " + str(platforms))
    return "UNKNOWN"
  return platform_name[len("{prefix}"):]

def format(target):
  id_string = str(target.label) + "|" + get_arch(target)

  # Main switch section
  {main_switch}
  # Not requested directly; this target is a dependency of a requested target.
  return id_string + "{separator}{unrequested}"
"""


def label_map_name(request_type: RequestType) -> str:
    return f"{request_type.starlark_name}_Labels"


def function_name(request_type: RequestType) -> str:
    return f"{request_type.starlark_name}_Fn"


def indent(text: str, prefix: str = "  ") -> str:
    return "".join(f"{prefix}{line}\n" for line in text.split("\n"))


def ids_by_request_type(keys: Iterable[CqueryKey], settings: BridgeSettings) -> Dict[RequestType, List[str]]:
    grouped: Dict[RequestType, set[str]] = {request_type: set() for request_type in REQUEST_TYPES}
    for key in keys:
        grouped[key.request_type].add(
            cquery_id(key, repository=settings.repository, default_arch=settings.default_arch)
        )
    return {request_type: sorted(ids) for request_type, ids in grouped.items()}


def cquery_starlark_file_contents(keys: Iterable[CqueryKey], settings: BridgeSettings) -> str:
    label_maps: List[str] = []
    functions: List[str] = []
    main_switch: List[str] = []

    for request_type, ids in ids_by_request_type(keys, settings).items():
        entries = ",\n  ".join(f"{json.dumps(identity)} : True" for identity in ids)
        label_maps.append(_MAP_DECLARATION_TEMPLATE.format(name=label_map_name(request_type), entries=entries))
        functions.append(
            _FUNCTION_DEF_TEMPLATE.format(
                name=function_name(request_type),
                body=indent(request_type.starlark_function_body),
            )
        )
        main_switch.append(
            _MAIN_SWITCH_TEMPLATE.format(
                label_map=label_map_name(request_type),
                function=function_name(request_type),
                separator=RESULT_SEPARATOR,
            )
        )

    return _CQUERY_FILE_TEMPLATE.format(
        header=GENERATED_HEADER,
        label_maps="".join(label_maps),
        functions="".join(functions),
        main_switch="".join(main_switch),
        prefix=settings.platform_prefix,
        separator=RESULT_SEPARATOR,
        unrequested=UNREQUESTED_RESULT,
    )
