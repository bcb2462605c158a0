"""Closed set of cquery request types.

Each request type pairs the Starlark function evaluated for a matched configured
target with the parser for the string that function returns. The two halves
must agree on the format.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from .errors import ResultParseError


@dataclass(frozen=True, slots=True)
class OutputFilesAndCcObjectFiles:
    output_files: List[str]
    cc_object_files: List[str]


class RequestType(Enum):
    """Kinds of questions that can be asked of Bazel, in dispatch order."""

    GET_OUTPUT_FILES = "getOutputFiles"
    GET_OUTPUT_FILES_AND_CC_OBJECT_FILES = "getOutputFilesAndCcObjectFiles"

    @property
    def starlark_name(self) -> str:
        return self.value

    @property
    def starlark_function_body(self) -> str:
        return _STARLARK_FUNCTION_BODIES[self]

    def parse_result(self, raw: str) -> Any:
        return _RESULT_PARSERS[self](raw.strip())


def split_or_empty(text: str, separator: str) -> List[str]:
    if not text:
        return []
    return text.split(separator)


def _parse_output_files(raw: str) -> List[str]:
    return split_or_empty(raw, ", ")


def _parse_output_files_and_cc_object_files(raw: str) -> OutputFilesAndCcObjectFiles:
    output_part, separator, objects_part = raw.partition("|")
    if not separator:
        raise ResultParseError(f"expected '<output files>|<object files>', got [{raw}]")
    return OutputFilesAndCcObjectFiles(
        output_files=split_or_empty(output_part.strip(), ", "),
        cc_object_files=split_or_empty(objects_part.strip(), ", "),
    )


_STARLARK_FUNCTION_BODIES: Dict[RequestType, str] = {
    RequestType.GET_OUTPUT_FILES: "return ', '.join([f.path for f in target.files.to_list()])",
    RequestType.GET_OUTPUT_FILES_AND_CC_OBJECT_FILES: """\
outputFiles = [f.path for f in target.files.to_list()]

ccObjectFiles = []
linker_inputs = providers(target)["CcInfo"].linking_context.linker_inputs.to_list()

for linker_input in linker_inputs:
  for library in linker_input.libraries:
    for object in library.objects:
      ccObjectFiles += [object.path]
return ', '.join(outputFiles) + "|" + ', '.join(ccObjectFiles)""",
}

_RESULT_PARSERS: Dict[RequestType, Callable[[str], Any]] = {
    RequestType.GET_OUTPUT_FILES: _parse_output_files,
    RequestType.GET_OUTPUT_FILES_AND_CC_OBJECT_FILES: _parse_output_files_and_cc_object_files,
}


REQUEST_TYPES: tuple[RequestType, ...] = tuple(RequestType)
