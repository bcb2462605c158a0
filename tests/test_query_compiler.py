from __future__ import annotations

import re
import unittest

from mixbuild.demux import collect_results
from mixbuild.labels import CqueryKey, cquery_id
from mixbuild.query_compiler import cquery_starlark_file_contents, indent
from mixbuild.request_types import RequestType
from mixbuild.settings import BridgeSettings

FILES = RequestType.GET_OUTPUT_FILES
CC = RequestType.GET_OUTPUT_FILES_AND_CC_OBJECT_FILES


class QueryCompilerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = BridgeSettings()
        self.keys = [
            CqueryKey("//pkg:lib", FILES, "arm64"),
            CqueryKey("bin", FILES, ""),
            CqueryKey("//cc:lib", CC, "arm"),
        ]
        self.contents = cquery_starlark_file_contents(self.keys, self.settings)

    def test_label_maps_hold_identities_per_kind(self) -> None:
        self.assertIn(
            'getOutputFiles_Labels = {\n  "@sourceroot//bin|x86_64" : True,\n  "@sourceroot//pkg:lib|arm64" : True\n}',
            self.contents,
        )
        self.assertIn(
            'getOutputFilesAndCcObjectFiles_Labels = {\n  "@sourceroot//cc:lib|arm" : True\n}',
            self.contents,
        )

    def test_function_bodies_are_indented(self) -> None:
        self.assertIn(
            "def getOutputFiles_Fn(target):\n  return ', '.join([f.path for f in target.files.to_list()])\n",
            self.contents,
        )
        self.assertIn("def getOutputFilesAndCcObjectFiles_Fn(target):\n  outputFiles = ", self.contents)
        self.assertIn("  for linker_input in linker_inputs:\n    for library in linker_input.libraries:", self.contents)

    def test_dispatcher_checks_kinds_in_fixed_order(self) -> None:
        first = self.contents.index("if id_string in getOutputFiles_Labels:")
        second = self.contents.index("if id_string in getOutputFilesAndCcObjectFiles_Labels:")
        self.assertLess(first, second)
        self.assertIn('return id_string + ">>" + getOutputFiles_Fn(target)', self.contents)
        self.assertIn('return id_string + ">>NONE"', self.contents)

    def test_identity_and_arch_helpers(self) -> None:
        self.assertIn('id_string = str(target.label) + "|" + get_arch(target)', self.contents)
        self.assertIn('if len(platforms) != 1:', self.contents)
        self.assertIn('return "HOST"', self.contents)
        self.assertIn('return platform_name[len("android_"):]', self.contents)

    def test_empty_request_set_still_declares_every_kind(self) -> None:
        contents = cquery_starlark_file_contents([], self.settings)
        self.assertIn("getOutputFiles_Labels = {\n  \n}", contents)
        self.assertIn("def getOutputFilesAndCcObjectFiles_Fn(target):", contents)

    def test_generated_identities_join_back_to_requests(self) -> None:
        identities = re.findall(r'^  "([^"]+)" : True', self.contents, flags=re.M)
        self.assertCountEqual(
            identities,
            [cquery_id(key) for key in self.keys],
        )
        output = "\n".join(f"{identity}>>answer-{index}" for index, identity in enumerate(identities))
        results = collect_results(self.keys, output, self.settings)
        self.assertEqual(set(results), set(self.keys))

    def test_indent_prefixes_every_line(self) -> None:
        self.assertEqual(indent("a\n  b"), "  a\n    b\n")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
