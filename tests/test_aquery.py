from __future__ import annotations

import copy
import json
import unittest

from mixbuild.aquery import BuildStatement, aquery_build_statements
from mixbuild.errors import ActionGraphError

ACTION_GRAPH = {
    "artifacts": [
        {"id": 1, "pathFragmentId": 1},
        {"id": 2, "pathFragmentId": 6},
        {"id": 3, "pathFragmentId": 8},
        {"id": 4, "pathFragmentId": 9},
    ],
    "actions": [
        {
            "targetId": 1,
            "actionKey": "key",
            "mnemonic": "CppCompile",
            "configurationId": 1,
            "arguments": ["clang", "-c", "foo.cc", "-o", "bazel-out/k8-fastbuild/bin/foo.o", "-DNAME=a b"],
            "environmentVariables": [{"key": "PATH", "value": "/bin"}],
            "inputDepSetIds": [1],
            "outputIds": [3, 4],
            "primaryOutputId": 3,
        }
    ],
    "depSetOfFiles": [
        {"id": 1, "directArtifactIds": [1], "transitiveDepSetIds": [2]},
        {"id": 2, "directArtifactIds": [2, 1]},
    ],
    "pathFragments": [
        {"id": 1, "label": "foo.cc"},
        {"id": 2, "label": "bazel-out"},
        {"id": 3, "label": "k8-fastbuild", "parentId": 2},
        {"id": 4, "label": "bin", "parentId": 3},
        {"id": 6, "label": "foo.h"},
        {"id": 8, "label": "foo.o", "parentId": 4},
        {"id": 9, "label": "foo.d", "parentId": 4},
    ],
}


class AqueryBuildStatementTests(unittest.TestCase):
    def graph(self) -> dict:
        return copy.deepcopy(ACTION_GRAPH)

    def test_translates_action(self) -> None:
        statements = aquery_build_statements(json.dumps(self.graph()))
        self.assertEqual(
            statements,
            [
                BuildStatement(
                    command="clang -c foo.cc -o bazel-out/k8-fastbuild/bin/foo.o '-DNAME=a b'",
                    mnemonic="CppCompile",
                    input_paths=("foo.cc", "foo.h"),
                    output_paths=("bazel-out/k8-fastbuild/bin/foo.o",),
                    depfile="bazel-out/k8-fastbuild/bin/foo.d",
                )
            ],
        )

    def test_empty_output_yields_no_statements(self) -> None:
        self.assertEqual(aquery_build_statements(""), [])
        self.assertEqual(aquery_build_statements("{}"), [])

    def test_empty_command_is_rejected(self) -> None:
        graph = self.graph()
        graph["actions"][0]["arguments"] = []
        with self.assertRaisesRegex(ActionGraphError, "empty command line"):
            aquery_build_statements(json.dumps(graph))

    def test_undefined_output_id(self) -> None:
        graph = self.graph()
        graph["actions"][0]["outputIds"] = [42]
        with self.assertRaisesRegex(ActionGraphError, "undefined outputId 42"):
            aquery_build_statements(json.dumps(graph))

    def test_undefined_depset(self) -> None:
        graph = self.graph()
        graph["actions"][0]["inputDepSetIds"] = [7]
        with self.assertRaisesRegex(ActionGraphError, "undefined input depsetId 7"):
            aquery_build_statements(json.dumps(graph))

    def test_undefined_path_fragment(self) -> None:
        graph = self.graph()
        graph["artifacts"].append({"id": 5, "pathFragmentId": 99})
        with self.assertRaisesRegex(ActionGraphError, "undefined path fragment id 99"):
            aquery_build_statements(json.dumps(graph))

    def test_multiple_depfiles(self) -> None:
        graph = self.graph()
        graph["pathFragments"].append({"id": 10, "label": "bar.d", "parentId": 4})
        graph["artifacts"].append({"id": 5, "pathFragmentId": 10})
        graph["actions"][0]["outputIds"] = [3, 4, 5]
        with self.assertRaisesRegex(ActionGraphError, "multiple potential depfiles"):
            aquery_build_statements(json.dumps(graph))

    def test_invalid_json(self) -> None:
        with self.assertRaises(ActionGraphError):
            aquery_build_statements("not json")

    def test_missing_required_field(self) -> None:
        graph = self.graph()
        del graph["artifacts"][0]["pathFragmentId"]
        with self.assertRaisesRegex(ActionGraphError, "missing field"):
            aquery_build_statements(json.dumps(graph))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
