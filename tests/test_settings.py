from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import unittest

from core.config_loader import load_config_file, normalize_string_list
from mixbuild.settings import BridgeSettings, EnvironmentSettings, analysis_requested


class BridgeSettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.root = Path(self.temp_dir.name)

    def test_defaults_without_file(self) -> None:
        settings = BridgeSettings.from_file(None)
        self.assertEqual(settings, BridgeSettings())
        self.assertEqual(settings.validate(), [])

    def test_toml_overrides(self) -> None:
        path = self.root / "mixbuild.toml"
        path.write_text(
            textwrap.dedent(
                """
                [bazel]
                repository = "src"
                default_arch = "arm64"
                extra_toolchains = ["//tc:a", "//tc:b"]
                """
            )
        )
        settings = BridgeSettings.from_file(path)
        self.assertEqual(settings.repository, "src")
        self.assertEqual(settings.default_arch, "arm64")
        self.assertEqual(settings.extra_toolchains, ("//tc:a", "//tc:b"))
        self.assertEqual(settings.platform_prefix, "android_")

    def test_yaml_overrides(self) -> None:
        path = self.root / "mixbuild.yaml"
        path.write_text("bazel:\n  intermediates_subdir: mixed\n  extra_toolchains: //tc:only\n")
        settings = BridgeSettings.from_file(path)
        self.assertEqual(settings.intermediates_subdir, "mixed")
        self.assertEqual(settings.extra_toolchains, ("//tc:only",))

    def test_invalid_values_are_reported(self) -> None:
        with self.assertRaisesRegex(ValueError, "bare repository name"):
            BridgeSettings.from_mapping({"bazel": {"repository": "@src"}})
        with self.assertRaisesRegex(ValueError, "platforms_package"):
            BridgeSettings.from_mapping({"bazel": {"platforms_package": "build/platforms"}})

    def test_bazel_section_must_be_a_table(self) -> None:
        with self.assertRaises(TypeError):
            BridgeSettings.from_mapping({"bazel": ["nope"]})

    def test_unsupported_extension(self) -> None:
        path = self.root / "mixbuild.ini"
        path.write_text("[bazel]\n")
        with self.assertRaisesRegex(ValueError, "Unsupported configuration file extension"):
            BridgeSettings.from_file(path)


class ConfigLoaderTests(unittest.TestCase):
    def test_empty_yaml_is_an_empty_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as temp:
            path = Path(temp) / "empty.yml"
            path.write_text("")
            self.assertEqual(load_config_file(path), {})

    def test_non_mapping_root_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp:
            path = Path(temp) / "list.json"
            path.write_text("[1, 2]")
            with self.assertRaises(TypeError):
                load_config_file(path)

    def test_normalize_string_list(self) -> None:
        self.assertEqual(normalize_string_list(" a "), ["a"])
        self.assertEqual(normalize_string_list(["a", " ", "b"]), ["a", "b"])
        self.assertEqual(normalize_string_list(None), [])
        with self.assertRaises(TypeError):
            normalize_string_list([1], field_name="bazel.extra_toolchains")


class EnvironmentSettingsTests(unittest.TestCase):
    def test_from_environment(self) -> None:
        env = {
            "BAZEL_HOME": "/h",
            "BAZEL_PATH": "/b",
            "BAZEL_OUTPUT_BASE": "/o",
            "BAZEL_WORKSPACE": "/w",
            "BAZEL_METRICS_DIR": "/m",
        }
        self.assertEqual(EnvironmentSettings.missing_variables(env), [])
        settings = EnvironmentSettings.from_environment(env)
        self.assertEqual(settings.output_base, "/o")
        self.assertEqual(settings.metrics_dir, "/m")

    def test_missing_variables_are_listed_in_order(self) -> None:
        self.assertEqual(
            EnvironmentSettings.missing_variables({"BAZEL_PATH": "/b", "BAZEL_WORKSPACE": "/w"}),
            ["BAZEL_HOME", "BAZEL_OUTPUT_BASE", "BAZEL_METRICS_DIR"],
        )
        with self.assertRaises(KeyError):
            EnvironmentSettings.from_environment({})

    def test_analysis_gate(self) -> None:
        self.assertTrue(analysis_requested({"USE_BAZEL_ANALYSIS": "1"}))
        self.assertFalse(analysis_requested({"USE_BAZEL_ANALYSIS": "0"}))
        self.assertFalse(analysis_requested({}))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
