"""Settings for the Bazel bridge: file-based tuning plus required environment."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping

from core.config_loader import load_config_file, normalize_string_list


@dataclass(slots=True)
class BridgeSettings:
    """Labels and layout used when generating files and Bazel command lines."""

    repository: str = "sourceroot"
    rules_cc_path: str = "build/bazel/rules_cc"
    platforms_package: str = "//build/bazel/platforms"
    platform_prefix: str = "android_"
    target_platform: str = "//build/bazel/platforms:android_x86_64"
    host_platform: str = "//build/bazel/platforms:linux_x86_64"
    extra_toolchains: tuple[str, ...] = ("//prebuilts/clang/host/linux-x86:all",)
    default_arch: str = "x86_64"
    intermediates_subdir: str = "bazel"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BridgeSettings":
        section = data.get("bazel", {}) if isinstance(data, Mapping) else {}
        if not isinstance(section, Mapping):
            raise TypeError("[bazel] must be a table")
        defaults = cls()
        toolchains = normalize_string_list(section.get("extra_toolchains"), field_name="bazel.extra_toolchains")
        settings = cls(
            repository=str(section.get("repository", defaults.repository)),
            rules_cc_path=str(section.get("rules_cc_path", defaults.rules_cc_path)),
            platforms_package=str(section.get("platforms_package", defaults.platforms_package)),
            platform_prefix=str(section.get("platform_prefix", defaults.platform_prefix)),
            target_platform=str(section.get("target_platform", defaults.target_platform)),
            host_platform=str(section.get("host_platform", defaults.host_platform)),
            extra_toolchains=tuple(toolchains) if toolchains else defaults.extra_toolchains,
            default_arch=str(section.get("default_arch", defaults.default_arch)),
            intermediates_subdir=str(section.get("intermediates_subdir", defaults.intermediates_subdir)),
        )
        errors = settings.validate()
        if errors:
            raise ValueError("; ".join(errors))
        return settings

    @classmethod
    def from_file(cls, path: Path | None) -> "BridgeSettings":
        if path is None:
            return cls()
        return cls.from_mapping(load_config_file(path))

    def validate(self) -> List[str]:
        errors: List[str] = []
        if not self.repository or "@" in self.repository or "/" in self.repository:
            errors.append(f"bazel.repository must be a bare repository name, got '{self.repository}'")
        if not self.default_arch:
            errors.append("bazel.default_arch must not be empty")
        if not self.platforms_package.startswith("//"):
            errors.append("bazel.platforms_package must start with '//'")
        if not self.intermediates_subdir:
            errors.append("bazel.intermediates_subdir must not be empty")
        return errors


ENABLE_VARIABLE = "USE_BAZEL_ANALYSIS"

REQUIRED_VARIABLES: tuple[str, ...] = (
    "BAZEL_HOME",
    "BAZEL_PATH",
    "BAZEL_OUTPUT_BASE",
    "BAZEL_WORKSPACE",
    "BAZEL_METRICS_DIR",
)


@dataclass(frozen=True, slots=True)
class EnvironmentSettings:
    """The five environment settings a live bridge needs."""

    home_dir: str
    bazel_path: str
    output_base: str
    workspace_dir: str
    metrics_dir: str

    @staticmethod
    def missing_variables(env: Mapping[str, str]) -> List[str]:
        return [name for name in REQUIRED_VARIABLES if not env.get(name, "").strip()]

    @classmethod
    def from_environment(cls, env: Mapping[str, str]) -> "EnvironmentSettings":
        missing = cls.missing_variables(env)
        if missing:
            raise KeyError(f"missing required env vars to use bazel: {', '.join(missing)}")
        return cls(
            home_dir=env["BAZEL_HOME"].strip(),
            bazel_path=env["BAZEL_PATH"].strip(),
            output_base=env["BAZEL_OUTPUT_BASE"].strip(),
            workspace_dir=env["BAZEL_WORKSPACE"].strip(),
            metrics_dir=env["BAZEL_METRICS_DIR"].strip(),
        )


def analysis_requested(env: Mapping[str, str]) -> bool:
    return env.get(ENABLE_VARIABLE) == "1"
