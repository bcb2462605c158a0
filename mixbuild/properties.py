"""Attribute values used when describing source targets as Bazel targets."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple
import re

ARCH_ARM = "arm"
ARCH_ARM64 = "arm64"
ARCH_X86 = "x86"
ARCH_X86_64 = "x86_64"

OS_ANDROID = "android"
OS_DARWIN = "darwin"
OS_FUCHSIA = "fuchsia"
OS_LINUX = "linux_glibc"
OS_LINUX_BIONIC = "linux_bionic"
OS_WINDOWS = "windows"

SELECTABLE_ARCHS: Tuple[str, ...] = (ARCH_X86, ARCH_X86_64, ARCH_ARM, ARCH_ARM64)
SELECTABLE_TARGET_OS: Tuple[str, ...] = (
    OS_ANDROID,
    OS_DARWIN,
    OS_FUCHSIA,
    OS_LINUX,
    OS_LINUX_BIONIC,
    OS_WINDOWS,
)

_PRODUCT_VARIABLE_SUBSTITUTION = re.compile(r"%(d|s)")


@dataclass(frozen=True, slots=True)
class Label:
    """A Bazel label plus the original text it was written as."""

    bp_text: str
    label: str


@dataclass(slots=True)
class LabelList:
    includes: List[Label] = field(default_factory=list)
    excludes: List[Label] = field(default_factory=list)

    def append(self, other: "LabelList") -> None:
        """Append both the includes and the excludes of ``other``."""

        self.includes.extend(other.includes)
        self.excludes.extend(other.excludes)


def unique_bazel_labels(labels: Iterable[Label]) -> List[Label]:
    return sorted(set(labels), key=lambda item: (item.label, item.bp_text))


def unique_bazel_label_list(label_list: LabelList) -> LabelList:
    return LabelList(
        includes=unique_bazel_labels(label_list.includes),
        excludes=unique_bazel_labels(label_list.excludes),
    )


def _check_arch(arch: str) -> None:
    if arch not in SELECTABLE_ARCHS:
        raise ValueError(f"Unknown arch: {arch}")


def _check_os(os_name: str) -> None:
    if os_name not in SELECTABLE_TARGET_OS:
        raise ValueError(f"Unknown os: {os_name}")


@dataclass(slots=True)
class LabelListAttribute:
    """A label_list attribute with optional per-arch and per-OS additions.

    The configurable values are emitted as ``select`` statements and appended to
    the common ``value``.
    """

    value: LabelList = field(default_factory=LabelList)
    arch_values: Dict[str, LabelList] = field(default_factory=dict)
    os_values: Dict[str, LabelList] = field(default_factory=dict)

    @classmethod
    def make(cls, value: LabelList) -> "LabelListAttribute":
        return cls(value=unique_bazel_label_list(value))

    def has_configurable_values(self) -> bool:
        for arch in SELECTABLE_ARCHS:
            if self.get_value_for_arch(arch).includes:
                return True
        for os_name in SELECTABLE_TARGET_OS:
            if self.get_value_for_os(os_name).includes:
                return True
        return False

    def get_value_for_arch(self, arch: str) -> LabelList:
        _check_arch(arch)
        return self.arch_values.get(arch, LabelList())

    def set_value_for_arch(self, arch: str, value: LabelList) -> None:
        _check_arch(arch)
        self.arch_values[arch] = value

    def get_value_for_os(self, os_name: str) -> LabelList:
        _check_os(os_name)
        return self.os_values.get(os_name, LabelList())

    def set_value_for_os(self, os_name: str, value: LabelList) -> None:
        _check_os(os_name)
        self.os_values[os_name] = value


@dataclass(slots=True)
class StringListAttribute:
    value: List[str] = field(default_factory=list)
    arch_values: Dict[str, List[str]] = field(default_factory=dict)

    def has_configurable_values(self) -> bool:
        return any(self.get_value_for_arch(arch) for arch in SELECTABLE_ARCHS)

    def get_value_for_arch(self, arch: str) -> List[str]:
        _check_arch(arch)
        return self.arch_values.get(arch, [])

    def set_value_for_arch(self, arch: str, value: List[str]) -> None:
        _check_arch(arch)
        self.arch_values[arch] = list(value)


def try_variable_substitution(text: str, product_variable: str) -> tuple[str, bool]:
    """Replace ``%d``/``%s`` with a ``str.format`` style ``{product_variable}`` tag."""

    substituted = _PRODUCT_VARIABLE_SUBSTITUTION.sub("{" + product_variable + "}", text)
    return substituted, substituted != text


def try_variable_substitutions(values: Iterable[str], product_variable: str) -> tuple[List[str], bool]:
    substituted: List[str] = []
    changed = False
    for value in values:
        new_value, value_changed = try_variable_substitution(value, product_variable)
        substituted.append(new_value)
        changed = changed or value_changed
    return substituted, changed
