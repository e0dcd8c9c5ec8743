#!/usr/bin/env python3
"""
Artifact Detectors for Skoria

Each detector recognizes one ecosystem's project-root markers and points at
the regenerable directory that ecosystem leaves behind. Detectors only look at
the directory they are given, plus non-recursive emptiness checks on named
subdirectories; they never walk and never touch the filesystem otherwise.

Adding an ecosystem means adding one detector to DEFAULT_DETECTORS.
"""

import os
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Optional

from dir_cache import DirectoryCache, Entry, Listing


@dataclass(frozen=True)
class DirectoryView:
    """What a detector gets to see of one directory"""

    path: str
    entries: tuple[Entry, ...]
    by_name: Mapping[str, Entry]
    cache: DirectoryCache

    @classmethod
    def from_listing(cls, listing: Listing, cache: DirectoryCache) -> "DirectoryView":
        return cls(
            path=listing.path,
            entries=listing.entries,
            by_name={e.name: e for e in listing.entries},
            cache=cache,
        )

    def has(self, name: str) -> bool:
        return name in self.by_name

    def join(self, *parts: str) -> str:
        return os.path.join(self.path, *parts)

    def non_empty_dir(self, *parts: str) -> bool:
        return self.cache.is_non_empty_dir(self.join(*parts))

    def first_non_empty(self, candidates: Iterable[str]) -> Optional[str]:
        """Return the path of the first candidate subdirectory that exists and is non-empty"""
        for candidate in candidates:
            parts = candidate.split("/")
            if self.non_empty_dir(*parts):
                return self.join(*parts)
        return None

    def any_suffix(self, suffixes: tuple[str, ...], files_only: bool, ignore_case: bool) -> bool:
        for entry in self.entries:
            if files_only and entry.is_dir:
                continue
            name = entry.name.lower() if ignore_case else entry.name
            if name.endswith(suffixes):
                return True
        return False


class Detector:
    """Base class: a named, side-effect free predicate over one directory"""

    name: str = ""
    description: str = ""

    def evaluate(self, view: DirectoryView) -> Optional[str]:
        """Return the artifact path to delete, or None when nothing matches"""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class ManifestDetector(Detector):
    """Matches when any manifest name is present; reports the first non-empty target"""

    def __init__(self, name: str, manifests: tuple[str, ...], targets: tuple[str, ...], description: str = ""):
        self.name = name
        self.manifests = manifests
        self.targets = targets
        self.description = description

    def evaluate(self, view: DirectoryView) -> Optional[str]:
        if not any(view.has(m) for m in self.manifests):
            return None
        return view.first_non_empty(self.targets)


class SuffixDetector(Detector):
    """Matches when an entry name carries one of the given suffixes"""

    def __init__(
        self,
        name: str,
        suffixes: tuple[str, ...],
        targets: tuple[str, ...],
        files_only: bool = True,
        ignore_case: bool = True,
        description: str = "",
    ):
        self.name = name
        self.suffixes = suffixes
        self.targets = targets
        self.files_only = files_only
        self.ignore_case = ignore_case
        self.description = description

    def evaluate(self, view: DirectoryView) -> Optional[str]:
        if not view.any_suffix(self.suffixes, self.files_only, self.ignore_case):
            return None
        return view.first_non_empty(self.targets)


class CMakeDetector(Detector):
    """An in-source CMake build tree: the whole directory is the artifact"""

    name = "cmake"
    description = "CMake build tree (CMakeCache.txt + CMakeFiles)"

    def evaluate(self, view: DirectoryView) -> Optional[str]:
        if not (view.has("CMakeCache.txt") and view.has("CMakeFiles")):
            return None
        if view.non_empty_dir("CMakeFiles"):
            return view.path
        return None


class BazelDetector(Detector):
    """Bazel convenience symlinks (bazel-bin, bazel-out, ...) next to WORKSPACE/BUILD"""

    name = "bazel"
    description = "Bazel output trees"

    def evaluate(self, view: DirectoryView) -> Optional[str]:
        if not (view.has("WORKSPACE") or view.has("BUILD")):
            return None
        for entry in view.entries:
            if entry.name.startswith("bazel-") and view.non_empty_dir(entry.name):
                return view.join(entry.name)
        return None


DEFAULT_DETECTORS: tuple[Detector, ...] = (
    ManifestDetector("cargo", ("Cargo.toml",), ("target",), "Rust build output"),
    ManifestDetector("node", ("package.json",), ("node_modules",), "npm/yarn dependencies"),
    CMakeDetector(),
    ManifestDetector("maven", ("pom.xml",), ("target",), "Maven build output"),
    ManifestDetector("gradle", ("build.gradle", "build.gradle.kts"), ("build",), "Gradle build output"),
    SuffixDetector("dotnet", (".csproj", ".sln"), ("bin", "obj"), description=".NET build output"),
    ManifestDetector("python", ("setup.py", "pyproject.toml"), ("build", "dist"), "Python build/dist output"),
    ManifestDetector("d", ("dub.json", "dub.sdl"), (".dub",), "DUB build cache"),
    SuffixDetector("jai", (".jai",), ("bin", ".build"), description="Jai build output"),
    ManifestDetector("swiftpm", ("Package.swift",), (".build",), "SwiftPM build output"),
    ManifestDetector("qobs", ("Qobs.toml",), ("build",), "Qobs build output"),
    BazelDetector(),
    ManifestDetector("meson", ("meson.build",), ("build", "_build"), "Meson build directory"),
    ManifestDetector("ninja", ("build.ninja",), ("build",), "Ninja build directory"),
    ManifestDetector("sbt", ("build.sbt",), ("target",), "sbt build output"),
    SuffixDetector(
        "cabal", (".cabal",), ("dist-newstyle", "dist"), files_only=False, ignore_case=False,
        description="Cabal build output",
    ),
    ManifestDetector("stack", ("stack.yaml",), (".stack-work",), "Stack work directory"),
    ManifestDetector("composer", ("composer.json",), ("vendor",), "Composer dependencies"),
    ManifestDetector("bundler", ("Gemfile",), ("vendor/bundle",), "Bundler vendored gems"),
    ManifestDetector("pnpm", ("pnpm-lock.yaml",), ("node_modules", ".pnpm-store"), "pnpm dependencies/store"),
    ManifestDetector("bun", ("bun.lockb",), ("node_modules", ".bun"), "Bun dependencies"),
    ManifestDetector("expo", ("app.json", "app.config.js"), (".expo", ".expo-shared"), "Expo state"),
    ManifestDetector("next", ("package.json",), (".next",), "Next.js build output"),
    ManifestDetector("angular", ("angular.json",), ("dist",), "Angular build output"),
    SuffixDetector(
        "unreal", (".uproject",), ("Intermediate", "Saved", "Binaries"), files_only=False, ignore_case=False,
        description="Unreal Engine intermediates",
    ),
    ManifestDetector("unity", ("ProjectSettings",), ("Library", "Temp", "Logs", "obj"), "Unity caches"),
    ManifestDetector("android", ("AndroidManifest.xml",), ("build",), "Android build output"),
    ManifestDetector("flutter", ("pubspec.yaml",), ("build", ".dart_tool"), "Flutter/Dart build output"),
    ManifestDetector("mix", ("mix.exs",), ("_build", "deps"), "Elixir Mix build/deps"),
    ManifestDetector("rebar", ("rebar.config",), ("_build", "deps"), "Erlang rebar3 build/deps"),
)


class UnknownDetectorError(KeyError):
    """Raised when a detector name is not part of the registry"""


class DetectorRegistry:
    """Immutable, ordered collection of detectors keyed by artifact type"""

    def __init__(self, detectors: Iterable[Detector]):
        detectors = tuple(detectors)
        seen: set[str] = set()
        for detector in detectors:
            if not detector.name:
                raise ValueError(f"Detector {detector!r} has no name")
            if detector.name in seen:
                raise ValueError(f"Duplicate detector name: {detector.name}")
            seen.add(detector.name)
        self._detectors = detectors

    def __iter__(self) -> Iterator[Detector]:
        return iter(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)

    def __contains__(self, name: str) -> bool:
        return any(d.name == name for d in self._detectors)

    def names(self) -> list[str]:
        return [d.name for d in self._detectors]

    def only(self, names: Iterable[str]) -> "DetectorRegistry":
        """Return a registry restricted to *names*, keeping registry order"""
        wanted = set(names)
        self._check_known(wanted)
        return DetectorRegistry(d for d in self._detectors if d.name in wanted)

    def without(self, names: Iterable[str]) -> "DetectorRegistry":
        """Return a registry with *names* removed"""
        unwanted = set(names)
        self._check_known(unwanted)
        return DetectorRegistry(d for d in self._detectors if d.name not in unwanted)

    def _check_known(self, names: set[str]):
        unknown = sorted(n for n in names if n not in self)
        if unknown:
            raise UnknownDetectorError(", ".join(unknown))


def default_registry() -> DetectorRegistry:
    return DetectorRegistry(DEFAULT_DETECTORS)
