#!/usr/bin/env python3
"""
Skoria — Ancient Greek σκωρία (dross, slag)

Finds the regenerable build output that development projects leave behind
(target/, node_modules/, .stack-work/, CMake build trees, ...) anywhere below
a directory and lets you remove it one confirmed item at a time.

Usage:
    skoria [path]                    # Scan, then confirm each deletion
    skoria [path] --dry-run          # Just report findings
    skoria [path] --only cargo       # Restrict to some artifact types
    skoria [path] --min-size 100M    # Only offer items of at least 100 MiB
    skoria --list-detectors          # Show supported artifact types
"""

import argparse
import logging
import signal
import sys
import time
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich import box
from rich.table import Table

from auxiliary import directory_size, format_bytes, format_path_for_display, parse_size
from console_ui import ConsoleUI, setup_logging
from detectors import DetectorRegistry, UnknownDetectorError, default_registry
from file_operations import ArtifactRemover, RemovalStatus
from skoria_config import ConfigError, ConfigManager
from traversal import FoundArtifact, Traversal, TraversalConfig

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_PATH = 1
EXIT_CONFIG_ERROR = 2
EXIT_REMOVAL_ERRORS = 3


@dataclass
class Candidate:
    """A found artifact plus what the report phase learned about it"""

    artifact: FoundArtifact
    size: Optional[int] = None
    file_count: Optional[int] = None

    @property
    def path(self) -> str:
        return self.artifact.path

    @property
    def artifact_type(self) -> str:
        return self.artifact.artifact_type


@dataclass
class ScanResult:
    root_path: str
    candidates: list[Candidate] = field(default_factory=list)
    dirs_processed: int = 0
    scan_duration: float = 0.0
    failures: int = 0

    @property
    def total_size(self) -> int:
        return sum(c.size or 0 for c in self.candidates)


class Skoria:
    """Main application class for the skoria artifact cleanup tool"""

    def __init__(self, args: argparse.Namespace, ui: Optional[ConsoleUI] = None):
        self.args = args
        self.ui = ui if ui is not None else ConsoleUI()
        self._shutdown_requested = False
        self._prompting = False

    # -- signal handling ----------------------------------------------------

    def _signal_handler(self, signum, frame):
        if self._shutdown_requested:
            sys.exit(130)
        self._shutdown_requested = True
        if self._prompting:
            # Interrupt the pending prompt
            raise KeyboardInterrupt
        self.ui.print_warning("\nStopping after the current item... press Ctrl+C again to force quit.")

    def _install_signal_handlers(self):
        signal.signal(signal.SIGINT, self._signal_handler)
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, self._signal_handler)

    # -- configuration ------------------------------------------------------

    def build_registry(self) -> DetectorRegistry:
        """Apply --only/--exclude to the default detector set

        Raises:
            ConfigError: If an unknown detector name was given
        """
        registry = default_registry()
        try:
            if self.args.only:
                registry = registry.only(self.args.only)
            if self.args.exclude:
                registry = registry.without(self.args.exclude)
        except UnknownDetectorError as e:
            raise ConfigError(f"Unknown detector(s): {e.args[0]}") from e
        return registry

    def build_config(self) -> TraversalConfig:
        """Merge the configuration file with command-line overrides

        Raises:
            ConfigError: If the configuration or an override is invalid
        """
        settings = ConfigManager(config_file=self.args.config).load()
        if self.args.max_depth is not None:
            settings.max_depth = self.args.max_depth
        if self.args.concurrency is not None:
            settings.concurrency = self.args.concurrency
        if self.args.skip:
            settings.extra_skip_dirs.extend(self.args.skip)
        logger.debug("Effective settings: %s", settings.to_dict())
        return settings.to_traversal_config(self.build_registry())

    # -- scanning -----------------------------------------------------------

    def scan(self, root: str, config: TraversalConfig) -> ScanResult:
        traversal = Traversal(root, config)
        result = ScanResult(root_path=traversal.root)
        start = time.monotonic()

        progress = self.ui.create_traversal_progress(lambda: traversal.progress)
        with progress:
            progress.add_task("traversal", total=None)
            traversal.start()
            for artifact in traversal:
                result.candidates.append(Candidate(artifact))
                progress.console.print(
                    f"Found [bold]{format_path_for_display(artifact.path)}[/bold] "
                    f"[dim](type: {artifact.artifact_type})[/dim]"
                )

        result.scan_duration = time.monotonic() - start
        result.dirs_processed = traversal.progress
        result.failures = len(traversal.failures)
        return result

    def measure(self, result: ScanResult):
        """Fill in size and file count for every candidate"""
        progress = self.ui.create_progress()
        with progress:
            task = progress.add_task("Measuring...", total=len(result.candidates))
            for candidate in result.candidates:
                candidate.size, candidate.file_count = directory_size(candidate.path)
                progress.advance(task)

    # -- reporting ----------------------------------------------------------

    def report(self, result: ScanResult):
        self.ui.print_plain(
            f"\nProcessed {result.dirs_processed:,} directories, found {len(result.candidates)} candidates "
            f"in {result.scan_duration:.1f}s."
        )
        if result.failures:
            self.ui.print_warning(f"{result.failures} directories could not be inspected; see log for details.")
        if not result.candidates or result.candidates[0].size is None:
            return

        by_type: dict[str, list[Candidate]] = defaultdict(list)
        for candidate in result.candidates:
            by_type[candidate.artifact_type].append(candidate)

        table = Table(title="Artifact Summary", box=box.ROUNDED, show_lines=False)
        table.add_column("Type", style="cyan", min_width=12)
        table.add_column("Dirs", justify="right", min_width=6)
        table.add_column("Files", justify="right", style="dim", min_width=8)
        table.add_column("Size", justify="right", style="yellow", min_width=10)

        totals = sorted(by_type.items(), key=lambda kv: sum(c.size or 0 for c in kv[1]), reverse=True)
        for artifact_type, items in totals:
            table.add_row(
                artifact_type,
                str(len(items)),
                f"{sum(c.file_count or 0 for c in items):,}",
                format_bytes(sum(c.size or 0 for c in items)),
            )
        self.ui.console.print(table)
        self.ui.print_info(f"Total reclaimable: {format_bytes(result.total_size)}")

    # -- interactive removal ------------------------------------------------

    def review_and_remove(self, candidates: list[Candidate]) -> ArtifactRemover:
        """Ask about each candidate in turn and remove the confirmed ones immediately"""
        remover = ArtifactRemover(progress_callback=self.ui.print_progress)
        total = len(candidates)
        for idx, candidate in enumerate(candidates, start=1):
            if self._shutdown_requested:
                break
            if not Path(candidate.path).exists() and not Path(candidate.path).is_symlink():
                self.ui.print_progress(f"({idx}/{total}) {candidate.path} is already gone")
                continue

            size_note = f" [{format_bytes(candidate.size)}]" if candidate.size is not None else ""
            question = f"({idx}/{total}) remove {candidate.artifact_type} directory at {candidate.path}{size_note}?"
            if not self._ask(question):
                if self._shutdown_requested:
                    self.ui.print_warning("\nReview interrupted, nothing further will be removed.")
                    break
                continue

            removal = remover.remove(candidate.path)
            if removal.status is RemovalStatus.FAILED:
                self.ui.print_error(f"Error removing {candidate.path}: {removal.error_message}")
        return remover

    def _ask(self, question: str) -> bool:
        """Per-item confirmation; False once a shutdown was requested, whatever the answer"""
        self._prompting = True
        try:
            answer = self.ui.confirm(question, default=False)
        except KeyboardInterrupt:
            self._shutdown_requested = True
            return False
        finally:
            self._prompting = False
        return answer and not self._shutdown_requested

    def summary(self, remover: ArtifactRemover):
        removed = remover.removed_count
        failed = [(r.path, r.error_message or "") for r in remover.failures]
        self.ui.show_operation_summary(removed, failed, "remove")
        if removed > 0:
            self.ui.print_success(f"Eliminated {removed} disk space abusers.")
        else:
            self.ui.print_plain("Do you really think they're this important?")

    # -- main entry point ---------------------------------------------------

    def list_detectors(self):
        table = Table(title="Detectors", box=box.SIMPLE)
        table.add_column("Type", style="cyan")
        table.add_column("Description", style="white")
        for detector in default_registry():
            table.add_row(detector.name, detector.description)
        self.ui.console.print(table)

    def run(self) -> int:
        setup_logging(self.ui.console, verbose=self.args.verbose)

        if self.args.list_detectors:
            self.list_detectors()
            return EXIT_OK

        root = Path(self.args.path).expanduser()
        if not root.is_dir():
            self.ui.print_error(f"Not a directory: {self.args.path}")
            return EXIT_BAD_PATH

        try:
            config = self.build_config()
            min_size = parse_size(self.args.min_size) if self.args.min_size else 0
        except (ConfigError, ValueError) as e:
            self.ui.print_error(f"Configuration error: {e}")
            return EXIT_CONFIG_ERROR

        abs_root = str(root.resolve())
        if not (self.args.dry_run or self.args.yes):
            prompt = (
                f"This will recursively search build folders in {abs_root}. "
                "You will be prompted to delete each one. Are you sure?"
            )
            if not self.ui.confirm(prompt, default=False):
                return EXIT_OK

        self.ui.print_header("Skoria", f"Scanning {format_path_for_display(abs_root)}")
        result = self.scan(abs_root, config)

        if result.candidates and (not self.args.no_size or min_size):
            self.measure(result)
        if min_size:
            result.candidates = [c for c in result.candidates if (c.size or 0) >= min_size]

        self.report(result)
        if not result.candidates:
            self.ui.print_success("Good for you.")
            return EXIT_OK

        if self.args.dry_run:
            self.ui.print_info("Dry run only, nothing was removed.")
            return EXIT_OK

        self._install_signal_handlers()
        remover = self.review_and_remove(result.candidates)
        self.summary(remover)
        return EXIT_REMOVAL_ERRORS if remover.failures else EXIT_OK


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skoria",
        description="Skoria — find and remove regenerable build artifacts",
    )
    parser.add_argument("path", nargs="?", default=".", help="Directory to search (default: current directory)")
    parser.add_argument("--dry-run", action="store_true", help="Report findings without removing anything")
    parser.add_argument("-y", "--yes", action="store_true", help="Skip the initial confirmation")
    parser.add_argument("--max-depth", type=int, default=None, help="Maximum recursion depth")
    parser.add_argument("--concurrency", type=int, default=None, help="Maximum parallel directory visits")
    parser.add_argument(
        "--skip", action="append", default=[], metavar="NAME", help="Extra directory name never to descend into"
    )
    parser.add_argument(
        "--only", action="append", default=[], metavar="TYPE", help="Only run the given detector (repeatable)"
    )
    parser.add_argument(
        "--exclude", action="append", default=[], metavar="TYPE", help="Do not run the given detector (repeatable)"
    )
    parser.add_argument("--min-size", type=str, default=None, help="Only offer items of at least SIZE (e.g. 10M, 1G)")
    parser.add_argument("--no-size", action="store_true", help="Skip measuring artifact sizes")
    parser.add_argument("--config", type=Path, default=None, help="Configuration file (TOML)")
    parser.add_argument("--list-detectors", action="store_true", help="List supported artifact types and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    app = Skoria(args)
    return app.run()


if __name__ == "__main__":
    sys.exit(main())
