#!/usr/bin/env python3
"""
KeepOne CLI: command line interface for duplicate media detection and removal.
Drives the same duplicate engine a GUI would, with console-based interaction.
Deletion moves files to the system trash unless --permanent is given.
"""
from __future__ import annotations
import argparse
import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, NoReturn, Optional

from keepone.aliases import EPILOG_TEXT, STRATEGY_ALIASES, STRATEGY_CHOICES, STRATEGY_HELP_TEXT
from keepone.core.models import (
    DuplicateGroup, ScanParams, ScanPhase, ScanProgress, SearchState, SelectionStrategy
)
from keepone.engine.session import DuplicateSession
from keepone.services.local_backend import LocalHashingBackend
from keepone.utils.convert_utils import ConvertUtils


LOG_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="keepone",
            description="KeepOne: duplicate media finder with safe, deterministic cleanup",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        parser.add_argument(
            "--input", "-i",
            required=True,
            nargs="+",
            type=str,
            help="Directories (space separated) to scan for duplicates"
        )

        # Filtering options
        parser.add_argument(
            "--min-size", "-m",
            default="1",
            type=str,
            metavar='',
            help="Minimum file size (e.g., 500KB, 1MB). Default: 1 byte"
        )
        parser.add_argument(
            "--max-size", "-M",
            default=None,
            type=str,
            metavar='',
            help="Maximum file size (e.g., 10MB, 1GB). Default: no limit"
        )
        parser.add_argument(
            "--extensions", "-x",
            nargs="+",
            default=[],
            type=str,
            metavar='',
            help="File extensions (space separated) to include (e.g., .jpg .mp4)"
        )
        parser.add_argument(
            "--excluded-dirs", '-e',
            nargs="+",
            default=[],
            type=str,
            metavar='',
            dest="excluded_dirs",
            help="Excluded/ignored directories (space separated)"
        )
        parser.add_argument(
            "--partial-hash",
            action="store_true",
            help="Hash only the first and last MiB of large files (faster, less strict)"
        )

        # Resolution options
        parser.add_argument(
            "--strategy",
            choices=STRATEGY_CHOICES,
            default="newest",
            type=str,
            help=STRATEGY_HELP_TEXT
        )
        parser.add_argument(
            "--keep-one",
            action="store_true",
            help="Keep one file per duplicate group and delete the rest. "
                 "Always shows a preview before deletion."
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Skip confirmation prompt when used with --keep-one (for automation/scripts)"
        )
        parser.add_argument(
            "--permanent",
            action="store_true",
            help="Delete files permanently instead of moving them to trash"
        )

        # Output options
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show progress and debug logging"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        if args.force and not args.keep_one:
            self.error_exit("--force can only be used with --keep-one")

        # Prevent interactive confirmation in non-TTY environments
        if args.keep_one and not args.force:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Cannot request interactive confirmation in non-interactive session.\n"
                    "Use --force flag to proceed without confirmation when piping output or running in scripts."
                )

        for input_dir in args.input:
            root_path = Path(input_dir).expanduser().resolve()
            if not root_path.exists():
                self.error_exit(f"Directory not found: {input_dir}")
            if not root_path.is_dir():
                self.error_exit(f"Path is not a directory: {input_dir}")

        for excl_dir in args.excluded_dirs:
            excl_path = Path(excl_dir).expanduser().resolve()
            if not excl_path.is_dir():
                self.warning(f"Excluded directory not found: {excl_dir}")

    def create_params(self, args: argparse.Namespace) -> ScanParams:
        """Create ScanParams from CLI arguments."""
        try:
            min_size_bytes = ConvertUtils.human_to_bytes(args.min_size)
            max_size_bytes = ConvertUtils.human_to_bytes(args.max_size) if args.max_size else None

            return ScanParams(
                root_dirs=[str(Path(d).expanduser().resolve()) for d in args.input],
                extensions=args.extensions,
                min_size_bytes=min_size_bytes,
                max_size_bytes=max_size_bytes,
                excluded_dirs=[str(Path(d.strip()).expanduser().resolve()) for d in args.excluded_dirs],
                partial_hash=args.partial_hash,
                use_trash=not args.permanent,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def progress_listener(self, progress: ScanProgress) -> None:
        """Shows backend progress in the console (verbose mode only)."""
        if not self.verbose:
            return

        if progress.phase == ScanPhase.COMPLETE:
            sys.stderr.write("\n")
        elif progress.total > 0:
            percent = (progress.current / progress.total) * 100
            sys.stderr.write(f"\r  [{progress.phase.value}] {progress.current}/{progress.total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{progress.phase.value}] {progress.current} files processed...")
        sys.stderr.flush()

    async def run_search(self, session: DuplicateSession) -> None:
        try:
            await session.start_search()
        except asyncio.CancelledError:
            # Ctrl+C: tell the worker thread to stop before unwinding
            session.cancel_search()
            raise

        if session.state == SearchState.ERROR:
            self.error_exit("Duplicate search failed (see log for details)")

    def output_results(self, session: DuplicateSession) -> None:
        """Output duplicate groups as plain text."""
        if self.quiet:
            return

        groups = session.groups
        if not groups:
            print("No duplicate groups found.")
            return

        for idx, group in enumerate(groups, 1):
            self._print_group(idx, group)
        self._print_summary(session)

    async def execute_keep_one(
        self, session: DuplicateSession, strategy: SelectionStrategy, force: bool = False, permanent: bool = False
    ) -> None:
        """Keep one file per group, delete the rest. Always shows preview before deletion."""
        if not session.groups:
            if not self.quiet:
                print("No duplicate groups found.")
            return

        session.select_all_by_strategy(strategy)
        selected = session.selected_file_ids
        if not selected:
            if not self.quiet:
                print("No files to delete.")
            return

        space_saved = sum(f.size for g in session.groups for f in g.files if f.id in selected)
        space_saved_str = ConvertUtils.bytes_to_human(space_saved)

        # Always show deletion preview before action
        print()
        for idx, group in enumerate(session.groups, 1):
            self._print_group(idx, group, selected=selected)

        print("=" * 60)
        print(f"Summary: Keep 1 file per group ({len(session.groups)} files preserved, "
              f"{len(selected)} files deleted, strategy: {strategy.display_name.lower()})")
        print(f"Total space saved: {space_saved_str}")
        print()

        action = "permanently delete" if permanent else "move to trash"
        if force:
            print("⚠️  WARNING: --force flag skips confirmation. Proceeding with deletion...")
        else:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Lost interactive terminal during operation. "
                    "Use --force to proceed in non-interactive environments."
                )
            response = input(f"Are you sure you want to {action} {len(selected)} files? [y/N]: ")
            if response.strip().lower() not in ("y", "yes"):
                print("Deletion cancelled by user.")
                session.clear_selection()
                return

        results = await session.delete_selected()
        failed = [r for r in results if not r.success]
        deleted_count = len(results) - len(failed)

        if failed or len(results) != len(selected):
            print(f"\n⚠️  Partial success: {deleted_count}/{len(selected)} files deleted.")
            for result in failed[:5]:
                print(f"  • {result.id}: {result.error}")
            if len(failed) > 5:
                print(f"  ...and {len(failed) - 5} more files")
        else:
            print(f"✅ Successfully deleted {deleted_count} files ({action}).")
        if not self.quiet:
            self._print_summary(session, remaining=True)

    @staticmethod
    def _print_group(idx: int, group: DuplicateGroup, selected: Optional[frozenset] = None) -> None:
        size_str = ConvertUtils.bytes_to_human(group.size)
        print(f"\n📁 Group {idx} | Size: {size_str} | Files: {group.count} | Hash: {group.hash[:16]}")
        print("-" * 60)
        for file in group.files:
            if selected is None:
                print(f"   {file.path}")
            else:
                marker = "[DEL] " if file.id in selected else "[KEEP]"
                print(f"   {marker} {file.path}")

    @staticmethod
    def _print_summary(session: DuplicateSession, remaining: bool = False) -> None:
        stats = session.stats
        if stats is None:
            return
        label = "Remaining" if remaining else "Found"
        print(f"\n{label}: {stats.total_groups} duplicate groups, "
              f"{stats.total_files} redundant files, "
              f"{ConvertUtils.bytes_to_human(stats.wasted_space)} wasted")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    async def run_async(self, args: argparse.Namespace, params: ScanParams) -> None:
        backend = LocalHashingBackend(params)
        session = DuplicateSession(backend)
        unsubscribe = backend.subscribe_progress(self.progress_listener)
        try:
            await self.run_search(session)
            if args.keep_one:
                await self.execute_keep_one(
                    session, STRATEGY_ALIASES[args.strategy], force=args.force, permanent=args.permanent
                )
            else:
                self.output_results(session)
        finally:
            unsubscribe()
            session.close()

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet

        logging.basicConfig(
            level=logging.DEBUG if self.verbose else logging.ERROR,
            format=LOG_FORMAT
        )

        self.validate_args(args)
        params = self.create_params(args)

        if not self.quiet:
            print(f"Scanning: {', '.join(params.root_dirs)}")

        asyncio.run(self.run_async(args, params))

        if self.verbose:
            print(f"\n✅ Completed in {time.time() - self.start_time:.2f} seconds")


def main(argv: Optional[List[str]] = None) -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        app.run(argv)
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
