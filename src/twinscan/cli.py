#!/usr/bin/env python3
"""
TwinScan CLI: command line interface for duplicate file detection.
Drives the same engine as any other calling layer; never modifies files.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import json
import logging
import os
import signal
import sys
import time
from typing import List, Optional, NoReturn

from twinscan.aliases import EPILOG_TEXT, MATCH_TYPE_LABELS, PARTIAL_HASH_CHOICES, PARTIAL_HASH_HELP_TEXT
from twinscan.commands import ScanCommand
from twinscan.core.cancellation import CancellationToken
from twinscan.core.models import DuplicateGroup, ScanConfig, ScanConfigurationError, ScanRequest, ScanResult
from twinscan.services.path_gate import SandboxPathGate
from twinscan.utils.convert_utils import ConvertUtils
from twinscan.utils.query_parser import parse_query

LOG_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False
        self.token = CancellationToken()

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError.
        # Undecodable file names arrive as lone surrogates; print them as \udcXX escapes.
        for stream in (sys.stdout, sys.stderr):
            if hasattr(stream, "reconfigure"):
                stream.reconfigure(encoding='utf-8', errors='backslashreplace')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="twinscan",
            description="TwinScan: find duplicate and near-duplicate files (read-only)",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        parser.add_argument(
            "--input", "-i",
            type=str,
            help="Directory to scan (default: current directory, or the path found in --query)"
        )
        parser.add_argument(
            "--query",
            type=str,
            default="",
            help='Free-text request, e.g. "duplicates named report under ./docs"'
        )

        # Filtering options
        parser.add_argument(
            "--name", "-n",
            type=str,
            metavar='',
            help="Case-insensitive substring the file name must contain"
        )
        parser.add_argument(
            "--type", "-t",
            type=str,
            metavar='',
            help="Only files with this extension (e.g. pdf or .pdf)"
        )
        parser.add_argument(
            "--snippet", "-s",
            type=str,
            metavar='',
            help="Keep exact groups only if a file starts with text containing this snippet"
        )

        # Limits
        parser.add_argument(
            "--max-depth",
            type=int,
            default=ScanConfig.MAX_DEPTH,
            metavar='',
            help=f"Deepest directory level to enter (root = 0). Default: {ScanConfig.MAX_DEPTH}"
        )
        parser.add_argument(
            "--max-files",
            type=int,
            default=ScanConfig.MAX_FILES,
            metavar='',
            help=f"Stop collecting after this many files. Default: {ScanConfig.MAX_FILES}"
        )
        parser.add_argument(
            "--timeout",
            type=int,
            default=ScanConfig.TIMEOUT_MS,
            metavar='',
            help=f"Overall time limit in milliseconds. Default: {ScanConfig.TIMEOUT_MS}"
        )
        parser.add_argument(
            "--max-hash-size",
            type=str,
            default="100MB",
            metavar='',
            help="Larger files are never hashed (e.g. 500MB, 2GB). Default: 100MB"
        )

        # Hashing options
        parser.add_argument(
            "--partial-hash",
            choices=PARTIAL_HASH_CHOICES,
            default="sha256",
            type=str,
            help=PARTIAL_HASH_HELP_TEXT
        )
        parser.add_argument(
            "--workers",
            type=int,
            default=ScanConfig.HASH_WORKERS,
            metavar='',
            help=f"Parallel hashing threads. Default: {ScanConfig.HASH_WORKERS}"
        )

        # Sandbox
        parser.add_argument(
            "--allowed-root",
            action="append",
            default=[],
            type=str,
            metavar='',
            dest="allowed_roots",
            help="Only allow scanning inside this directory (repeatable)"
        )

        # Output options
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the result as JSON"
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show detailed statistics, progress and debug logs"
        )

        return parser.parse_args(args)

    def create_request(self, args: argparse.Namespace) -> ScanRequest:
        """Create a ScanRequest from CLI arguments; explicit flags win over --query."""
        parsed = parse_query(args.query)

        root = args.input or parsed.get("path")
        if args.allowed_roots:
            gate = SandboxPathGate(args.allowed_roots)
            root = gate.resolve(root)
        elif root:
            root = os.path.abspath(os.path.expanduser(root))

        return ScanRequest.from_human_readable(
            root_dir=root,
            max_hash_size_str=args.max_hash_size,
            name_filter=args.name or parsed.get("name"),
            type_filter=args.type or parsed.get("type"),
            snippet_filter=args.snippet,
            max_depth=args.max_depth,
            max_files=args.max_files,
            timeout_ms=args.timeout,
            partial_hash=args.partial_hash,
            hash_workers=args.workers,
        )

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} entries visited...")
        sys.stderr.flush()

    def _on_sigint(self, signum, frame) -> None:
        """First Ctrl+C stops the scan cooperatively; partial results are still printed."""
        if self.token.is_cancelled():
            raise KeyboardInterrupt
        self.token.cancel()
        self.warning("Stopping scan, finishing current file...")

    def run_scan(self, request: ScanRequest) -> ScanResult:
        """Execute the scan with Ctrl+C mapped to cooperative cancellation."""
        previous_handler = None
        try:
            previous_handler = signal.signal(signal.SIGINT, self._on_sigint)
        except ValueError:
            # Not in the main thread; fall back to the default KeyboardInterrupt
            previous_handler = None

        try:
            result = ScanCommand().execute(
                request,
                cancel_token=self.token,
                progress_callback=self.progress_callback if self.verbose else None
            )
        finally:
            if previous_handler is not None:
                signal.signal(signal.SIGINT, previous_handler)

        if self.verbose:
            sys.stderr.write("\n")
            if result.stage_stats is not None:
                print(result.stage_stats.print_summary())
        return result

    def output_results(self, result: ScanResult, as_json: bool = False) -> None:
        """Output duplicate groups as plain text or JSON."""
        if as_json:
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return

        if self.quiet:
            return

        if result.stats.timed_out:
            self.warning("Scan stopped early; results are partial.")

        print(result.summary)
        for idx, group in enumerate(result.groups, 1):
            self._print_group(idx, group)

        stats = result.stats
        print(f"\nScanned {stats.scanned} entries, {stats.matched} matched filters, "
              f"{stats.total_duplicates} files in {stats.groups} groups "
              f"({ConvertUtils.ms_to_human(stats.elapsed_ms)})")

    @staticmethod
    def _print_group(idx: int, group: DuplicateGroup) -> None:
        label = MATCH_TYPE_LABELS.get(group.match_type.value, group.match_type.value)
        print(f"\n📁 Group {idx} | {label} | {group.display_hash} | Files: {len(group.files)}")
        for file in group.files:
            exec_marker = " ⚠️ executable" if file.is_executable else ""
            print(f"   {file.path} [{ConvertUtils.bytes_to_human(file.size)}]{exec_marker}")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv: Optional[List[str]] = None) -> ScanResult:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        if self.verbose:
            logging.getLogger("twinscan").setLevel(logging.DEBUG)

        try:
            request = self.create_request(args)
            if not self.quiet and not args.json:
                print(f"Scanning directory: {request.root_dir or os.getcwd()}")
            result = self.run_scan(request)
        except ScanConfigurationError as e:
            self.error_exit(str(e))

        self.output_results(result, as_json=args.json)

        if self.verbose:
            elapsed = time.time() - self.start_time
            print(f"\n✅ Completed in {elapsed:.2f} seconds")
        return result


def main() -> None:
    """Application entry point."""
    logging.basicConfig(level=logging.ERROR, format=LOG_FORMAT)
    app = CLIApplication()
    try:
        app.run()
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
