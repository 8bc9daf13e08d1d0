"""
Command-line interface for the uploader.
"""
import argparse
import logging
import shutil
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from .config import UploaderConfig, load_config
from .coordinator import UploadCoordinator
from .exceptions import ConfigError, DependencyMissing

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: Whether to enable debug logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def check_dependencies(tools: Iterable[str] = ()) -> None:
    """Make sure the external tools named in the config are on PATH.

    Args:
        tools: Names of executables that must be on PATH

    Raises:
        DependencyMissing: If anything is absent
    """
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        raise DependencyMissing(f"Missing required tools: {', '.join(missing)}")


def create_coordinator(args: argparse.Namespace) -> UploadCoordinator:
    """Create and configure the upload coordinator.

    Args:
        args: Command line arguments

    Returns:
        Configured UploadCoordinator instance
    """
    config = UploaderConfig.from_dict(load_config(args.config))
    if args.timeout is not None:
        config.transfer_timeout = args.timeout

    check_dependencies(config.required_tools)

    return UploadCoordinator(config=config, randomize=args.random)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="uploadem",
        description="Upload files to Gofile and BuzzHeavier"
    )
    parser.add_argument('files', nargs='+', type=Path, metavar='FILE',
                        help="Files to upload")
    parser.add_argument('-r', '--random', action='store_true',
                        help="Upload temporary copies with random file names")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Enable verbose logging")
    parser.add_argument('-c', '--config', type=Path,
                        help="Path to config file")
    parser.add_argument('-t', '--timeout', type=float,
                        help="Seconds to wait for each transfer (0 waits forever)")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if args.timeout is not None and args.timeout < 0:
        logger.error("Timeout must not be negative")
        sys.exit(1)

    try:
        coordinator = create_coordinator(args)
    except (DependencyMissing, ConfigError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    try:
        with coordinator:
            batch = coordinator.upload_files(args.files)
    except KeyboardInterrupt:
        logger.info("Upload interrupted by user")
        sys.exit(130)

    if batch.results:
        print(batch.render())


if __name__ == '__main__':
    main()
