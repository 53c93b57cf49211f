"""Command line entry point for EpochDB Builder."""
import sys
import argparse
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from epochdb_builder import EpochDbError
from epochdb_builder.utils.logging_utils import VALID_LEVELS, setup_logging
from epochdb_builder.core.config_manager import ConfigManager
from epochdb_builder.info import print_build_summary, print_database_info
from epochdb_builder.pipeline.database_builder import DatabaseBuilder


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epochdb-builder",
        description="EpochDB Builder - Last Epoch reference database reconciliation",
    )
    parser.add_argument("--config", type=Path, help="Path to configuration file")
    parser.add_argument("--log-level", type=str.upper, choices=VALID_LEVELS,
                        help="Override the configured log level")

    commands = parser.add_subparsers(dest="command", required=True)
    build = commands.add_parser("build", help="Build the database (skipped when up to date)")
    build.add_argument("--force", action="store_true", help="Rebuild even if outputs are current")
    build.add_argument("--game-version", help="Game version recorded in the output")
    commands.add_parser("info", help="Show a summary of the built database")
    commands.add_parser("validate", help="Run ingestion and validation without writing output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    console = Console()
    logger = setup_logging(level=args.log_level or "INFO")

    try:
        config = ConfigManager(args.config, logger).config
        if not args.log_level and config.log_level != "INFO":
            logger = setup_logging(level=config.log_level)

        if args.command == "info":
            return 0 if print_database_info(config.paths.output_dir, console) else 1

        builder = DatabaseBuilder(config, logger)
        if args.command == "validate":
            result = builder.validate()
            console.print(result.report.render())
            print_build_summary(result.context, result.report, console, title="Validation Summary")
            return 0

        result = builder.build(force=args.force, game_version=args.game_version)
        if result.skipped:
            console.print("[green]Database is up to date - nothing to build[/green]")
            return 0
        print_build_summary(result.context, result.report, console)
        return 0

    except EpochDbError as e:
        logger.error("Build failed", error=str(e))
        console.print(f"[red]Error:[/red] {e}")
        return 1
    except KeyboardInterrupt:
        console.print("\nStopped by user")
        return 1
    except Exception as e:
        logger.error("Unexpected error", error=str(e), error_type=type(e).__name__)
        console.print(f"[red]Unexpected error:[/red] {e}")
        return 1


def cli_main():
    sys.exit(main())


if __name__ == "__main__":
    cli_main()
