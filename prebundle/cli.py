"""
Prebundle CLI - Command-line interface.

Usage:
    prebundle build                                 Rebuild if dependencies changed
    prebundle build --mode production               Build the production artifact
    prebundle build --mode development --force      Rebuild unconditionally

Exits non-zero on configuration errors, unresolved dependencies and
build failures.
"""

import argparse
import logging
import shlex
import sys

from .errors import ConfigError, PrebundleError


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Prebundle - Incremental dependency prebuilding",
        prog="prebundle",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Build command
    build_parser = subparsers.add_parser("build", help="Build the dependency artifact")
    build_parser.add_argument("--mode", choices=["development", "production"], help="Build mode")
    build_parser.add_argument("--force", action="store_true", help="Rebuild even if nothing changed")
    build_parser.add_argument("--cwd", help="Project root (defaults to the current directory)")
    build_parser.add_argument("--config", help="JSON configuration file")
    build_parser.add_argument("--engine-command", help="Bundler command line")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "build":
        sys.exit(cmd_build(args))
    else:
        parser.print_help()
        sys.exit(1)


def cmd_build(args) -> int:
    """Build dependencies from the persisted snapshot."""
    from .config import load_config, resolve_mode
    from .service import PrebundleService

    try:
        mode = resolve_mode(mode=args.mode)
        config = load_config(
            args.config,
            cwd=args.cwd,
            mode=mode.value,
            engine_command=shlex.split(args.engine_command) if args.engine_command else None,
        )
        if not config.engine_command:
            raise ConfigError("No bundler configured, pass --engine-command or set engine_command")

        service = PrebundleService(config)
        service.start()

        print("[prebundle] build deps...")
        service.start_pass()
        service.tracker.observe_snapshot()
        scheduled = service.trigger_build(force=args.force)
    except PrebundleError as e:
        print(f"Error: {e}")
        return 1

    if not scheduled:
        print("[prebundle] dependencies are up to date")
        return 0

    service.wait()
    result = service.last_result
    if result is None or not (result.ok or result.skipped):
        print("[prebundle] build failed")
        if result is not None and result.error is not None:
            for message in result.error.errors or [result.error.message]:
                print(f"  - {message}")
        return 1

    print(f"[prebundle] built {len(result.job.deps)} dep(s) into {config.output_dir()}")
    return 0


if __name__ == "__main__":
    main()
