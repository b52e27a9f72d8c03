"""juicegen/cli.py — command-line entry point.

Usage examples
--------------
    # Generate UserRepositoryImpl from ./juice.xml, print to stdout
    juicegen impl --type UserRepository

    # Explicit namespace, output file and configuration
    juicegen impl -t UserRepository -n repository.UserRepository \\
        -o user_repository_impl.go -c config/juice.xml

    # Target the v2 API (implementation holds a juice.Manager)
    juicegen impl -t UserRepository --api-version v2

    # Print the namespace the generator would use
    juicegen tell --type UserRepository

Exit codes
----------
    0   Success.
    1   Generation error (bad signature, missing statement, ...).
    2   Infrastructure failure (missing file or directory, unwritable output).

The module doubles as ``python -m juicegen`` via ``juicegen/__main__.py``.
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence

from juicegen import __version__
from juicegen.context import ApiVersion, GenerationContext
from juicegen.errors import ConfigNotFoundError, JuiceGenError
from juicegen.generator import Generator
from juicegen.impl import DEFAULT_COMMAND, Implementation
from juicegen.namespace import autocomplete
from juicegen.output import open_output
from juicegen.parser import find_interface
from juicegen.registry import DEFAULT_CONFIG_FILES, StatementRegistry, find_config

_log = logging.getLogger("juicegen")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``juicegen`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("juicegen")
    root.setLevel(level)
    # Repeated runs in one process replace the handler instead of stacking.
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file", directory: bool = False) -> Path:
    """Resolve *raw*, raising ``SystemExit(EXIT_INFRA)`` when it is missing."""
    p = Path(raw).expanduser().resolve()
    if not (p.is_dir() if directory else p.is_file()):
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _report(exc: JuiceGenError) -> None:
    sys.stderr.write(str(exc) + "\n")


# ===========================================================================
# Sub-commands
# ===========================================================================

def cmd_impl(args: argparse.Namespace) -> int:
    """Generate the implementation of ``--type``."""
    directory = _resolve_path(args.dir, "source directory", directory=True)
    config = _resolve_path(args.config, "configuration") if args.config else None

    try:
        version = ApiVersion.parse(args.api_version)
        iface = find_interface(directory, args.type)
        namespace = args.namespace or autocomplete(args.type, directory)
        _log.info("namespace: %s", namespace)

        registry = StatementRegistry.load(config or find_config(directory))
        context = GenerationContext(
            api_version=version,
            source=args.type,
            namespace=namespace,
            destination=args.impl or "",
        )
        implementation = Implementation(iface, registry, context, command=args.command_line)
        reader = Generator(implementation).generate()
    except ConfigNotFoundError as exc:
        _report(exc)
        return EXIT_INFRA
    except JuiceGenError as exc:
        _report(exc)
        return EXIT_ERROR

    try:
        with open_output(args.output) as stream:
            shutil.copyfileobj(reader, stream)
    except OSError as exc:
        _log.error("cannot write %s: %s", args.output, exc)
        return EXIT_INFRA

    _log.info("generated %s for %s", context.destination, context.source)
    return EXIT_OK


def cmd_tell(args: argparse.Namespace) -> int:
    """Print the auto-completed namespace of ``--type``."""
    directory = _resolve_path(args.dir, "source directory", directory=True)
    try:
        namespace = autocomplete(args.type, directory)
    except JuiceGenError as exc:
        _report(exc)
        return EXIT_ERROR
    sys.stdout.write(namespace + "\n")
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog=DEFAULT_COMMAND,
        description=(
            "Generate Go implementations of repository interfaces from\n"
            "juice XML mapper statements."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              juicegen impl --type UserRepository
              juicegen impl -t UserRepository -o user_repository_impl.go
              juicegen tell -t UserRepository
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_source_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "-t", "--type",
            required=True,
            help="Interface type to implement (e.g. UserRepository).",
        )
        p.add_argument(
            "--dir",
            default=".",
            help="Directory holding the Go package (default: current directory).",
        )

    # --- impl --------------------------------------------------------------
    p_impl = subparsers.add_parser(
        "impl",
        help="Generate the implementation of an interface.",
        description=(
            "Generate the implementation of an interface from the statements "
            "of its juice mapper."
        ),
    )
    _add_source_args(p_impl)
    p_impl.add_argument(
        "-n", "--namespace",
        default="",
        help="Mapper namespace (default: derived from go.mod and --dir).",
    )
    p_impl.add_argument(
        "-o", "--output",
        default=None,
        help="Output file (default: stdout).",
    )
    p_impl.add_argument(
        "-c", "--config",
        default=None,
        help=f"juice configuration (default: first of {', '.join(DEFAULT_CONFIG_FILES)}).",
    )
    p_impl.add_argument(
        "--api-version",
        default=ApiVersion.V1.value,
        help="Target juice API: v1 or v2 (default: v1).",
    )
    p_impl.add_argument(
        "--impl",
        default="",
        help="Name of the implementation struct (default: <type>Impl).",
    )
    p_impl.set_defaults(func=cmd_impl)

    # --- tell --------------------------------------------------------------
    p_tell = subparsers.add_parser(
        "tell",
        help="Print the namespace derived for an interface.",
    )
    _add_source_args(p_tell)
    p_tell.set_defaults(func=cmd_tell)

    return parser


# ===========================================================================
# Main
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the juicegen CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    arguments: List[str] = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(arguments)
    args.command_line = " ".join([DEFAULT_COMMAND, *arguments])

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except OSError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
