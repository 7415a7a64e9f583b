"""Command line interface for generating Wi-Fi QR codes."""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from . import __version__
from . import config as config_store
from .errors import CipherCanvasError
from .generator import Encryption
from .pipeline import QrCodeOptions, generate_qr_code
from .scripting import execute_script

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ciphercanvas",
        description="Generate Wi-Fi QR codes and customize the output with Lua scripts",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable detailed logs")
    parser.add_argument(
        "-c", "--config",
        metavar="FILE",
        help="Configuration file ('-' reads stdin). Defaults to config.toml in the user config directory",
    )
    subparsers = parser.add_subparsers(dest="command")

    generate = subparsers.add_parser("generate", help="Generate a QR code image from Wi-Fi credentials")
    generate.add_argument("-s", "--ssid", help="Wi-Fi network name")
    generate.add_argument(
        "-e", "--encryption",
        choices=["wpa", "wep", "none"],
        default="wpa",
        help="Encryption type (default: wpa)",
    )
    password_group = generate.add_mutually_exclusive_group()
    password_group.add_argument("--password", help="Wi-Fi password")
    password_group.add_argument("--password-file", type=Path, help="Read the password from a file")
    password_group.add_argument("--password-stdin", action="store_true", help="Read the password from stdin")
    generate.add_argument("-o", "--output", type=Path, help="Output file; the extension follows --format")
    generate.add_argument("--size", type=int, help="Minimum image size in pixels")
    generate.add_argument("--format", help="Export format: svg or png")
    generate.add_argument("--foreground", help="Color of the dark modules")
    generate.add_argument("--background", help="Background color")
    generate.add_argument("--overwrite", action="store_true", help="Replace an existing output file")
    generate.add_argument(
        "--preview",
        action="store_true",
        help="Show the image inline using the terminal graphics protocol when no output is given",
    )

    script = subparsers.add_parser("script", help="Run a Lua script")
    script.add_argument("-s", "--script", type=Path, required=True, help="Path to the Lua script")

    save_settings = subparsers.add_parser("save-settings", help="Save frequently used settings")
    save_settings.add_argument("-s", "--settings", required=True, help="Settings in TOML format")
    return parser


def resolve_password(
    args: argparse.Namespace,
    settings: config_store.Settings,
    encryption: Encryption,
    stdin: Optional[TextIO] = None,
) -> str:
    stdin = stdin if stdin is not None else sys.stdin
    if getattr(args, "password", None) is not None:
        return args.password
    if getattr(args, "password_file", None) is not None:
        try:
            return args.password_file.read_text(encoding="utf-8").rstrip("\r\n")
        except OSError as exc:
            raise CipherCanvasError(f"Failed to read the password file {args.password_file}: {exc}") from exc
    if getattr(args, "password_stdin", False):
        return stdin.readline().rstrip("\r\n")
    if settings.password is not None:
        logger.info("Password retrieved from configuration.")
        return settings.password
    if encryption is Encryption.NONE:
        return ""
    if stdin.isatty():
        return getpass.getpass("Wi-Fi password: ")
    raise CipherCanvasError(
        "No password given. Use --password, --password-file, --password-stdin "
        "or set `[qrcode] password = \"...\"` in the configuration file."
    )


def run_generate(args: argparse.Namespace, stdin: Optional[TextIO] = None) -> None:
    settings = config_store.load_settings(args.config, stdin=stdin)
    encryption = Encryption.parse(getattr(args, "encryption", "wpa"))
    ssid = getattr(args, "ssid", None) or settings.ssid
    if not ssid:
        raise CipherCanvasError("An SSID is required: pass --ssid or set `[wifi] ssid` in the configuration file.")

    options = QrCodeOptions(
        ssid=ssid,
        password=resolve_password(args, settings, encryption, stdin=stdin),
        encryption=encryption,
        size=_pick(getattr(args, "size", None), settings.size),
        format=_pick(getattr(args, "format", None), settings.export_format),
        foreground=_pick(getattr(args, "foreground", None), settings.foreground),
        background=_pick(getattr(args, "background", None), settings.background),
        output_path=getattr(args, "output", None),
        overwrite=getattr(args, "overwrite", False),
        preview=getattr(args, "preview", False) or settings.preview,
    )
    artifact = generate_qr_code(options)
    if artifact.path is not None:
        logger.info("Image saved successfully to %s", artifact.path)


def _pick(value, default):
    return default if value is None else value


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )
    if verbose:
        logger.info("Verbose logging enabled.")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    logger.info("Running command: %s", args.command or "generate")

    try:
        if args.command == "script":
            execute_script(args.script)
        elif args.command == "save-settings":
            path = config_store.save_settings(args.settings)
            print(f"Saved settings to {path}")
        else:
            run_generate(args)
    except (CipherCanvasError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
