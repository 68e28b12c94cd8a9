"""CLI interface for env-mask — a one-shot host for the masking engine.

Usage:
    # Print a .env file with every value masked (the file is never modified)
    env-mask show .env

    # Reveal lines 3 and 7 (0-based), or every value
    env-mask show .env --reveal 3 --reveal 7
    env-mask show .env --reveal-all

    # Keys and column spans as JSON (values are never printed)
    env-mask scan .env

    # Would this file be masked?
    env-mask check config/.env.production

    # Inspect / edit settings (YAML, see env_mask.config)
    env-mask config show
    env-mask config set auto_hide_delay_ms 3000
    env-mask config set enabled_file_patterns '[".env", ".env.*"]'
    env-mask config reset
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Sequence

from .config import DEFAULT_PATH, ConfigStoreError, Settings, YamlConfigStore
from .controller import MaskingController
from .parser import parse_document
from .patterns import PatternMatcher, file_name
from .scheduler import ManualScheduler
from .types import Notification, Position, RenderBatch, TextDocument


def apply_batch(lines: Sequence[str], batch: RenderBatch) -> list[str]:
    """Substitute mask text into a copy of ``lines``."""
    out = list(lines)
    # Right-to-left so earlier spans on the same line keep their offsets
    for instr in sorted(batch.masked, key=lambda i: (i.line, i.start), reverse=True):
        text = out[instr.line]
        out[instr.line] = text[:instr.start] + (instr.text or "") + text[instr.end:]
    return out


def _settings(args: argparse.Namespace) -> Settings:
    return Settings(YamlConfigStore(args.config))


def _load(path: str) -> TextDocument:
    return TextDocument.from_file(path)


def _print_warnings(note: Notification) -> None:
    if note.level != "info":
        sys.stderr.write(f"{note.level}: {note.message}\n")


def cmd_show(args: argparse.Namespace) -> int:
    """Print the file with masked values substituted."""
    doc = _load(args.file)
    with MaskingController(_settings(args), scheduler=ManualScheduler()) as controller:
        if not controller.is_eligible(doc):
            sys.stderr.write(f"{args.file} is not an enabled environment file\n")
            return 1
        controller.subscribe_notifications(_print_warnings)
        controller.on_active_change(doc)

        if args.reveal_all:
            controller.reveal_all(doc)
        for line in args.reveal or []:
            decl = next((d for d in parse_document(doc.lines) if d.line == line), None)
            if decl is None:
                sys.stderr.write(f"line {line} has no value to reveal\n")
                continue
            controller.on_selection_change(doc, Position(line, decl.value_start))

        batch = controller.render(doc)

    for text in apply_batch(doc.lines, batch):
        sys.stdout.write(text + "\n")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Dump declarations as JSON, without their values."""
    doc = _load(args.file)
    output = [
        {
            "line": d.line,
            "key": d.key,
            "key_start": d.key_start,
            "key_end": d.key_end,
            "value_start": d.value_start,
            "value_end": d.value_end,
            "value_length": len(d.value),
        }
        for d in parse_document(doc.lines)
    ]
    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Report whether a path would be masked."""
    matcher = PatternMatcher.from_config(_settings(args).config)
    if matcher.is_blacklisted(args.file):
        verdict = "blacklisted"
    elif not matcher.is_enabled(file_name(args.file)):
        verdict = "not-enabled"
    else:
        verdict = "masked"
    sys.stdout.write(verdict + "\n")
    return 0 if verdict == "masked" else 1


def cmd_config(args: argparse.Namespace) -> int:
    """Show, set or reset settings in the YAML store."""
    settings = _settings(args)
    try:
        if args.action == "set":
            import yaml
            settings.update_setting(args.key, yaml.safe_load(args.value))
        elif args.action == "reset":
            settings.reset_to_defaults()
    except KeyError:
        sys.stderr.write(f"Unknown setting: {args.key}\n")
        return 2
    except ConfigStoreError as e:
        sys.stderr.write(f"Failed to update settings: {e}\n")
        return 1

    for warning in settings.config.warnings:
        sys.stderr.write(f"warning: {warning}\n")
    json.dump(settings.export_settings(), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="env-mask",
        description="Mask values in .env-style files for display",
    )
    parser.add_argument("--config", default=DEFAULT_PATH, help="YAML settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print a file with values masked")
    show.add_argument("file")
    show.add_argument("--reveal", type=int, action="append", metavar="LINE",
                      help="Reveal the value on this 0-based line (repeatable)")
    show.add_argument("--reveal-all", action="store_true", help="Reveal every value")

    scan = sub.add_parser("scan", help="List declarations and spans as JSON")
    scan.add_argument("file")

    check = sub.add_parser("check", help="Would this file be masked?")
    check.add_argument("file")

    config = sub.add_parser("config", help="Show or edit settings")
    config_sub = config.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show", help="Print validated settings")
    set_ = config_sub.add_parser("set", help="Set one setting (VALUE is parsed as YAML)")
    set_.add_argument("key")
    set_.add_argument("value")
    config_sub.add_parser("reset", help="Restore defaults")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cmds = {
        "show": cmd_show,
        "scan": cmd_scan,
        "check": cmd_check,
        "config": cmd_config,
    }
    return cmds[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
