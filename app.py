from __future__ import annotations

import argparse
import getpass
import os
import sys
from typing import Optional

from hrdir.core.config.manager import ConfigManager
from hrdir.core.config.paths import ConfigFsPaths
from hrdir.core.directory import build_directory
from hrdir.core.error_reporter import ErrorReporter, ErrorReporterConfig
from hrdir.core.errors import ConfigError, HRError
from hrdir.core.logger import setup_logging
from hrdir.core.shell import DirectoryShell


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="HR directory shell (in-memory, nothing is saved on exit)")
    ap.add_argument("--root", default=".", help="Directory holding config/ and logs/.")
    ap.add_argument("--debug-errors", action="store_true", help="Include tracebacks in logs/errors.jsonl.")
    args = ap.parse_args(argv)

    config = ConfigManager(fs=ConfigFsPaths(args.root))
    try:
        cfg = config.load_all()
    except ConfigError as e:
        print(f"Config error: {e.user_message}", file=sys.stderr)
        return 2

    log_dir = cfg.logging.log_dir
    if not os.path.isabs(log_dir):
        log_dir = os.path.join(args.root, log_dir)
    logger = setup_logging(log_dir, cfg.logging.level)
    config.logger = logger
    if not os.path.isabs(cfg.audit.path):
        audit_cfg = cfg.audit.model_copy(update={"path": os.path.join(args.root, cfg.audit.path)})
        cfg = cfg.model_copy(update={"audit": audit_cfg})

    reporter = ErrorReporter(
        path=os.path.join(log_dir, "errors.jsonl"),
        cfg=ErrorReporterConfig(include_tracebacks=bool(args.debug_errors)),
        logger=logger,
    )

    password = getpass.getpass("Password for the default administrator (ID 0): ")
    try:
        directory = build_directory(password, cfg=cfg, logger=logger)
    except HRError as e:
        print(e.user_message, file=sys.stderr)
        return 2

    shell = DirectoryShell(directory=directory, error_reporter=reporter, config=config)
    logger.info("HR directory ready. Type 'help' for commands, 'exit' to quit.")
    print("HR directory ready. Type 'help' for commands, 'exit' to quit.")

    while True:
        try:
            text = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not text:
            continue
        res = shell.handle(text)
        if res.reply:
            print(res.reply)
        if res.exit:
            break
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
