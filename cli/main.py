"""CLI entry point.

With arguments, runs a single command (``chunkyard upload big.iso``);
without, starts the interactive REPL.
"""

import os
import sys

from common.logging_config import setup_logging
from cli.commands import dispatch_command
from cli.parser import ParseError, parse_tokens


def main() -> None:
    """Entry point for CLI."""
    args = sys.argv[1:]
    debug = '--debug' in args
    if debug:
        args.remove('--debug')

    log_level = 'DEBUG' if debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)

    if args:
        try:
            cmd_obj = parse_tokens(args)
        except ParseError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)
        print(dispatch_command(cmd_obj))
        return

    from cli.repl import repl_loop

    logger.info("CLI starting...")
    try:
        repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
