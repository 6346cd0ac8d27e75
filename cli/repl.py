"""Interactive prompt for uploading, fetching and abandoning files."""

import os
import sys
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from cli.commands import dispatch_command, get_client
from cli.constants import (
    COMMANDS,
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.parser import ParseError, parse_command
from cli.upload_client import UploadClient
from common.logging_config import get_logger

logger = get_logger(__name__)


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_banner(server_url: str) -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(f"Server: {server_url}")
    print(WELCOME_HELP)


def run_line(line: str, client: UploadClient) -> Optional[str]:
    """
    Run one non-builtin line against the server.

    Returns:
        Text to print, or None for a blank line
    """
    if not line.strip():
        return None

    try:
        cmd_obj = parse_command(line)
    except ParseError as e:
        return f"Error: {e}"

    try:
        return dispatch_command(cmd_obj, client)
    except KeyboardInterrupt:
        logger.info(f"Interrupted: {line.strip()}")
        return "Cancelled. Staged chunks stay on the server until merged, abandoned or reaped."


def repl_loop(client: Optional[UploadClient] = None) -> None:
    """Start interactive REPL with prompt_toolkit."""
    client = client or get_client()
    server_url = client.config.get_base_url()
    session: PromptSession = PromptSession(
        completer=WordCompleter(COMMANDS, ignore_case=True),
        history=InMemoryHistory(),
        style=STYLE,
    )

    clear_screen()
    show_banner(server_url)

    while True:
        try:
            user_input = session.prompt([("class:prompt", PROMPT_TEXT)])
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break

        command = user_input.strip()
        if command == "exit":
            print("Goodbye!")
            break
        if command == "help":
            print(HELP_TEXT)
            continue
        if command == "clear":
            clear_screen()
            show_banner(server_url)
            continue

        output = run_line(user_input, client)
        if output is not None:
            print(output)
