"""Command parser for CLI input."""

import shlex
from typing import List

from cli.models import AbandonCommand, CommandRequest, FetchCommand, UploadCommand


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL or argv joined by the caller

    Returns:
        CommandRequest object (one of Upload/Fetch/Abandon)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    return parse_tokens(tokens)


def parse_tokens(tokens: List[str]) -> CommandRequest:
    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "fetch":
        return _parse_fetch(tokens[1:])
    elif command_name == "abandon":
        return _parse_abandon(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _take_value(args: List[str], i: int, option: str) -> str:
    if i + 1 >= len(args):
        raise ParseError(f"{option} requires a value")
    return args[i + 1]


def _parse_upload(args: List[str]) -> UploadCommand:
    """Parse 'upload <path> [name] [--name <name>] [--id <upload-id>] [--shuffle]' command."""
    positional = []
    file_name = None
    upload_id = None
    shuffle = False

    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--shuffle":
            shuffle = True
        elif arg == "--id":
            upload_id = _take_value(args, i, arg)
            i += 1
        elif arg == "--name":
            file_name = _take_value(args, i, arg)
            i += 1
        elif arg.startswith("-"):
            raise ParseError(f"Unknown option for upload: {arg}")
        else:
            positional.append(arg)
        i += 1

    if not positional:
        raise ParseError("upload requires a file path")
    if len(positional) > 2:
        raise ParseError("upload accepts at most 2 arguments: <path> [name]")
    if len(positional) == 2:
        if file_name is not None:
            raise ParseError("upload name given twice (positional and --name)")
        file_name = positional[1]

    return UploadCommand(path=positional[0], file_name=file_name, upload_id=upload_id, shuffle=shuffle)


def _parse_fetch(args: List[str]) -> FetchCommand:
    """Parse 'fetch <name> [output_path] [-o <output_path>]' command."""
    positional = []
    output_path = None

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-o", "--output"):
            output_path = _take_value(args, i, arg)
            i += 1
        elif arg.startswith("-"):
            raise ParseError(f"Unknown option for fetch: {arg}")
        else:
            positional.append(arg)
        i += 1

    if not 1 <= len(positional) <= 2:
        raise ParseError("fetch requires 1 or 2 arguments: <name> [output_path]")
    if len(positional) == 2:
        if output_path is not None:
            raise ParseError("fetch output path given twice (positional and -o)")
        output_path = positional[1]

    return FetchCommand(file_name=positional[0], output_path=output_path)


def _parse_abandon(args: List[str]) -> AbandonCommand:
    """Parse 'abandon <upload-id>' command."""
    if len(args) != 1:
        raise ParseError("abandon requires exactly 1 argument: <upload-id>")

    return AbandonCommand(upload_id=args[0])
