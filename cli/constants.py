"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "fetch", "abandon", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E9E6B bold",
        "command": "#0088ff bold",
    }
)

GREEN = "\033[38;2;46;158;107m"
RESET = "\033[0m"

LOGO = f"""{GREEN}
  ============================
   C H U N K Y A R D
  ============================
{RESET}"""

WELCOME_TITLE = "Chunkyard chunked upload client"
WELCOME_HELP = "Type 'help' for available commands, 'exit' to quit.\n"

PROMPT_TEXT = "chunkyard> "

HELP_TEXT = """
Commands:
  upload <path> [name | --name <name>] [--id <upload-id>] [--shuffle]
      Split a local file into chunks, upload them in parallel and merge them.
      --shuffle sends chunks in random order.
  fetch <name> [output-path | -o <output-path>]
      Download a merged file (default output: ./<name>).
  abandon <upload-id>
      Discard the staged chunks of an unfinished upload.
  clear   Clear the screen
  help    Show this help
  exit    Quit
"""
