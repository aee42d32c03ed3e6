"""Recognition of the textual markers Claude Code embeds in user messages.

The markers are literal tags written by the tool (slash commands, ``!``
shell commands, IDE notifications); they are matched as-is.
"""

from __future__ import annotations

import re

from ach.data.turn_builder import UserText
from ach.models import CommandInfo

COMMAND_MESSAGE_TAG = "<command-message>"
COMMAND_ARGS_RE = re.compile(r"<command-args>([\s\S]*?)</command-args>")
COMMAND_NAME_RE = re.compile(r"<command-name>([\s\S]*?)</command-name>")
COMMAND_MESSAGE_TAG_RE = re.compile(r"<command-message>[\s\S]*?</command-message>")
COMMAND_NAME_TAG_RE = re.compile(r"<command-name>[\s\S]*?</command-name>")

BASH_INPUT_RE = re.compile(r"<bash-input>([\s\S]*?)</bash-input>")
BASH_STDOUT_RE = re.compile(r"<bash-stdout>([\s\S]*?)</bash-stdout>")
BASH_STDERR_RE = re.compile(r"<bash-stderr>([\s\S]*?)</bash-stderr>")
IDE_OPENED_FILE_RE = re.compile(
    r"<ide_opened_file>[\s\S]*?opened the file (.*?) in the IDE[\s\S]*?</ide_opened_file>"
)
STATUS_RE = re.compile(r"^\[.+\]$")

SKIPPED_PREFIXES = (
    "<local-command",
    "<command-name",
    "<task-notification",
    "<system-reminder",
)
_INTERNAL_PREFIXES = ("<local-command", "<command-name")


def parse_command_message(text: str) -> CommandInfo | None:
    """Extract name and args from a slash-command wrapper, if any.

    Example input::

        <command-message>review</command-message>
        <command-name>/review</command-name>
        <command-args>src/</command-args>
    """
    if COMMAND_MESSAGE_TAG not in text:
        return None
    name_match = COMMAND_NAME_RE.search(text)
    args_match = COMMAND_ARGS_RE.search(text)
    name = name_match.group(1).strip() if name_match else ""
    args = args_match.group(1).strip() if args_match else ""
    if not name and not args:
        return None
    return CommandInfo(name=name, args=args)


def clean_command_message(text: str) -> str:
    """Reduce a slash-command wrapper to what the user typed, for previews."""
    if COMMAND_MESSAGE_TAG not in text:
        return text
    args_match = COMMAND_ARGS_RE.search(text)
    if args_match and args_match.group(1):
        return args_match.group(1).strip()
    name_match = COMMAND_NAME_RE.search(text)
    if name_match and name_match.group(1):
        return name_match.group(1).strip()
    return COMMAND_NAME_TAG_RE.sub("", COMMAND_MESSAGE_TAG_RE.sub("", text)).strip()


def is_status_line(text: str) -> bool:
    """Status notices such as ``[Request interrupted by user]``."""
    return bool(STATUS_RE.match(text.strip()))


def is_internal_message(text: str) -> bool:
    return text.startswith(_INTERNAL_PREFIXES) or is_status_line(text)


def classify_user_text(text: str) -> UserText | None:
    """Map Claude Code user text to display fields; ``None`` means skip."""
    if match := BASH_INPUT_RE.search(text):
        return UserText(text="", bash_input=match.group(1))

    stdout = BASH_STDOUT_RE.search(text)
    stderr = BASH_STDERR_RE.search(text)
    if stdout or stderr:
        return UserText(
            text="",
            bash_stdout=stdout.group(1) if stdout else None,
            bash_stderr=stderr.group(1) if stderr else None,
        )

    if match := IDE_OPENED_FILE_RE.search(text):
        return UserText(text="", ide_opened_file=match.group(1))

    if text.startswith(SKIPPED_PREFIXES):
        return None

    command = parse_command_message(text)
    if command is not None:
        return UserText(text=command.args, command=command)
    return UserText(text=text)
