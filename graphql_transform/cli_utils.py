"""
CLI utilities for stamping generated files with the command that produced them.
"""

from pathlib import Path

import click

PROGRAM_NAME = "graphql_transform"


def _display_value(value) -> str:
    # Existing paths are shown by name only, so stamps do not leak local directories
    if isinstance(value, (str, Path)) and Path(str(value)).exists():
        return Path(str(value)).name
    return str(value)


def reconstruct_command_line(click_command: click.Command) -> str:
    """
    Rebuild the invoking command line from the active Click context.

    Arguments come first, then options that differ from their default.

    Returns:
        e.g. `graphql_transform build project --auth-role AuthRole`, or just
        the program name outside of a Click invocation
    """
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return PROGRAM_NAME

    words = [PROGRAM_NAME]
    if ctx.parent is not None and ctx.info_name:
        words.append(ctx.info_name)

    options = []
    for param in click_command.params:
        value = ctx.params.get(param.name)
        if not value:
            continue
        if isinstance(param, click.Argument):
            words.append(_display_value(value))
        elif value != param.default:
            flag = param.opts[0]
            options.extend([flag] if param.is_flag else [flag, _display_value(value)])

    return " ".join(words + options)
