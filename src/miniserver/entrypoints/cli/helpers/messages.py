"""Terminal message helpers for the miniserver CLI.

Messages go to stderr so stdout carries only the relayed runtime output.
"""

import click

CAUTION = ("⚠️", "[!]")  # pragma: no mutate
ERROR = ("❌", "[X]")  # pragma: no mutate


def _supports_character(character: str) -> bool:
    """Return True if *character* can be encoded on stderr."""
    stream = click.get_text_stream("stderr")  # pragma: no mutate
    encoding = getattr(stream, "encoding", None) or "ascii"
    try:
        character.encode(encoding)
    except UnicodeEncodeError:
        return False
    return True


def glyph(pair: tuple[str, str]) -> str:
    """Pick the emoji of an ``(emoji, fallback)`` pair when stderr can encode it."""
    emoji, fallback = pair
    return emoji if _supports_character(emoji) else fallback


def warn(msg: str) -> None:
    """Emit a yellow, bold warning line to **stderr**."""
    click.secho(f"{glyph(CAUTION)}  {msg}", fg="yellow", bold=True, err=True)


def error(msg: str) -> None:
    """Emit a red, bold error line to **stderr**.

    Example:
        ``❌  Compilation failed with exit code 1.``
    """
    click.secho(f"{glyph(ERROR)}  {msg}", fg="red", bold=True, err=True)
