"""Split gate command strings into argument vectors.

Supports bare words, ``'single'`` and ``"double"`` quoted segments (quotes
stripped, contents taken literally) and backslash escapes outside quotes.
Pipes, redirects, subshells and expansions are not interpreted: a gate that
needs them should call a script.
"""

from __future__ import annotations

from sdlc_agent.errors import CommandParseError

QUOTES = {"'", '"'}


def tokenize(command: str) -> list[str]:
    tokens: list[str] = []
    current: list[str] = []
    # A quoted empty string ('') still produces a token.
    in_token = False
    quote: str | None = None
    index = 0
    length = len(command)

    while index < length:
        char = command[index]

        if quote is not None:
            if char == quote:
                quote = None
            else:
                current.append(char)
            index += 1
            continue

        if char == "\\":
            if index + 1 < length:
                current.append(command[index + 1])
                index += 2
            else:
                # trailing backslash is kept literally
                current.append(char)
                index += 1
            in_token = True
            continue

        if char in QUOTES:
            quote = char
            in_token = True
            index += 1
            continue

        if char.isspace():
            if in_token:
                tokens.append("".join(current))
                current = []
                in_token = False
            index += 1
            continue

        current.append(char)
        in_token = True
        index += 1

    if quote is not None:
        raise CommandParseError(
            f"Unterminated {quote} quote in command: {command}",
            quote=quote,
            command=command,
        )

    if in_token:
        tokens.append("".join(current))
    return tokens
