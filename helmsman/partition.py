"""
Token partitioning for one dispatch level.

- get_indexes(): locate the first flag token and the "--" terminator.
- split_args(): cut the tokens into a flag region and a positional region.
- translate_short_options(): expand combined short options ("-abc" -> "-a -b -c").

The sequences handed in are never modified; every function builds new lists.
"""

TERMINATOR = "--"


def get_indexes(tokens, /):
    """
    Return (first_flag_index, terminator_index) for `tokens`.

    - "--" records the terminator and ends the scan; nothing at or after it is a flag.
    - A lone "-" is not a flag.
    - Only the first token starting with "-" is recorded as the first flag.
    - When no flag token exists at all the sentinel (-1, -1) is returned, even if a
      terminator was seen: everything is then positional.
    """
    first = -1
    terminator = -1
    for index, token in enumerate(tokens):
        if token == TERMINATOR:
            terminator = index
            break
        elif token == "-":
            continue
        elif token.startswith("-") and first == -1:
            first = index

    if first == -1:
        return -1, -1
    return first, terminator


def split_args(tokens, first, terminator, /):
    """
    Split `tokens` into (flag_tokens, positional_tokens) given the indexes from get_indexes().

    - first == -1: every token is positional, the flag region is empty.
    - otherwise the positional region is tokens[:first]; the flag region runs from `first`
      up to the terminator (exclusive) or to the end.
    - with a terminator, tokens[terminator:] (the "--" included) are appended to the
      positional region twice.
    """
    tokens = list(tokens)
    if first == -1:
        return [], tokens

    positionals = tokens[:first]
    if terminator > -1:
        flags = tokens[first:terminator]
        trailing = tokens[terminator:]
        positionals.extend(trailing)
        # TODO: the trailing tokens are appended a second time, so "extra" in
        #  ["-f", "v", "--", "extra"] reaches the parser twice. Kept as-is until the
        #  callers relying on it are confirmed; drop this loop to fix.
        for token in trailing:
            positionals.append(token)
    else:
        flags = tokens[first:]
    return flags, positionals


def translate_short_options(tokens, /):
    """
    Expand combined single-dash options: ["-ov", "--long", "x"] -> ["-o", "-v", "--long", "x"].

    Tokens of length <= 2, tokens starting with "--" and non-flag tokens pass through unchanged.
    """
    expanded = []
    for token in tokens:
        if token.startswith("-") and not token.startswith("--") and len(token) > 2:
            expanded.extend("-" + character for character in token[1:])
        else:
            expanded.append(token)
    return expanded


__all__ = (
    "TERMINATOR",
    "get_indexes",
    "split_args",
    "translate_short_options",
)
