from __future__ import annotations


def remove_comments(text: str) -> str:
    """
    Strip block comments from stylesheet text.

    Kept: comments opening with `/*!`, and the IE/Mac hack pair (a comment
    ending in `\\*/` together with the comment that follows it). An ordinary
    comment swallows one directly following line break; an unterminated one
    runs to the end of the text.
    """
    start = 0
    in_hack = False

    while True:
        start = text.find("/*", start)
        if start < 0:
            break

        preserve = len(text) > start + 2 and text[start + 2] == "!"
        end = text.find("*/", start + 2)

        if end < 0:
            if preserve:
                break
            text = text[:start]
            break

        if text[end - 1] == "\\":
            start = end + 2
            in_hack = True
        elif in_hack:
            start = end + 2
            in_hack = False
        elif not preserve:
            after = text[end + 2:end + 4]
            if after in ("\r\n", "\n\r"):
                end += 2
            elif after in ("\r\r", "\n\n"):
                end += 1
            text = text[:start] + text[end + 2:]
        else:
            start = end + 2

    return text
