import re

# mention markup written by the story editor: @[Display Name](user:abc123)
MENTION_MARKUP = re.compile(r"@\[(?P<display>[^\]]+)\]\((?P<type>[^:)]+):(?P<id>[^)]+)\)")
ELLIPSIS = "..."


def trim_with_ellipses(text, length):
    """Cut ``text`` to at most ``length`` characters, ending with '...' when cut."""
    if text is None:
        return ""
    if len(text) <= length:
        return text
    if length <= len(ELLIPSIS):
        return text[:length]
    return text[: length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def compile_markup(text):
    """Turn editor markup into plain text (mentions become '@Display Name')."""
    if not text:
        return ""
    return MENTION_MARKUP.sub(lambda m: f"@{m.group('display')}", text).strip()


def possessive(name):
    return f"{name}'" if name.endswith("s") else f"{name}'s"


def comma_list_of_names_plain(users, reader_id=None):
    """'Ann Lee, you and Bob Ray' style list; the reader is called 'you'."""
    names = ["you" if u.id == reader_id else u.full_name for u in users]
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} and {names[-1]}"
