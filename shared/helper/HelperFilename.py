import re

_FORBIDDEN = re.compile(r'[/\\:*?"<>|]')
_WHITESPACE = re.compile(r"\s+")
_UNDERSCORES = re.compile(r"_+")


def sanitize_filename(filename: str) -> str:
    """Make a filename safe for the filesystem and stable as a vector-store source key.

    Forbidden characters (/ \\ : * ? " < > |) and whitespace runs become "_",
    repeated underscores collapse to one.

    Example:
        "Report Q1/2024.pdf" -> "Report_Q1_2024.pdf"
    """
    sanitized = _FORBIDDEN.sub("_", filename)
    sanitized = _WHITESPACE.sub("_", sanitized)
    sanitized = _UNDERSCORES.sub("_", sanitized)
    return sanitized.strip()
