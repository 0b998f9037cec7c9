"""
Filename sanitization for pluginrepo.

Every string that ends up in a filesystem path (tag names, asset names,
plugin ids, paths read back from persisted JSON) goes through sanitize()
first. It is the only guard against path traversal and reserved characters.
"""

MAX_NAME_LENGTH = 255
PLACEHOLDER = "unnamed_file"

_SAFE_PUNCTUATION = frozenset(b".-_ ")


def _is_safe_byte(byte: int) -> bool:
    """ASCII alphanumerics plus '.', '-', '_' and space."""
    if byte >= 0x80:
        return False
    return chr(byte).isalnum() or byte in _SAFE_PUNCTUATION


def sanitize(raw: str) -> str:
    """
    Normalize an untrusted string into a filesystem-safe token.

    Works on the UTF-8 bytes of the input, so a multi-byte character turns
    into several underscores. Never fails and never returns an empty string.

    Args:
        raw: Untrusted input (tag name, asset name, archive entry, ...)

    Returns:
        Token of at most 255 characters containing no path separators

    Examples:
        >>> sanitize("v1.2.0")
        'v1.2.0'
        >>> sanitize("../../etc/passwd")
        '.._.._etc_passwd'
        >>> sanitize("")
        'unnamed_file'
    """
    if raw is None:
        return PLACEHOLDER

    data = str(raw).encode("utf-8", errors="surrogatepass")
    safe = "".join(chr(b) if _is_safe_byte(b) else "_" for b in data)

    if len(safe) > MAX_NAME_LENGTH:
        dot_pos = safe.rfind(".")
        extension = safe[dot_pos:] if dot_pos > 0 else ""
        if extension and len(extension) < MAX_NAME_LENGTH:
            stem = safe[:dot_pos][:MAX_NAME_LENGTH - len(extension)]
            safe = stem + extension
        else:
            safe = safe[:MAX_NAME_LENGTH]

    # "." and ".." would resolve to the current or parent directory
    if not safe or not safe.strip("."):
        return PLACEHOLDER

    return safe
