"""
Cell value sanitization for untrusted spreadsheet input.

Every description and bank category string coming out of an uploaded file
goes through sanitize() before it is stored or matched against anything.
"""

import re

# Leading characters that make spreadsheet software evaluate a cell as a formula
FORMULA_PREFIXES = ("=", "+", "-", "@", "|")

_CONTROL_CHARS = re.compile(r"[\r\n\t\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_HTML_TAGS = re.compile(r"<[^>]*>?")
_SCRIPT_SCHEMES = re.compile(r"javascript:|vbscript:|data:text/html", re.IGNORECASE)
_EVENT_HANDLERS = re.compile(r"\bon\w+\s*=", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_SIGNED_NUMBER = re.compile(r"^[+-][\d.,]+$")


def sanitize(raw) -> str:
    """Return a storage-safe version of a cell value.

    Removes control characters (CR, LF, tab and the rest of C0), HTML tags,
    script URL schemes and inline event handlers, collapses whitespace, and
    strips formula-injection prefixes (= + - @ |). Plain signed numbers such
    as "-45.30" are left alone. Falsy input yields "".
    """
    if raw is None:
        return ""
    value = raw if isinstance(raw, str) else str(raw)
    if not value:
        return ""

    value = _CONTROL_CHARS.sub(" ", value)
    value = _HTML_TAGS.sub("", value)
    value = _SCRIPT_SCHEMES.sub("", value)
    value = _EVENT_HANDLERS.sub("", value)
    value = _WHITESPACE.sub(" ", value).strip()

    if _SIGNED_NUMBER.match(value):
        return value

    while value and value[0] in FORMULA_PREFIXES:
        value = value[1:].lstrip()
        if _SIGNED_NUMBER.match(value):
            break

    return value
