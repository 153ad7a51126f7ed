"""
Decoder for the ``key=value`` text blocks RETS servers put inside
RETS-RESPONSE, most notably the capability list returned by Login.
"""

from typing import Dict, Optional, Tuple


def decode_line(line: str) -> Tuple[str, Optional[str]]:
    """
    Split ``line`` on the first ``=``.

    A line without ``=`` yields ``(line, None)``, which is different
    from ``"key="`` yielding ``("key", "")``.
    """
    key, sep, value = line.partition("=")
    if not sep:
        return line.strip(), None
    return key.strip(), value.strip()


def decode_block(text: Optional[str]) -> Dict[str, Optional[str]]:
    """
    Decode a newline separated block of ``key=value`` lines.

    Blank lines are skipped, and the last occurrence of a key wins.
    """
    result: Dict[str, Optional[str]] = {}
    if not text:
        return result
    for line in text.splitlines():
        if not line.strip():
            continue
        key, value = decode_line(line)
        result[key] = value
    return result
