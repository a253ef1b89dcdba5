"""Field-name casing helpers."""

import re
from functools import lru_cache
from typing import List

# Anything that is not a letter or digit separates words
_SEPARATOR_RE = re.compile(r"[\W_]+")


def split_words(name: str) -> List[str]:
    """Split an identifier on underscores, dashes, spaces and case changes."""
    words: List[str] = []
    for chunk in _SEPARATOR_RE.split(name):
        if chunk:
            words.extend(_split_case(chunk))
    return words


def _split_case(chunk: str) -> List[str]:
    # "fooBar" -> foo|Bar, "HTTPServer" -> HTTP|Server, "Élan" stays whole
    words = []
    start = 0
    for index in range(1, len(chunk)):
        char = chunk[index]
        if not char.isupper():
            continue
        following = chunk[index + 1 : index + 2]
        if not chunk[index - 1].isupper() or following.islower():
            words.append(chunk[start:index])
            start = index
    words.append(chunk[start:])
    return words


@lru_cache(maxsize=1024)
def to_lower_camel(name: str) -> str:
    """
    Convert an identifier to lowerCamelCase.

    >>> to_lower_camel("first_name")
    'firstName'
    >>> to_lower_camel("DummyStupidField")
    'dummyStupidField'
    >>> to_lower_camel("HTTPServer")
    'httpServer'
    >>> to_lower_camel("prénom_usuel")
    'prénomUsuel'
    """
    words = split_words(name)
    if not words:
        return name
    head, *tail = words
    return head.lower() + "".join(word[0].upper() + word[1:].lower() for word in tail)
