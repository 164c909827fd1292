"""
Naming helpers shared by the built-in transformers.
"""

import re

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z][a-z]*|[0-9]+")

_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def to_upper(text: str) -> str:
    """Uppercase the first character: "todo" -> "Todo"."""
    return text[:1].upper() + text[1:]


def plural(word: str) -> str:
    """Naive English plural, enough for generated field names.

    Examples:
        "Todo" -> "Todos"
        "Category" -> "Categories"
        "Address" -> "Addresses"
    """
    if not word:
        return word
    if word.endswith("y") and word[-2:-1].lower() not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def logical_id(*parts: str) -> str:
    """Build a resource name from parts, keeping only alphanumeric characters.

    Examples:
        ("Todo", "Table") -> "TodoTable"
        ("blog_post", "DataSource") -> "BlogPostDataSource"
    """
    words = []
    for part in parts:
        words.extend(_WORD_PATTERN.findall(part.replace("_", " ").replace("-", " ")))
    name = "".join(to_upper(word) for word in words if word)
    return _NON_ALPHANUMERIC.sub("", name)
