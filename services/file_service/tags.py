# services/file_service/tags.py
import re
from typing import Iterable, List, Optional

_SEPARATORS = re.compile(r"[\s,]+")


def normalize(raw: Optional[str]) -> List[str]:
    """
    Splits free-text tag input on whitespace and commas and lower-cases each token.
    Empty tokens are dropped; order and duplicates are kept as given.
    """
    if not raw:
        return []
    return [token for token in _SEPARATORS.split(raw.lower()) if token]


def to_tag_string(tokens: Iterable[str]) -> str:
    return " ".join(tokens)
