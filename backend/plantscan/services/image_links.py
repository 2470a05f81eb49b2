"""
PlantScan Backend - ImageLinks Editor
=======================================

What:  Append/remove semantics for the PlantList.ImageLinks column.
How:   The column stores photo URLs joined by "," with no escaping. Inside
       the service the value is a LinkSet (ordered list of URLs); it is only
       joined back into text at the storage boundary.

Invariant:
    ImageLinks is empty/NULL or a ","-joined sequence of non-empty URLs,
    none of which contains ",". Empty segments found in stored text are
    dropped when parsing.

Semantics:
    append_link(None, "x")      -> "x"
    append_link("x", "y")       -> "x,y"
    append_link("x,y", "x")     -> "x,y,x"      (no deduplication)
    remove_link("x,y,x", "x")   -> "y"          (every exact match removed)
    remove_link("y", "z")       -> "y"          (no match is a no-op)
    remove_link(None, "x")      -> RecordNotFound
"""

from typing import Iterable, List, Optional

from plantscan.exceptions import RecordNotFound

DELIMITER = ","


class LinkSet:
    """Ordered, possibly repeating, sequence of image URLs."""

    def __init__(self, links: Iterable[str] = ()):
        self._links: List[str] = []
        for link in links:
            self._check(link)
            self._links.append(link)

    @staticmethod
    def _check(link: str) -> None:
        if not link:
            raise ValueError("Image link must not be empty")
        if DELIMITER in link:
            raise ValueError(f"Image link must not contain '{DELIMITER}': {link!r}")

    @classmethod
    def parse(cls, raw: Optional[str]) -> "LinkSet":
        """Deserialize a stored ImageLinks value; None and "" give an empty set."""
        if not raw:
            return cls()
        return cls(part for part in raw.split(DELIMITER) if part)

    def serialize(self) -> str:
        return DELIMITER.join(self._links)

    def append(self, link: str) -> "LinkSet":
        self._check(link)
        return LinkSet(self._links + [link])

    def remove(self, link: str) -> "LinkSet":
        """Drop every entry byte-for-byte equal to `link`; order is kept."""
        return LinkSet(existing for existing in self._links if existing != link)

    def __iter__(self):
        return iter(self._links)

    def __len__(self) -> int:
        return len(self._links)

    def __contains__(self, link: object) -> bool:
        return link in self._links

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LinkSet):
            return NotImplemented
        return self._links == other._links

    def __repr__(self) -> str:
        return f"LinkSet({self._links!r})"


def append_link(existing: Optional[str], new_url: str) -> str:
    """Return the stored value with `new_url` added at the end."""
    return LinkSet.parse(existing).append(new_url).serialize()


def remove_link(existing: Optional[str], url_to_remove: str) -> str:
    """
    Return the stored value without any entry equal to `url_to_remove`.

    Raises:
        RecordNotFound: `existing` is None, i.e. the caller has no record
                        to remove from.
    """
    if existing is None:
        raise RecordNotFound()
    return LinkSet.parse(existing).remove(url_to_remove).serialize()
