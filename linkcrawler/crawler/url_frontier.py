"""
Frontier of every URL admitted during a crawl.
"""

import logging
from typing import Dict, Iterator, Optional, Sequence, Tuple

from .url_normalizer import URL


class URLFrontier:
    """
    Insertion-ordered record of all URLs ever admitted for fetching.

    Each URL maps to the raw links of the page that discovered it (empty for
    the seed). A URL, once present, is never admitted again. The frontier
    is owned by the orchestrator loop and is not safe for concurrent use.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._seen: Dict[URL, Tuple[str, ...]] = {}

    def add(self, url: URL, discovered_links: Sequence[str] = ()) -> bool:
        """
        Admit a URL.

        Returns True if the URL was new, False if it had already been seen.
        """
        if url in self._seen:
            return False
        self._seen[url] = tuple(discovered_links)
        self.logger.debug(f"Added URL to frontier: {url}")
        return True

    def links_for(self, url: URL) -> Optional[Tuple[str, ...]]:
        return self._seen.get(url)

    def __contains__(self, url: URL) -> bool:
        return url in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __iter__(self) -> Iterator[URL]:
        return iter(self._seen)

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        return {
            'total_seen': len(self._seen),
            'total_hosts': len({url.host for url in self._seen}),
        }
