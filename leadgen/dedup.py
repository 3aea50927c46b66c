"""
Per-run deduplication against venues already stored for a campaign.
"""

from typing import Iterable, List, Set, Tuple
import logging

from .normalize import Candidate

logger = logging.getLogger(__name__)


class Deduper:
    """
    Tracks external ids known to a single search run.

    Seeded from the campaign's stored venues; ids accepted during the run are
    folded back in so a venue found under one rule is not inserted again
    under a later rule. Not shared between runs or threads.
    """

    def __init__(self, known_ids: Iterable[str] = ()):
        self.known_ids: Set[str] = {i for i in known_ids if i}

    def is_new(self, external_id: str) -> bool:
        return bool(external_id) and external_id not in self.known_ids

    def mark_seen(self, external_id: str) -> None:
        if external_id:
            self.known_ids.add(external_id)

    def filter_new(self, candidates: List[Candidate]) -> Tuple[List[Candidate], int]:
        """
        Split candidates into unseen ones and a duplicate count.

        Repeats inside the same list count as duplicates too. Ids are not
        marked seen here; callers mark them once the insert succeeds.
        """
        fresh: List[Candidate] = []
        batch_ids: Set[str] = set()
        for candidate in candidates:
            cid = candidate.external_id
            if self.is_new(cid) and cid not in batch_ids:
                batch_ids.add(cid)
                fresh.append(candidate)

        duplicates = len(candidates) - len(fresh)
        if duplicates > 0:
            logger.info(f"Skipped {duplicates} already known venues")
        return fresh, duplicates

    def __len__(self) -> int:
        return len(self.known_ids)
