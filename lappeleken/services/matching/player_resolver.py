"""Player resolver for matching live-feed players to the session's player pool.

Pipeline:
1. Exact api_id lookup
2. Case-insensitive exact name
3. Normalized comparison (suffixes, accents, punctuation)
4. Fuzzy match (RapidFuzz WRatio), team-restricted first when the feed
   gives a team id
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from rapidfuzz import fuzz, process

from lappeleken.models.game import Player
from lappeleken.services.matching.name_normalizer import normalize

logger = logging.getLogger(__name__)

FUZZY_SCORE_CUTOFF = 90
TEAM_CONTEXT_SCORE_CUTOFF = 85


@dataclass
class PlayerMatch:
    """A resolved player and how it was found."""
    player: Player
    match_method: str  # 'api_id', 'exact_name', 'normalized', 'fuzzy', 'context'
    match_confidence: float


class PlayerResolver:
    """
    Resolve live-feed player references against a pool of players.

    Args:
        fuzzy: Enable the RapidFuzz steps. Exact steps always run.
    """

    def __init__(self, fuzzy: bool = True):
        self.fuzzy = fuzzy

    def resolve(
        self,
        pool: Sequence[Player],
        api_id: Optional[str] = None,
        name: Optional[str] = None,
        team_api_id: Optional[str] = None,
    ) -> Optional[PlayerMatch]:
        """
        Find the player in ``pool``.

        Args:
            pool: Candidate players (usually the session's available pool)
            api_id: External id from the feed
            name: Player name from the feed
            team_api_id: External team id from the feed, used as context

        Returns:
            PlayerMatch, or None if no unambiguous match exists
        """
        if api_id:
            player = next((p for p in pool if p.api_id == api_id), None)
            if player:
                return PlayerMatch(player, 'api_id', 1.0)

        if not name:
            logger.warning(f"No match found for player api_id={api_id} (no name to fall back on)")
            return None

        lowered = name.lower()
        player = next((p for p in pool if p.name.lower() == lowered), None)
        if player:
            return PlayerMatch(player, 'exact_name', 1.0)

        result = self._normalized_lookup(pool, name)
        if result:
            logger.debug(f"Normalized match found for {name}")
            return result

        if self.fuzzy:
            if team_api_id:
                team_pool = [p for p in pool if p.team.api_id == team_api_id]
                result = self._fuzzy_lookup(team_pool, name, TEAM_CONTEXT_SCORE_CUTOFF, 'context')
                if result:
                    logger.debug(f"Context match found for {name}")
                    return result

            result = self._fuzzy_lookup(pool, name, FUZZY_SCORE_CUTOFF, 'fuzzy')
            if result:
                logger.debug(f"Fuzzy match found for {name}")
                return result

        logger.warning(f"No match found for player: {name} (api_id={api_id})")
        return None

    def _normalized_lookup(self, pool: Sequence[Player], name: str) -> Optional[PlayerMatch]:
        target = normalize(name)
        matches = [p for p in pool if normalize(p.name) == target]
        if len(matches) == 1:
            return PlayerMatch(matches[0], 'normalized', 0.95)
        if len(matches) > 1:
            logger.warning(f"Ambiguous normalized match for {name}: {len(matches)} candidates")
        return None

    def _fuzzy_lookup(
        self, pool: Sequence[Player], name: str, cutoff: int, method: str
    ) -> Optional[PlayerMatch]:
        if not pool:
            return None

        choices = {index: normalize(p.name) for index, p in enumerate(pool)}
        results = process.extract(
            normalize(name), choices, scorer=fuzz.WRatio, score_cutoff=cutoff, limit=2
        )
        if not results:
            return None

        _, best_score, best_index = results[0]
        # Two candidates with the same score cannot be told apart
        if len(results) > 1 and results[1][1] == best_score:
            logger.warning(f"Ambiguous fuzzy match for {name} (score {best_score:.0f})")
            return None

        return PlayerMatch(pool[best_index], method, best_score / 100.0)
