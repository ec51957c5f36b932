# model_selector.py
import logging
from typing import Dict, List, Optional, Sequence

import httpx
from google.genai import errors

logger = logging.getLogger(__name__)


class ModelSelector:
    """Ordered model candidates, most preferred first."""

    def __init__(self, candidates: Sequence[str], client=None):
        candidates = list(candidates)
        if not candidates:
            raise ValueError("at least one model candidate is required")
        if len(set(candidates)) != len(candidates):
            raise ValueError(f"duplicate model candidates: {candidates}")
        self._candidates = candidates
        self.client = client

    @property
    def candidates(self) -> List[str]:
        return list(self._candidates)

    @property
    def preferred(self) -> str:
        return self._candidates[0]

    def __len__(self) -> int:
        return len(self._candidates)

    def next_after(self, candidate: str) -> Optional[str]:
        try:
            index = self._candidates.index(candidate)
        except ValueError:
            return None
        if index + 1 < len(self._candidates):
            return self._candidates[index + 1]
        return None

    async def probe(self, candidate: str) -> bool:
        """Read-only existence check: GET models/{candidate}."""
        if self.client is None:
            raise RuntimeError("ModelSelector has no client to probe with")
        try:
            await self.client.aio.models.get(model=candidate)
        except errors.APIError as e:
            logger.info("✗ Model not available: %s (%s %s)", candidate, e.code, e.message)
            return False
        except (httpx.HTTPError, OSError) as e:
            logger.info("✗ Model not reachable: %s (%s)", candidate, e)
            return False
        logger.info("✓ Model available: %s", candidate)
        return True

    async def first_reachable(self) -> Optional[str]:
        for candidate in self._candidates:
            if await self.probe(candidate):
                return candidate
        return None

    async def probe_all(self) -> Dict[str, bool]:
        return {candidate: await self.probe(candidate) for candidate in self._candidates}
