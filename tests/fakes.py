# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple


@dataclass
class FakeTextGenerator:
    """
    Deterministic text generator for unit tests.

    - Captures (prompt, system_prompt) pairs for assertions
    - Returns ``text`` or raises ``error`` when set
    """

    text: str = "Small steps still move you forward."
    error: Optional[Exception] = None
    calls: List[Tuple[str, str]] = field(default_factory=list)

    async def generate(self, prompt: str, system_prompt: str) -> str:
        self.calls.append((prompt, system_prompt))
        if self.error is not None:
            raise self.error
        return self.text


class IdSequence:
    """id_factory that hands out the given ids in order and counts calls."""

    def __init__(self, ids: Iterable[str]):
        self._ids = list(ids)
        self.calls = 0

    def __call__(self) -> str:
        value = self._ids[min(self.calls, len(self._ids) - 1)]
        self.calls += 1
        return value
