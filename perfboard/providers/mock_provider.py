"""Mock provider for dry-run mode: no API calls, strict JSON responses."""

from __future__ import annotations

import json
import random
from typing import List

from perfboard.providers.base import BaseProvider

_SUMMARY_POOL = [
    "Investimento estável em relação ao período anterior.",
    "CPA dentro da média das últimas semanas.",
    "Volume de compras acompanhou o investimento.",
    "CTR levemente acima do benchmark.",
    "Receita cresceu com ROAS consistente.",
]

_ACTION_POOL = [
    "Pause criativos com CTR abaixo de 1%.",
    "Aumente a verba nos dias de semana com menor CPA.",
    "Teste novos públicos nas campanhas de instalação.",
    "Revise lances nos dias com CPA acima da média.",
    "Concentre verba nas promoções com melhor ROAS.",
]


class MockProvider(BaseProvider):
    """Deterministic-ish mock that returns a valid summary JSON object.

    Lets the summary parser be exercised in dry-run mode without a key.
    """

    def __init__(self, seed: int = 42, **kwargs):
        """Initialise with an optional RNG seed.

        Extra keyword arguments (e.g. a ``ProviderConfig``) are silently
        ignored so that callers can pass the same kwargs used for the real
        provider without crashing.
        """
        if not isinstance(seed, int):
            seed = 42
        self._rng = random.Random(seed)
        self._call_log: List[str] = []

    def generate(self, prompt: str, system: str = "", max_tokens: int = 1024) -> str:
        self._call_log.append(prompt)
        return json.dumps(
            {
                "executive_summary": self._rng.sample(_SUMMARY_POOL, 3),
                "action_plan": self._rng.sample(_ACTION_POOL, 3),
                "risks": ["Métricas estáveis"],
            },
            ensure_ascii=False,
        )
