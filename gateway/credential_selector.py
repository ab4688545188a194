"""Weighted credential selection.

Among active, non-excluded credentials, credential ``i`` is chosen with
probability ``weight_i / sum(weights)``. A weight of zero is never chosen.
"""

from __future__ import annotations

import random
from typing import Collection, Iterable

from contracts.errors import NoUsableCredentialError
from contracts.provider import Credential, CredentialOutcome, CredentialReport


class CredentialSelector:
    """Picks credentials by weight and turns call outcomes into reports.

    The random source is the only state and may be shared across requests.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.SystemRandom()

    def select(self, candidates: Iterable[Credential], exclude: Collection[str] = ()) -> Credential:
        usable = [c for c in candidates if c.active and c.weight > 0 and c.id not in exclude]
        total = sum(c.weight for c in usable)
        if not usable or total <= 0:
            raise NoUsableCredentialError("No usable credential available")

        point = self._rng.randrange(total)
        for credential in usable:
            point -= credential.weight
            if point < 0:
                return credential
        return usable[-1]

    @staticmethod
    def report(
        credential: Credential,
        outcome: CredentialOutcome,
        reason: str | None = None,
    ) -> CredentialReport:
        """Describe one use of ``credential``; the credential itself is untouched."""
        return CredentialReport(
            credential_id=credential.id,
            provider_id=credential.provider_id,
            outcome=outcome,
            reason=reason if outcome == CredentialOutcome.FAILURE else None,
        )
