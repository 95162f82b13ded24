"""The two sanctioned ways of moving energy between resource pools.

Every pool (food energy, bug energy, baby charge, heat) is a ``NoNeg``. Callers
re-bind the pools from the returned outcome, e.g.::

    outcome = transfer_energy(bug.energy_level, bug.heat_level, delta, bug.heat_capacity)
    bug.energy_level, bug.heat_level = outcome.source, outcome.destination
"""

from __future__ import annotations

from typing import NamedTuple

from .noneg import NoNeg


class TransferOutcome(NamedTuple):
    source: NoNeg
    destination: NoNeg
    completely_drained: bool


class DrainOutcome(NamedTuple):
    source: NoNeg
    completely_drained: bool


def transfer_energy(source: NoNeg, destination: NoNeg, delta: NoNeg, capacity: NoNeg) -> TransferOutcome:
    """Move up to ``delta`` from ``source`` into ``destination`` without overfilling it."""
    available = source.unwrap()
    free = max(capacity.unwrap() - destination.unwrap(), 0.0)
    amount = min(delta.unwrap(), available, free)

    remaining = NoNeg(available - amount)
    filled = destination.unwrap() + amount
    if filled > capacity.unwrap():
        filled = max(capacity.unwrap(), destination.unwrap())
    return TransferOutcome(remaining, NoNeg(filled), remaining.unwrap() == 0.0)


def drain_energy(source: NoNeg, delta: NoNeg) -> DrainOutcome:
    amount = min(delta.unwrap(), source.unwrap())
    remaining = NoNeg(source.unwrap() - amount)
    return DrainOutcome(remaining, remaining.unwrap() == 0.0)
