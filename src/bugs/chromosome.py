from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .rng import DeterministicRng


@dataclass(slots=True)
class Chromosome:
    genes: List[float]

    def __post_init__(self) -> None:
        self.genes = [float(gene) for gene in self.genes]

    @classmethod
    def new_random(cls, length: int, gene_range: Tuple[float, float], rng: DeterministicRng) -> "Chromosome":
        low, high = gene_range
        return cls([rng.next_range(low, high) for _ in range(length)])

    def __len__(self) -> int:
        return len(self.genes)

    def mutated(self, delta_range: Tuple[float, float], chance: float, rng: DeterministicRng) -> "Chromosome":
        """Copy with each gene nudged by ``±uniform(delta_range)`` with probability ``chance``."""
        low, high = delta_range
        genes = []
        for gene in self.genes:
            if rng.next_bool(chance):
                negative = rng.next_bool(0.5)
                delta = rng.next_range(low, high)
                gene = gene - delta if negative else gene + delta
            genes.append(gene)
        return Chromosome(genes)
