from dataclasses import dataclass
from typing import Dict, Set


@dataclass(frozen=True)
class ScoreResult:
    exact_matches: int
    value_matches: int
    misses: int

    @property
    def solved(self) -> bool:
        return self.value_matches == 0 and self.misses == 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'exactMatches': self.exact_matches,
            'valueMatchesWrongPosition': self.value_matches,
            'misses': self.misses,
        }


def evaluate(guess: str, secret: str) -> ScoreResult:
    """Score a guess against the secret code.

    Exact matches are counted first and their positions consumed. Each
    remaining guess digit then claims the leftmost unconsumed secret
    position holding the same digit, so no secret digit is counted twice.
    Input is expected to be well formed (same length, digits only).
    """
    used: Set[int] = {i for i, digit in enumerate(guess) if digit == secret[i]}
    exact = len(used)
    value = 0
    misses = 0

    for i, digit in enumerate(guess):
        if digit == secret[i]:
            continue
        match = next(
            (j for j, s in enumerate(secret) if j not in used and s == digit),
            None,
        )
        if match is None:
            misses += 1
        else:
            value += 1
            used.add(match)

    return ScoreResult(exact, value, misses)
