import random

DECLINE_PROBABILITY = 0.10


class SimulatedGateway:
    """Stand-in for a card processor: approves everything except a random share."""

    def __init__(self, decline_rate: float = DECLINE_PROBABILITY, rng: random.Random = None):
        if not 0.0 <= decline_rate <= 1.0:
            raise ValueError(f"decline_rate must be between 0 and 1, got {decline_rate}")
        self.decline_rate = decline_rate
        self.rng = rng or random.Random()

    def authorize(self) -> bool:
        return self.rng.random() >= self.decline_rate
