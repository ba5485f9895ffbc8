"""
Default word corpus and partition list.

The registry ships with these lists; an admin may replace them wholesale
through ``RegistrationRegistry.set_components``.
"""

from typing import Dict, Iterable

from .domain.entities import WordCorpus

ADJECTIVES = [
    "swift", "brave", "wise", "calm", "bold", "kind", "pure", "wild", "soft", "fierce",
    "bright", "dark", "warm", "cool", "fresh", "deep", "high", "low", "fast", "slow",
    "rich", "poor", "young", "old", "new", "rare", "fine", "true", "fair", "free",
    "safe", "sure", "real", "full", "open", "wide", "long", "short", "hard", "soft",
    "loud", "quiet", "sweet", "sour", "sharp", "dull", "smooth", "rough", "light", "heavy",
]

DESCRIPTORS = [
    "mighty", "noble", "royal", "sacred", "divine", "eternal", "cosmic", "stellar", "lunar", "solar",
    "oceanic", "mountain", "forest", "desert", "river", "valley", "crystal", "golden", "silver", "bronze",
    "ancient", "modern", "future", "past", "present", "timeless", "endless", "boundless", "limitless", "infinite",
    "mystic", "magic", "secret", "hidden", "sacred", "holy", "blessed", "cursed", "fabled", "legendary",
    "celestial", "terrestrial", "aquatic", "aerial", "ethereal", "astral", "cosmic", "planetary", "galactic", "universal",
]

NOUNS = [
    "dragon", "phoenix", "griffin", "unicorn", "pegasus", "serpent", "tiger", "lion", "eagle", "wolf",
    "bear", "deer", "fox", "owl", "hawk", "swan", "dove", "raven", "crane", "falcon",
    "star", "moon", "sun", "earth", "mars", "jupiter", "saturn", "neptune", "pluto", "comet",
    "ocean", "river", "lake", "sea", "bay", "gulf", "cove", "port", "harbor", "shore",
    "mountain", "valley", "forest", "desert", "plains", "cave", "cliff", "peak", "ridge", "summit",
]

PARTITIONS = [
    "Automata", "BOB", "Base", "Binary", "Cyber", "Ethernity", "Funki", "HashKey-Chain",
    "Ink", "Lisk", "Lyra-Chain", "Metal-L2", "Mint", "Mode", "OP", "Orderly",
    "Polynomial", "RACE", "Redstone", "Settlus", "Shape", "SnaxChain", "Soneium",
    "Superseed", "Swan-Chain", "Swellchain", "Unichain", "World-Chain", "Xterio-Chain",
    "Zora", "Arena-z",
]


def default_corpus() -> WordCorpus:
    """Build the corpus the registry starts with."""
    return WordCorpus(
        adjectives=tuple(ADJECTIVES),
        descriptors=tuple(DESCRIPTORS),
        nouns=tuple(NOUNS),
        partitions=tuple(PARTITIONS),
    )


def partition_key(partition: str) -> str:
    """Lower-case key for a partition, with dashes replaced by underscores."""
    return partition.lower().replace("-", "_")


def partition_key_map(partitions: Iterable[str] = PARTITIONS) -> Dict[str, str]:
    """Map each partition name to its key."""
    return {partition: partition_key(partition) for partition in partitions}
