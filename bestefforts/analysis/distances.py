"""
Target Distances

Canonical race distances tracked for best efforts, plus parsing of
user-defined custom distances such as "7K", "1200m" or "3000".
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True)
class TargetDistance:
    """A distance for which best-effort times are tracked"""

    label: str
    meters: float


# Ordered by meters ascending
STANDARD_DISTANCES: List[TargetDistance] = [
    TargetDistance("100m", 100),
    TargetDistance("200m", 200),
    TargetDistance("400m", 400),
    TargetDistance("800m", 800),
    TargetDistance("1K", 1000),
    TargetDistance("1.5K", 1500),
    TargetDistance("2K", 2000),
    TargetDistance("3K", 3000),
    TargetDistance("5K", 5000),
    TargetDistance("10K", 10000),
    TargetDistance("15K", 15000),
    TargetDistance("21.1K", 21097.5),  # Half marathon
    TargetDistance("42.2K", 42195),  # Marathon
]


def _format_number(value: float) -> str:
    """Render 5.0 as "5" and 1.5 as "1.5" """
    return f"{value:g}"


def parse_custom_distance(value: Optional[str]) -> Optional[TargetDistance]:
    """
    Parse a user-entered distance string.

    Accepted forms:
    - "5K", "10k" -> kilometres (label upper-cased)
    - "5000m", "3000M" -> meters (label lower-cased)
    - "1200" -> meters, labelled "1200m"

    Args:
        value: Raw distance string

    Returns:
        TargetDistance, or None if the string is not a positive distance
    """
    if not value:
        return None

    trimmed = value.strip().lower()

    try:
        if trimmed.endswith("k"):
            number = float(trimmed[:-1])
            label = trimmed.upper()
            meters = number * 1000
        elif trimmed.endswith("m"):
            number = float(trimmed[:-1])
            label = trimmed
            meters = number
        else:
            number = float(trimmed)
            label = f"{_format_number(number)}m"
            meters = number
    except ValueError:
        return None

    if not meters > 0 or meters == float("inf"):
        return None

    return TargetDistance(label, meters)


class DistanceCatalog:
    """
    Ordered set of target distances.

    Starts from the standard distances and accepts user-defined ones.
    Labels and meter values are unique across the catalog.
    """

    def __init__(self, custom: Optional[Iterable[TargetDistance]] = None):
        self._by_label: Dict[str, TargetDistance] = {
            d.label: d for d in STANDARD_DISTANCES
        }
        for distance in custom or []:
            self.add(distance)

    def add(self, distance: TargetDistance) -> TargetDistance:
        """Register a custom distance, rejecting duplicate labels or meters"""
        if distance.meters <= 0:
            raise ValueError(f"Distance must be positive: {distance.label}")
        if distance.label in self._by_label:
            raise ValueError(f"Duplicate distance label: {distance.label}")
        for existing in self._by_label.values():
            if existing.meters == distance.meters:
                raise ValueError(
                    f"Distance {distance.label} duplicates {existing.label} "
                    f"({existing.meters}m)"
                )
        self._by_label[distance.label] = distance
        return distance

    def add_custom(self, value: str) -> TargetDistance:
        """
        Parse and register a custom distance string.

        A string naming a distance already in the catalog ("5K", "5000m")
        returns that entry instead of adding a duplicate.

        Raises:
            ValueError: value is not a positive distance
        """
        resolved = self.resolve(value)
        if resolved is None:
            raise ValueError(f"Invalid custom distance: {value!r}")
        if resolved.label in self._by_label:
            return self._by_label[resolved.label]
        return self.add(resolved)

    def get(self, label: str) -> Optional[TargetDistance]:
        return self._by_label.get(label)

    def resolve(self, label: str) -> Optional[TargetDistance]:
        """
        Look up a label, falling back to parsing it as a custom distance.

        Returns None when the label is neither registered nor parseable.
        """
        known = self.get(label)
        if known is not None:
            return known
        parsed = parse_custom_distance(label)
        if parsed is None:
            return None
        # "5000m" typed by a user still matches the registered "5K"
        known = self.get(parsed.label)
        if known is None:
            known = next((d for d in self if d.meters == parsed.meters), None)
        return known or parsed

    @property
    def distances(self) -> List[TargetDistance]:
        return sorted(self._by_label.values(), key=lambda d: d.meters)

    @property
    def labels(self) -> List[str]:
        return [d.label for d in self.distances]

    def __iter__(self):
        return iter(self.distances)

    def __len__(self) -> int:
        return len(self._by_label)

    def __contains__(self, label: object) -> bool:
        return label in self._by_label
