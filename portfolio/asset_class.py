"""Asset classes and the per-holding split across them."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

from common.errors import InvalidConfiguration

# Float sums such as 0.1 + 0.2 + 0.7 land just above 1.0.
ALLOCATION_TOLERANCE = 1e-9


@dataclass(frozen=True, eq=False)
class AssetClass:
    """A named category with a target share of the whole portfolio.

    Compared by identity: two objects are the same class only if they are
    the same object built for the current run.
    """

    name: str
    target_allocation: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.target_allocation <= 1.0:
            raise InvalidConfiguration(
                f"Target allocation for {self.name} must be between 0 and 1, "
                f"got {self.target_allocation}"
            )

    def __str__(self) -> str:
        return self.name


class AssetClassGroup:
    """Ordered (AssetClass, percentage) splits for one holding."""

    def __init__(self, entries: Iterable[Tuple[AssetClass, float]]):
        self._entries: List[Tuple[AssetClass, float]] = []
        total = 0.0

        for entry in entries:
            try:
                asset_class, percentage = entry
            except (TypeError, ValueError):
                raise InvalidConfiguration(
                    f"Asset class entry must be an (asset class, percentage) pair, got {entry!r}"
                ) from None

            if asset_class is None:
                raise InvalidConfiguration("Asset class is not present")
            if percentage is None:
                raise InvalidConfiguration(f"Percentage is not present for {asset_class}")
            if self.has(asset_class):
                raise InvalidConfiguration(f"Duplicate asset class detected: {asset_class}")

            percentage = float(percentage)
            if not 0.0 <= percentage <= 1.0:
                raise InvalidConfiguration(
                    f"Percentage for {asset_class} must be between 0 and 1, got {percentage}"
                )

            self._entries.append((asset_class, percentage))
            total += percentage

        if total > 1.0 + ALLOCATION_TOLERANCE:
            raise InvalidConfiguration(
                f"Asset class percentages cannot be over 100%, got {total:.2%}"
            )

    @classmethod
    def single(cls, asset_class: AssetClass) -> "AssetClassGroup":
        """Group holding 100% in one class."""
        return cls([(asset_class, 1.0)])

    def percentage(self, asset_class: AssetClass) -> float:
        for candidate, percentage in self._entries:
            if candidate is asset_class:
                return percentage
        return 0.0

    def has(self, asset_class: AssetClass) -> bool:
        return any(candidate is asset_class for candidate, _ in self._entries)

    def asset_classes(self) -> List[AssetClass]:
        return [asset_class for asset_class, _ in self._entries]

    def __contains__(self, asset_class: object) -> bool:
        return isinstance(asset_class, AssetClass) and self.has(asset_class)

    def __iter__(self) -> Iterator[Tuple[AssetClass, float]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        parts = ", ".join(f"{ac.name}={pct:g}" for ac, pct in self._entries)
        return f"AssetClassGroup({parts})"
