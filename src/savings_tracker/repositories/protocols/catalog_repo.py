"""Asset and goal repository protocols."""

from typing import Protocol, Optional

from savings_tracker.domain.models import Asset, Goal


class AssetRepository(Protocol):
    """Interface for asset data access."""

    def create(self, asset: Asset) -> Asset:
        """Persist a new asset."""
        ...

    def get_by_id(self, asset_id: str) -> Optional[Asset]:
        """Retrieve asset by ID."""
        ...

    def get_by_name(self, name: str) -> Optional[Asset]:
        """Retrieve asset by name."""
        ...

    def list_all(self) -> list[Asset]:
        """List all assets."""
        ...


class GoalRepository(Protocol):
    """Interface for goal data access."""

    def create(self, goal: Goal) -> Goal:
        """Persist a new goal."""
        ...

    def get_by_id(self, goal_id: str) -> Optional[Goal]:
        """Retrieve goal by ID."""
        ...

    def get_by_name(self, name: str) -> Optional[Goal]:
        """Retrieve goal by name."""
        ...

    def list_all(self) -> list[Goal]:
        """List all goals."""
        ...
