from dataclasses import dataclass, field


@dataclass(frozen=True)
class Capabilities:
    can_adjust_inventory: bool = False
    can_view_all_orders: bool = False


@dataclass(frozen=True)
class Actor:
    """Who is calling a service, and what they may do. Never a role string."""
    user_id: str
    capabilities: Capabilities = field(default_factory=Capabilities)

    @property
    def can_adjust_inventory(self) -> bool:
        return self.capabilities.can_adjust_inventory

    @property
    def can_view_all_orders(self) -> bool:
        return self.capabilities.can_view_all_orders
