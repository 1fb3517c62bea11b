from __future__ import annotations

from coinboard.schemas.slot import SlotView
from coinboard.services.fetch_coordinator import FetchCoordinator
from coinboard.services.slot import SlotController


class SlotBoard:
    """Fixed pool of reusable row slots driven by one coordinator."""

    def __init__(self, coordinator: FetchCoordinator, size: int = 10) -> None:
        if size < 1:
            raise ValueError("size must be >= 1")
        self.coordinator = coordinator
        self.slots = [SlotController(index=i) for i in range(size)]

    def slot(self, index: int) -> SlotController:
        if index < 0 or index >= len(self.slots):
            raise IndexError("SLOT_NOT_FOUND")
        return self.slots[index]

    def bind(self, index: int, asset_id: str) -> str:
        slot = self.slot(index)
        slot.assign(asset_id)
        outcome = self.coordinator.ensure(asset_id, slot)
        self.coordinator.detach(slot)
        print(f"[SLOT][bind] index={index} asset_id={asset_id} outcome={outcome}", flush=True)
        return outcome

    def view(self, index: int) -> SlotView:
        return self.slot(index).view()

    def views(self) -> list[SlotView]:
        return [s.view() for s in self.slots]

    def metrics(self) -> dict[str, int]:
        return {
            "slots": len(self.slots),
            "bound_slots": sum(1 for s in self.slots if s.owned_id is not None),
            "deliveries_applied": sum(s.applied for s in self.slots),
            "deliveries_dropped": sum(s.dropped for s in self.slots),
        }
