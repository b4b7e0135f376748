"""
Home battery storage state for the hourly simulation.

Contains the :class:`StorageBank` aggregate that tracks the stored energy of
all installed batteries as one pool. Every mutation goes through
:func:`clamp_battery_level`, so the level can never leave
``[0, capacity_kwh]``.
"""

from __future__ import annotations

from .validation import clamp_battery_level, finite_or_zero

DISCHARGE_THRESHOLD_KWH = 0.001


class StorageBank:
    """
    Pooled battery storage with a hard capacity bound.

    Models every installed battery as a single lossless store whose capacity
    is the summed degraded usable capacity of the line items. The daily
    model has no power limits: one hour can move any amount of energy the
    level and free space allow.

    Attributes:
        capacity_kwh: Usable (degraded) capacity of the pool (kWh).
        level_kwh: Energy currently stored (kWh), always within
            ``[0, capacity_kwh]``.

    Example:
        ```python
        bank = StorageBank(capacity_kwh=9.25, level_kwh=1.85)
        bank.charge(10.0)        # returns 7.4, bank is full
        bank.discharge(3.0)      # returns 3.0
        bank.level_kwh           # 6.25
        ```

    Notes:
        - Discharge is refused while the level is at or below 0.001 kWh, so
          rounding residue never shows up as a discharge.
        - A zero-capacity bank is valid and accepts nothing.
    """

    def __init__(self, capacity_kwh: float, level_kwh: float = 0.0) -> None:
        self.capacity_kwh = max(0.0, finite_or_zero(capacity_kwh))
        self.level_kwh = clamp_battery_level(level_kwh, self.capacity_kwh)

    @property
    def free_kwh(self) -> float:
        return max(0.0, self.capacity_kwh - self.level_kwh)

    def charge(self, energy_kwh: float) -> float:
        """
        Store up to ``energy_kwh`` of surplus.

        Args:
            energy_kwh: Energy offered for charging (kWh). Non-positive
                values are no-ops.

        Returns:
            float: Energy actually stored (kWh), at most the free space.
        """
        if energy_kwh <= 0.0 or self.capacity_kwh <= 0.0:
            return 0.0
        stored = min(energy_kwh, self.free_kwh)
        self.level_kwh = clamp_battery_level(self.level_kwh + stored, self.capacity_kwh)
        return stored

    def discharge(self, energy_kwh: float) -> float:
        """
        Supply up to ``energy_kwh`` from storage.

        Args:
            energy_kwh: Requested energy (kWh). Non-positive values are no-ops.

        Returns:
            float: Energy actually supplied (kWh); zero when the bank holds
                no more than the discharge threshold.
        """
        if energy_kwh <= 0.0 or self.level_kwh <= DISCHARGE_THRESHOLD_KWH:
            return 0.0
        supplied = min(energy_kwh, self.level_kwh)
        self.level_kwh = clamp_battery_level(self.level_kwh - supplied, self.capacity_kwh)
        return supplied

    def soc_fraction(self) -> float:
        if self.capacity_kwh <= 0.0:
            return 0.0
        return self.level_kwh / self.capacity_kwh
