"""Immutable value objects of the domain."""

from reservation_engine.domain.value_objects.fee_split import FeeSplit, split_platform_fee
from reservation_engine.domain.value_objects.money import Money
from reservation_engine.domain.value_objects.time_window import TimeWindow, as_utc

__all__ = ["FeeSplit", "Money", "TimeWindow", "as_utc", "split_platform_fee"]
