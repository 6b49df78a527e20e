from dataclasses import dataclass, field
from typing import List, Optional

from .listing import GeoPoint
from ..exceptions import InvalidPreferencesError


MAX_PRICE = 999999
MAX_ROOMS_DEFAULT = 10
MAX_ROOMS_LIMIT = 20
MIN_DISTANCE_KM = 1
MAX_DISTANCE_KM = 500


@dataclass
class PriceRange:
    min: Optional[float] = None
    max: Optional[float] = None

    def is_set(self) -> bool:
        return bool(self.min) or bool(self.max)

    @property
    def lower(self) -> float:
        return self.min or 0

    @property
    def upper(self) -> float:
        return self.max or MAX_PRICE


@dataclass
class RoomRange:
    min: Optional[int] = None
    max: Optional[int] = None

    def is_set(self) -> bool:
        return bool(self.min) or bool(self.max)

    @property
    def lower(self) -> int:
        return self.min or 1

    @property
    def upper(self) -> int:
        return self.max or MAX_ROOMS_DEFAULT


@dataclass
class PreferredLocation:
    city: Optional[str] = None
    state: Optional[str] = None


@dataclass
class PreferenceVector:
    """Tenant preferences used by the match scorer.

    Every field is optional. A missing field means "no preference" and the
    matching sub-score falls back to its neutral value.
    """
    price_range: Optional[PriceRange] = None
    preferred_rooms: Optional[RoomRange] = None
    preferred_locations: List[PreferredLocation] = field(default_factory=list)
    required_amenities: List[str] = field(default_factory=list)
    max_distance_km: Optional[float] = None
    anchor: Optional[GeoPoint] = None

    def __post_init__(self):
        if self.preferred_locations is None:
            self.preferred_locations = []
        if self.required_amenities is None:
            self.required_amenities = []

    def has_price_range(self) -> bool:
        return self.price_range is not None and self.price_range.is_set()

    def has_room_range(self) -> bool:
        return self.preferred_rooms is not None and self.preferred_rooms.is_set()

    def has_proximity(self) -> bool:
        return self.anchor is not None and bool(self.max_distance_km)

    def sanitized(self) -> "PreferenceVector":
        """Return a copy with bounds clamped to the accepted limits.

        Raises InvalidPreferencesError when a range is inverted.
        """
        price_range = None
        if self.price_range is not None:
            price_range = PriceRange(
                min=max(0, self.price_range.min or 0),
                max=min(MAX_PRICE, self.price_range.max or MAX_PRICE)
            )
            if price_range.min > price_range.max:
                raise InvalidPreferencesError(
                    f"Minimum price {price_range.min} exceeds maximum price {price_range.max}"
                )

        rooms = None
        if self.preferred_rooms is not None:
            rooms = RoomRange(
                min=max(1, self.preferred_rooms.min or 1),
                max=min(MAX_ROOMS_LIMIT, self.preferred_rooms.max or MAX_ROOMS_DEFAULT)
            )
            if rooms.min > rooms.max:
                raise InvalidPreferencesError(
                    f"Minimum rooms {rooms.min} exceeds maximum rooms {rooms.max}"
                )

        max_distance = None
        if self.max_distance_km:
            max_distance = max(MIN_DISTANCE_KM, min(MAX_DISTANCE_KM, self.max_distance_km))

        return PreferenceVector(
            price_range=price_range,
            preferred_rooms=rooms,
            preferred_locations=list(self.preferred_locations),
            required_amenities=list(dict.fromkeys(self.required_amenities)),
            max_distance_km=max_distance,
            anchor=self.anchor
        )
