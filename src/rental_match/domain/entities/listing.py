from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass
class ListingLocation:
    city: Optional[str] = None
    state: Optional[str] = None
    coordinates: Optional[GeoPoint] = None

    def same_city(self, other: "ListingLocation") -> bool:
        return _same_place(self.city, other.city)

    def same_state(self, other: "ListingLocation") -> bool:
        return _same_place(self.state, other.state)


def _same_place(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return a.strip().lower() == b.strip().lower()


@dataclass
class ListingSnapshot:
    id: str
    price: float
    location: ListingLocation
    bedrooms: int
    bathrooms: float
    property_type: str = "apartment"
    amenities: List[str] = field(default_factory=list)
    verified: bool = False
    average_rating: float = 0.0
    view_count: int = 0
    available: bool = True
    available_from: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)
    title: str = ""

    @classmethod
    def create(cls, price: float, city: Optional[str] = None, state: Optional[str] = None,
               bedrooms: int = 1, bathrooms: float = 1.0, property_type: str = "apartment",
               amenities: List[str] = None, coordinates: Optional[GeoPoint] = None,
               verified: bool = False, average_rating: float = 0.0, view_count: int = 0,
               available: bool = True, available_from: Optional[datetime] = None,
               title: str = ""):
        return cls(
            id=str(uuid4()),
            price=price,
            location=ListingLocation(city=city, state=state, coordinates=coordinates),
            bedrooms=bedrooms,
            bathrooms=bathrooms,
            property_type=property_type,
            amenities=amenities or [],
            verified=verified,
            average_rating=average_rating,
            view_count=view_count,
            available=available,
            available_from=available_from,
            created_at=datetime.now(),
            title=title
        )

    def is_available_now(self, now: Optional[datetime] = None) -> bool:
        """Available and not waiting on a future move-in date."""
        if not self.available:
            return False
        if self.available_from is None:
            return True
        available_from = self.available_from
        if now is None:
            now = datetime.now(available_from.tzinfo)
        elif available_from.tzinfo is not None and now.tzinfo is None:
            # Naive reference times are local wall-clock time
            now = now.astimezone(available_from.tzinfo)
        elif available_from.tzinfo is None and now.tzinfo is not None:
            now = now.astimezone().replace(tzinfo=None)
        return available_from <= now

    def has_coordinates(self) -> bool:
        return self.location.coordinates is not None
