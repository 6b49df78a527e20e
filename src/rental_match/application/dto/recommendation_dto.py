from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from ...domain.entities.listing import GeoPoint, ListingSnapshot
from ...domain.entities.preferences import PreferenceVector, PriceRange, RoomRange, PreferredLocation
from ...domain.entities.recommendation import RecommendationEntry, RecommendationRecord


class GeoPointModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class PriceRangeModel(BaseModel):
    min: Optional[float] = Field(None, ge=0, description="Minimum monthly price")
    max: Optional[float] = Field(None, ge=0, description="Maximum monthly price")


class RoomRangeModel(BaseModel):
    min: Optional[int] = Field(None, ge=0, description="Minimum bedrooms")
    max: Optional[int] = Field(None, ge=0, description="Maximum bedrooms")


class PreferredLocationModel(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None


class PreferenceVectorModel(BaseModel):
    """Tenant preferences; every field is optional"""
    price_range: Optional[PriceRangeModel] = None
    preferred_rooms: Optional[RoomRangeModel] = None
    preferred_locations: List[PreferredLocationModel] = Field(default_factory=list)
    required_amenities: List[str] = Field(default_factory=list)
    max_distance_km: Optional[float] = Field(None, gt=0, description="Maximum distance from anchor in km")
    anchor: Optional[GeoPointModel] = Field(None, description="Preferred coordinate for proximity matching")

    @field_validator('required_amenities')
    @classmethod
    def normalize_amenities(cls, v):
        return [amenity.strip() for amenity in v if amenity and amenity.strip()]

    def to_domain(self) -> PreferenceVector:
        """Build a sanitised domain preference vector (may raise InvalidPreferencesError)"""
        preferences = PreferenceVector(
            price_range=PriceRange(self.price_range.min, self.price_range.max) if self.price_range else None,
            preferred_rooms=RoomRange(self.preferred_rooms.min, self.preferred_rooms.max) if self.preferred_rooms else None,
            preferred_locations=[PreferredLocation(loc.city, loc.state) for loc in self.preferred_locations],
            required_amenities=list(self.required_amenities),
            max_distance_km=self.max_distance_km,
            anchor=GeoPoint(self.anchor.lat, self.anchor.lng) if self.anchor else None
        )
        return preferences.sanitized()


class RecommendationRequest(BaseModel):
    """Request model for personalized recommendations"""
    preferences: PreferenceVectorModel = Field(default_factory=PreferenceVectorModel)
    limit: int = Field(default=10, ge=1, le=50, description="Number of recommendations to return")
    refresh: bool = Field(default=False, description="Force regeneration of the cached list")


class RecommendationItem(BaseModel):
    listing_id: str
    score: int = Field(..., ge=0, le=100)
    reasons: List[str] = Field(default_factory=list)
    viewed: bool = False

    @classmethod
    def from_entry(cls, entry: RecommendationEntry) -> "RecommendationItem":
        return cls(
            listing_id=entry.listing_id,
            score=entry.score,
            reasons=[reason.value for reason in entry.reasons],
            viewed=entry.viewed
        )


class RecommendationResponse(BaseModel):
    """Response model for personalized recommendations"""
    user_id: str
    recommendations: List[RecommendationItem]
    algorithm: str
    refreshed_at: datetime
    total: int

    @classmethod
    def from_record(cls, record: RecommendationRecord,
                    served: List[RecommendationEntry]) -> "RecommendationResponse":
        return cls(
            user_id=record.user_id,
            recommendations=[RecommendationItem.from_entry(entry) for entry in served],
            algorithm=record.algorithm,
            refreshed_at=record.refreshed_at,
            total=len(served)
        )


class FeedbackRequest(BaseModel):
    helpful: Optional[bool] = Field(None, description="Whether the recommendations were helpful")


class FeedbackResponse(BaseModel):
    success: bool = True
    message: str = "Feedback recorded"
    helpful: int
    not_helpful: int


class StatusResponse(BaseModel):
    success: bool = True
    message: str


class ListingSummary(BaseModel):
    id: str
    title: str
    price: float
    city: Optional[str]
    state: Optional[str]
    bedrooms: int
    bathrooms: float
    property_type: str
    amenities: List[str]
    verified: bool
    average_rating: float

    @classmethod
    def from_listing(cls, listing: ListingSnapshot) -> "ListingSummary":
        return cls(
            id=listing.id,
            title=listing.title,
            price=listing.price,
            city=listing.location.city,
            state=listing.location.state,
            bedrooms=listing.bedrooms,
            bathrooms=listing.bathrooms,
            property_type=listing.property_type,
            amenities=list(listing.amenities),
            verified=listing.verified,
            average_rating=listing.average_rating
        )


class SimilarListingsResponse(BaseModel):
    listing_id: str
    similar: List[ListingSummary]
