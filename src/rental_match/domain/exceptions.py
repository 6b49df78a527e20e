class MatchEngineError(Exception):
    """Base exception for the matching engine"""
    pass


class ListingNotFoundError(MatchEngineError):
    """Raised when a referenced listing does not exist"""

    def __init__(self, listing_id: str):
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id} not found")


class RecommendationRecordNotFoundError(MatchEngineError):
    """Raised when a user has no recommendation record yet"""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No recommendations found for user {user_id}")


class InvalidPreferencesError(MatchEngineError, ValueError):
    """Raised when a preference vector cannot be sanitised"""
    pass
