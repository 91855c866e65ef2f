from .listing_checks import (
    BING_SHOPPING, CHANNEL_TYPES, GOOGLE_MERCHANT_CENTER, META_CATALOG, PINTEREST_CATALOG, TIKTOK_SHOPPING,
    ListingProblem, check_listing,
)
from .channel_sync import AVAILABLE_CHANNELS, FEED_FORMATS, check_credentials, feed_format, sync_channel

__all__ = [
    "BING_SHOPPING", "CHANNEL_TYPES", "GOOGLE_MERCHANT_CENTER", "META_CATALOG", "PINTEREST_CATALOG",
    "TIKTOK_SHOPPING", "ListingProblem", "check_listing",
    "AVAILABLE_CHANNELS", "FEED_FORMATS", "check_credentials", "feed_format", "sync_channel",
]
