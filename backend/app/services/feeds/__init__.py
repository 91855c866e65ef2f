from .projection import FeedProduct, format_price, project_products
from .channel_feeds import FACEBOOK_HEADERS, GOOGLE_NS, build_facebook_csv, build_google_feed, google_feed_items
from .exports import (
    CSV_HEADERS, EMPTY_EXPORT, EXPORT_FORMATS, EXPORT_MEDIA_TYPES, UTF8_BOM,
    export_csv, export_excel_csv, export_json, export_xml, render_export,
)

__all__ = [
    "FeedProduct", "format_price", "project_products",
    "FACEBOOK_HEADERS", "GOOGLE_NS", "build_facebook_csv", "build_google_feed", "google_feed_items",
    "CSV_HEADERS", "EMPTY_EXPORT", "EXPORT_FORMATS", "EXPORT_MEDIA_TYPES", "UTF8_BOM",
    "export_csv", "export_excel_csv", "export_json", "export_xml", "render_export",
]
