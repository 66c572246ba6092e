"""Link extraction from directory listings and rendered form markup."""

from lged_crawler.extraction.html_parser import extract_anchor_hrefs
from lged_crawler.extraction.links import (
    parse_listing,
    scan_resource_links,
    split_listing,
)

__all__ = [
    "extract_anchor_hrefs",
    "parse_listing",
    "scan_resource_links",
    "split_listing",
]
