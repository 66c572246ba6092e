"""
Configuration constants for the LGED map crawler.
"""

import re

# ---------------------------------------------------------------------------
# Remote endpoints
# ---------------------------------------------------------------------------
BASE_URL = "https://oldweb.lged.gov.bd/ViewMap.aspx"
TREE_ROOT_URL = "https://oldweb.lged.gov.bd/UploadedDocument/"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_OUTPUT = "lged_maps"
DEFAULT_WORKERS = 1            # tree mode only; cascade mode is always serial
LEAF_DELAY = 1.0               # seconds after each upazila / file
DISTRICT_DELAY = 2.0           # seconds after each district / directory

# ---------------------------------------------------------------------------
# Timeouts (seconds)
# ---------------------------------------------------------------------------
PAGE_TIMEOUT = 120
BINARY_TIMEOUT = 300
REQUEST_TIMEOUT = 30
SETTLE_TIMEOUT = 15
DISTRICT_SETTLE_FALLBACK = 2.0
UPAZILA_SETTLE_FALLBACK = 2.5

# No transport-level retries: rerunning the crawl is the retry mechanism.
MAX_RETRIES = 0

# Chunk size for streaming binary bodies to disk (512 KiB)
STREAM_CHUNK = 524288

# ---------------------------------------------------------------------------
# Cascading-selection form
# ---------------------------------------------------------------------------
DISTRICT_SELECT = "#ctl00_ContentPlaceHolder1_ddlDistrict"
UPAZILA_SELECT = 'select[name="ctl00$ContentPlaceHolder1$ddlUpazilla"]'

# Anchors that carry the per-upazila map links after a postback
DERIVED_LINK_IDS = (
    "ctl00_ContentPlaceHolder1_lnkImg",
    "ctl00_ContentPlaceHolder1_lnkImgRoad",
)

# Resource URLs embedded anywhere in the rendered markup
DERIVED_LINK_RE = re.compile(
    r"""[^\s"'<>()=]*UploadedDocument/[^\s"'<>()]+?\.(?:jpe?g|png|gif|pdf|tiff?)\b""",
    re.I,
)

# "Select..." entries at the top of every drop-down
PLACEHOLDER_VALUES = frozenset({"", "0", "-1"})

# Href schemes that never lead to a downloadable resource
NON_NAVIGATIONAL_SCHEMES = ("javascript:", "mailto:", "data:", "tel:", "about:")

# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
PRIMARY_CATEGORY = "upazila"
SECONDARY_CATEGORY = "road"
SECONDARY_MARKER = "road"

# ---------------------------------------------------------------------------
# Directory-tree filters
# ---------------------------------------------------------------------------
# division/district/upazila/file; shallower files are aggregate maps
MIN_FILE_DEPTH = 4
ALLOWED_EXTENSIONS = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".pdf", ".tif", ".tiff",
})

# ---------------------------------------------------------------------------
# User-Agent pool
# ---------------------------------------------------------------------------
USER_AGENTS = [
    # Chrome (Windows)
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Chrome (macOS)
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Chrome (Linux)
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Firefox (Windows)
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    # Firefox (Linux)
    "Mozilla/5.0 (X11; Linux x86_64; rv:133.0) Gecko/20100101 Firefox/133.0",
]

BROWSER_VIEWPORT = {"width": 1366, "height": 768}
