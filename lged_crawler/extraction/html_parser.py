"""
Directory-listing anchor extraction via BeautifulSoup.
"""

from bs4 import BeautifulSoup

try:
    import lxml  # noqa: F401
    _BS4_PARSER = "lxml"
except ImportError:
    _BS4_PARSER = "html.parser"


def extract_anchor_hrefs(html: str) -> list[str]:
    """Return the raw ``href`` of every ``<a>`` in *html*, in document order."""
    soup = BeautifulSoup(html, _BS4_PARSER)
    hrefs: list[str] = []
    for el in soup.find_all("a", href=True):
        href = el.get("href", "").strip()
        if href:
            hrefs.append(href)
    return hrefs
