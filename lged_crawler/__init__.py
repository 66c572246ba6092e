"""
lged_crawler
============
Resumable downloader for the LGED upazila and road maps of Bangladesh,
organised by district and upazila.

Package structure
-----------------
lged_crawler/
├── __init__.py       – package init and version
├── config.py         – endpoints, selectors, timeouts, filters
├── errors.py         – failure taxonomy
├── session.py        – requests.Session factory and Playwright BrowserSession
├── cli.py            – argparse CLI (``python -m lged_crawler``)
├── core/
│   ├── classify.py   – leaf classifier (primary / secondary maps)
│   ├── fetcher.py    – FormFetcher and HttpFetcher
│   ├── storage.py    – DownloadTask naming and the write-once sink
│   └── traverser.py  – CascadeTraverser and DirectoryTraverser
├── extraction/       – listing anchors and derived-link scanning
└── utils/            – path normalisation, slugs, logging

Quick start
-----------
    from pathlib import Path

    from lged_crawler.core import DirectoryTraverser, HttpFetcher
    from lged_crawler.session import build_session

    with build_session() as session:
        DirectoryTraverser(HttpFetcher(session), Path("lged_maps")).run()
"""

__version__ = "1.0.0"
