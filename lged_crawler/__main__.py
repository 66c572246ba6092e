"""
Main entry point for the lged_crawler package.

Allows running the crawler as: python -m lged_crawler
"""

from lged_crawler.cli import main

if __name__ == "__main__":
    main()
