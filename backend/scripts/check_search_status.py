#!/usr/bin/env python3
"""Report the state of semantic search.

Shows whether the embedding model is cached and loaded, whether the vector
store is reachable with pgvector installed, and embedding coverage of the
active catalog.

Usage:
    python scripts/check_search_status.py
    python scripts/check_search_status.py --json
"""

import sys

from product_search.cli import check_search_status_main

if __name__ == "__main__":
    sys.exit(check_search_status_main())
