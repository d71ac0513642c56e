#!/usr/bin/env python3
"""Generate embeddings for active products that lack one.

Usage:
    # Embed missing products
    python scripts/sync_embeddings.py

    # Re-embed everything (e.g. after changing EMBEDDING_MODEL_NAME)
    python scripts/sync_embeddings.py --force

    # Re-embed selected products, print JSON report
    python scripts/sync_embeddings.py --product-id 7 --product-id 12 --json

Exit status: 0 no failures, 1 some products failed, 2 run could not start.
"""

import sys

from product_search.cli import sync_embeddings_main

if __name__ == "__main__":
    sys.exit(sync_embeddings_main())
