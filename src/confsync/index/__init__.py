"""Local host stand-in: document store, crawl driver and search."""
