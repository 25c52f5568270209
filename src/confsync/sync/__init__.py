"""Crawl and synchronisation logic."""
