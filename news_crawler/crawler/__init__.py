"""
Crawler subsystem: fetching, listing-page link discovery, the crawl-news job
queue, scheduling, workers, and per-article ingestion.
"""
