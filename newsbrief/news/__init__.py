"""
News Module
===========

The topic-to-summary pipeline:
- Per-topic article fetching against NewsAPI with a TTL cache
- Relevance ranking and an optional uplifting-only filter
- LLM summarization with a deterministic fallback
- Multi-topic orchestration with a minimum-items guarantee
"""
