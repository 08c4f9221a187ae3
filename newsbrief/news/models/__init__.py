from .article import Article, FetchResult, GeoContext, PipelineResult, SummaryItem

__all__ = ["Article", "FetchResult", "GeoContext", "PipelineResult", "SummaryItem"]
