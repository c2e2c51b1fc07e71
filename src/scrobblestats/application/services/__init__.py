"""Application services."""

from scrobblestats.application.services.image_resolver import (
    ImageRequest,
    ImageSourceResolver,
)
from scrobblestats.application.services.name_correction_service import (
    NameCorrectionService,
)
from scrobblestats.application.services.session import ScrobbleSession, open_session
from scrobblestats.application.services.tag_aggregator import (
    TagAggregator,
    rank_playcount_weight,
    rank_position_weight,
    weight_function_for,
)
from scrobblestats.application.services.tag_collector import TagCollector
from scrobblestats.application.services.tag_presentation import (
    TagChartData,
    format_playcount,
    sorted_top_tags,
    tag_chart_data,
)
from scrobblestats.application.services.token_cache import TokenCache
from scrobblestats.application.services.top_tags_service import (
    TagSource,
    TopTagsResult,
    TopTagsService,
)

__all__ = [
    "ImageRequest",
    "ImageSourceResolver",
    "NameCorrectionService",
    "ScrobbleSession",
    "TagAggregator",
    "TagChartData",
    "TagCollector",
    "TagSource",
    "TokenCache",
    "TopTagsResult",
    "TopTagsService",
    "format_playcount",
    "open_session",
    "rank_playcount_weight",
    "rank_position_weight",
    "sorted_top_tags",
    "tag_chart_data",
    "weight_function_for",
]
