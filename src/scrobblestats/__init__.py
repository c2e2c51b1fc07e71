"""scrobblestats - tag aggregation and cover-art resolution for Last.fm listening stats."""

__version__ = "0.1.0"
