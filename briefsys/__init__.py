"""Core package for the sales briefing system.

The briefing pipeline turns ranked news articles about a company into a
fixed-shape sales briefing: an overview, per-article highlights and a
three-slide deck outline.
"""

__all__: list[str] = []
