"""
Orchestration of the full analysis and its debug overlay.
"""

from .overlay import (
    build_overlay,
    render_overlay,
    save_overlay,
    format_label,
)

from .pipeline import (
    TowerAnalysis,
    analyze_tower,
    analyze_image,
    analyze,
)

__all__ = [
    # Overlay
    'build_overlay',
    'render_overlay',
    'save_overlay',
    'format_label',
    # Pipeline
    'TowerAnalysis',
    'analyze_tower',
    'analyze_image',
    'analyze',
]
