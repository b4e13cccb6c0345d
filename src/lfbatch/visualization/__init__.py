"""Visualization module for lfbatch."""

from lfbatch.visualization.preview import render_preview

__all__ = ['render_preview']
