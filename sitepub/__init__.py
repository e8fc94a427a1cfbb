"""
sitepub - Render, preview and publish static sites.

Each site's HTML tree is previewed locally at ``<slug>.localhost`` and
published to a git branch with a stage-attributed pipeline.
"""

__version__ = "0.1.0"
