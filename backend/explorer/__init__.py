"""
Viewport-driven orchestration for the map explorer.

Each concern (viewport, layer cache, summaries, clustering, selection, camera)
owns its state; `explorer.session.ExplorerSession` wires them together.
"""
