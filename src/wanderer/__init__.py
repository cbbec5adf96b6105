"""
Wanderer package.

Components:
- session: single-session turn loop (GameSession, SessionConfig)
- sampler/jobs: random city pair under a population threshold; FindNearest job submit/poll
- geodesy/region: bearing, direction quadrants, directional search extents
- arcgis: ArcGIS REST transport (features, analysis jobs, geometry, token login, items)
"""
# Package exports are intentionally minimal; import modules directly as needed.
