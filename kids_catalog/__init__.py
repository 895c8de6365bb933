"""
Kids Catalog Service.

Content catalog for a children's media app: stories, affirmations,
meditations and music with per-language variants, ranking, categories
and per-kid favorites.
"""
