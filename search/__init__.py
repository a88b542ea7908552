"""
Viewport-scoped paginated search.

The consolidator keeps one de-duplicated result set per query; page fetchers (remote
service, in-memory) supply the pages.
"""
